"""Static validation of a parsed scene table."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Sequence

from vnscript.domain.defs import (
    ActionDef,
    ActionInstruction,
    ConditionalInstruction,
    DialogueInstruction,
    JumpInstruction,
    ParsedScene,
    ScriptInstruction,
    SourceLocation,
)

Severity = str

KNOWN_ACTION_TYPES = frozenset({"setVar", "addVar", "setFlag", "clearFlag", "addToList", "addTime"})


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


@dataclass(frozen=True, slots=True)
class SceneReference:
    """A static scene name referenced by a jump or a choice."""

    kind: str
    target: str
    location: SourceLocation


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def is_dynamic_target(target: str) -> bool:
    return "{{" in target


def iter_references(scene: ParsedScene) -> Iterator[SceneReference]:
    """Yield every jump and choice target in a scene, nested branches included."""
    yield from _references(scene.instructions)


def validate_scenes(
    scenes: Mapping[str, ParsedScene] | Sequence[ParsedScene],
    entry_scenes: Sequence[str] = (),
) -> list[Issue]:
    issues: list[Issue] = []
    table, duplicates = _coerce_scenes(scenes)
    for name in duplicates:
        issues.append(
            Issue(
                severity="ERROR",
                code="DUPLICATE_SCENE",
                message="Duplicate scene name detected.",
                context={"scene": name},
            )
        )

    for name, scene in table.items():
        if not scene.instructions:
            issues.append(
                Issue(
                    severity="WARN",
                    code="EMPTY_SCENE",
                    message="Scene has no instructions.",
                    context={"scene": name},
                )
            )
        for reference in iter_references(scene):
            if is_dynamic_target(reference.target) or reference.target in table:
                continue
            code = "MISSING_JUMP_TARGET" if reference.kind == "jump" else "MISSING_CHOICE_TARGET"
            issues.append(
                Issue(
                    severity="ERROR",
                    code=code,
                    message=f"{reference.kind.capitalize()} references missing scene.",
                    context={
                        "scene": name,
                        "line": str(reference.location.line),
                        "referenced_id": reference.target,
                    },
                )
            )
        for action, location in _actions(scene.instructions):
            if action.type in KNOWN_ACTION_TYPES:
                continue
            issues.append(
                Issue(
                    severity="WARN",
                    code="UNKNOWN_ACTION_TYPE",
                    message="Action type is not recognized and will fail at runtime.",
                    context={"scene": name, "line": str(location.line), "type": action.type},
                )
            )

    for entry in entry_scenes:
        if entry not in table:
            issues.append(
                Issue(
                    severity="ERROR",
                    code="MISSING_ENTRY_SCENE",
                    message="Entry scene is not defined.",
                    context={"scene": entry},
                )
            )

    if entry_scenes:
        _validate_reachability(table, entry_scenes, issues)
    return issues


def _coerce_scenes(
    scenes: Mapping[str, ParsedScene] | Sequence[ParsedScene],
) -> tuple[dict[str, ParsedScene], list[str]]:
    if isinstance(scenes, Mapping):
        return dict(scenes), []
    table: dict[str, ParsedScene] = {}
    duplicates: list[str] = []
    for scene in scenes:
        if scene.name in table:
            duplicates.append(scene.name)
            continue
        table[scene.name] = scene
    return table, duplicates


def _references(instructions: Iterable[ScriptInstruction]) -> Iterator[SceneReference]:
    for instruction in instructions:
        if isinstance(instruction, JumpInstruction):
            yield SceneReference("jump", instruction.target, instruction.source_location)
        elif isinstance(instruction, DialogueInstruction):
            for choice in instruction.choices:
                if choice.target:
                    yield SceneReference("choice", choice.target, instruction.source_location)
        elif isinstance(instruction, ConditionalInstruction):
            yield from _references(instruction.then)
            yield from _references(instruction.otherwise or ())


def _actions(instructions: Iterable[ScriptInstruction]) -> Iterator[tuple[ActionDef, SourceLocation]]:
    for instruction in instructions:
        if isinstance(instruction, ActionInstruction):
            for action in instruction.actions:
                yield action, instruction.source_location
        elif isinstance(instruction, DialogueInstruction):
            for action in instruction.actions:
                yield action, instruction.source_location
            for choice in instruction.choices:
                for action in choice.actions:
                    yield action, instruction.source_location
        elif isinstance(instruction, ConditionalInstruction):
            yield from _actions(instruction.then)
            yield from _actions(instruction.otherwise or ())


def _validate_reachability(
    table: Mapping[str, ParsedScene],
    entry_scenes: Sequence[str],
    issues: list[Issue],
) -> None:
    reachable: set[str] = set()
    stack = [name for name in entry_scenes if name in table]
    while stack:
        name = stack.pop()
        if name in reachable:
            continue
        reachable.add(name)
        for reference in iter_references(table[name]):
            if reference.target in table:
                stack.append(reference.target)
    for name in sorted(set(table) - reachable):
        issues.append(
            Issue(
                severity="WARN",
                code="UNREACHABLE_SCENE",
                message="Scene is unreachable from entry scenes.",
                context={"scene": name},
            )
        )
