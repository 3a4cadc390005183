"""Merges content packs into a loaded scene table."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Sequence, Tuple

from vnscript.core.types import UpgradeMode
from vnscript.data.errors import ScriptParseError
from vnscript.data.script_parser import ScriptParser
from vnscript.domain.defs import (
    ConditionalInstruction,
    DialogueInstruction,
    JumpInstruction,
    ParsedScene,
    ScriptInstruction,
)
from vnscript.services.game_state_manager import GameStateManager
from vnscript.services.script_engine import ScriptEngine
from vnscript.services.script_validator import is_dynamic_target, iter_references

logger = logging.getLogger(__name__)

PACK_FILE_NAME = "dlc.yaml"
LARGE_PACK_SCENES = 50
LARGE_TABLE_SCENES = 200


@dataclass(frozen=True, slots=True)
class UpgradeOptions:
    mode: UpgradeMode = "additive"
    namespace: str = ""
    allow_overwrite: Tuple[str, ...] = ()
    validate_state: bool = True
    dry_run: bool = False


@dataclass(frozen=True, slots=True)
class UpgradeError:
    code: str
    message: str
    details: Dict[str, List[str]] = field(default_factory=dict)


@dataclass(slots=True)
class UpgradeResult:
    success: bool
    error: UpgradeError | None = None
    added_scenes: List[str] = field(default_factory=list)
    replaced_scenes: List[str] = field(default_factory=list)
    total_scenes: int = 0
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class UpgradeValidation:
    valid: bool
    errors: List[UpgradeError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    would_add: List[str] = field(default_factory=list)
    would_replace: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class _Backup:
    scenes: Tuple[ParsedScene, ...]
    scene: str
    instruction: int
    branch_path: Tuple[Tuple[str, int], ...] = ()


class ScriptUpgrader:
    """Validates and applies a content pack, rolling back when applying fails."""

    def __init__(self, state_manager: GameStateManager, engine: ScriptEngine, parser: ScriptParser | None = None) -> None:
        self._state = state_manager
        self._engine = engine
        self._parser = parser or ScriptParser()

    def upgrade(
        self,
        current_scenes: Sequence[ParsedScene],
        content: str,
        options: UpgradeOptions | None = None,
    ) -> UpgradeResult:
        options = options or UpgradeOptions()
        try:
            pack = self.parse_pack(content, options)
        except ScriptParseError as exc:
            logger.warning("Content pack rejected: %s", exc)
            return UpgradeResult(
                success=False,
                error=UpgradeError("PARSE_ERROR", f"Failed to parse content pack: {exc}", {"parseErrors": [str(exc)]}),
                total_scenes=len(current_scenes),
            )

        validation = self.validate(current_scenes, pack, options)
        if not validation.valid:
            logger.warning("Content pack rejected: %s", validation.errors[0].message)
            return UpgradeResult(
                success=False,
                error=validation.errors[0],
                total_scenes=len(current_scenes),
                warnings=validation.warnings,
            )
        if options.dry_run:
            return UpgradeResult(
                success=True,
                added_scenes=validation.would_add,
                replaced_scenes=validation.would_replace,
                total_scenes=len(current_scenes) + len(validation.would_add),
                warnings=validation.warnings,
            )

        backup = _Backup(
            scenes=tuple(current_scenes),
            scene=self._state.get_current_scene(),
            instruction=self._state.get_current_instruction(),
            branch_path=tuple(self._state.get_branch_path()),
        )
        merged = merge_scenes(current_scenes, pack, options)
        if not self._apply(merged, backup):
            self._engine.load_scenes(backup.scenes)
            message = f"Current scene '{backup.scene}' is missing after upgrade; changes were rolled back"
            logger.warning(message)
            return UpgradeResult(
                success=False,
                error=UpgradeError("STATE_INVALID", message, {"affectedState": [backup.scene]}),
                total_scenes=len(current_scenes),
                warnings=validation.warnings,
            )

        logger.info(
            "Applied content pack: %d added, %d replaced",
            len(validation.would_add),
            len(validation.would_replace),
        )
        return UpgradeResult(
            success=True,
            added_scenes=validation.would_add,
            replaced_scenes=validation.would_replace,
            total_scenes=len(merged),
            warnings=validation.warnings,
        )

    def parse_pack(self, content: str, options: UpgradeOptions) -> List[ParsedScene]:
        scenes = self._parser.parse_text(content, PACK_FILE_NAME)
        if options.namespace:
            scenes = apply_namespace(scenes, options.namespace)
        return scenes

    def validate(
        self,
        base: Sequence[ParsedScene],
        pack: Sequence[ParsedScene],
        options: UpgradeOptions,
    ) -> UpgradeValidation:
        """Check a parsed pack against the current table without applying it."""
        base_names = {scene.name for scene in base}
        conflicts = [scene.name for scene in pack if scene.name in base_names]
        allowed = set(options.allow_overwrite)
        errors: List[UpgradeError] = []

        if options.mode == "additive" and conflicts:
            errors.append(
                UpgradeError(
                    "SCENE_CONFLICT",
                    f"Scenes already exist: {', '.join(conflicts)}",
                    {"conflictingScenes": conflicts},
                )
            )
        elif options.mode == "replace":
            unauthorized = [name for name in conflicts if name not in allowed]
            if unauthorized:
                errors.append(
                    UpgradeError(
                        "UNAUTHORIZED_OVERWRITE",
                        f"Cannot overwrite scenes: {', '.join(unauthorized)}",
                        {"unauthorizedOverwrites": unauthorized},
                    )
                )

        merged = merge_scenes(base, pack, options)
        invalid = find_invalid_references(merged)
        if invalid:
            errors.append(
                UpgradeError(
                    "INVALID_REFERENCE",
                    f"Invalid scene references: {', '.join(invalid)}",
                    {"invalidReferences": invalid},
                )
            )

        if options.validate_state:
            state_issues = self._state_issues(merged)
            if state_issues:
                errors.append(
                    UpgradeError(
                        "STATE_INVALID",
                        f"Current game state would become invalid: {', '.join(state_issues)}",
                        {"affectedState": state_issues},
                    )
                )

        would_add = [scene.name for scene in pack if scene.name not in base_names]
        would_replace = conflicts if options.mode == "replace" else []
        return UpgradeValidation(
            valid=not errors,
            errors=errors,
            warnings=_warnings(base, pack),
            would_add=would_add,
            would_replace=would_replace,
        )

    def _state_issues(self, scenes: Sequence[ParsedScene]) -> List[str]:
        current = self._state.get_current_scene()
        if not current:
            return []
        table = {scene.name: scene for scene in scenes}
        scene = table.get(current)
        if scene is None:
            return [f"Current scene '{current}' will no longer exist after upgrade"]
        instruction = self._state.get_current_instruction()
        if instruction > len(scene.instructions):
            return [f"Current instruction index {instruction} exceeds new scene length {len(scene.instructions)}"]
        return []

    def _apply(self, merged: Sequence[ParsedScene], backup: _Backup) -> bool:
        """Install merged scenes; False means the saved position cannot be kept."""
        if not backup.scene or self._engine.current_scene == backup.scene:
            # The engine is already there, so pending choices and branch frames survive.
            return self._engine.swap_scenes(merged)
        self._engine.load_scenes(merged)
        return self._engine.restore_position(backup.scene, backup.instruction, backup.branch_path)


def merge_scenes(
    base: Sequence[ParsedScene],
    pack: Sequence[ParsedScene],
    options: UpgradeOptions,
) -> List[ParsedScene]:
    if options.mode == "additive":
        return [*base, *pack]
    pack_names = {scene.name for scene in pack}
    allowed = set(options.allow_overwrite)
    kept = [scene for scene in base if scene.name not in pack_names or scene.name not in allowed]
    return [*kept, *pack]


def find_invalid_references(scenes: Sequence[ParsedScene]) -> List[str]:
    names = {scene.name for scene in scenes}
    invalid: List[str] = []
    for scene in scenes:
        for reference in iter_references(scene):
            target = reference.target
            if is_dynamic_target(target) or target in names or target in invalid:
                continue
            invalid.append(target)
    return invalid


def apply_namespace(scenes: Sequence[ParsedScene], namespace: str) -> List[ParsedScene]:
    """Prefix pack scene names and rewrite references among them."""
    local = {scene.name for scene in scenes}
    return [
        ParsedScene(
            name=f"{namespace}_{scene.name}",
            instructions=_rewrite(scene.instructions, local, namespace),
        )
        for scene in scenes
    ]


def _rewrite(
    instructions: Sequence[ScriptInstruction], local: set[str], namespace: str
) -> Tuple[ScriptInstruction, ...]:
    def target_for(target: str | None) -> str | None:
        if target is not None and target in local:
            return f"{namespace}_{target}"
        return target

    rewritten: List[ScriptInstruction] = []
    for instruction in instructions:
        if isinstance(instruction, JumpInstruction):
            instruction = replace(instruction, target=target_for(instruction.target))
        elif isinstance(instruction, DialogueInstruction) and instruction.choices:
            choices = tuple(replace(choice, target=target_for(choice.target)) for choice in instruction.choices)
            instruction = replace(instruction, choices=choices)
        elif isinstance(instruction, ConditionalInstruction):
            otherwise = instruction.otherwise
            instruction = replace(
                instruction,
                then=_rewrite(instruction.then, local, namespace),
                otherwise=None if otherwise is None else _rewrite(otherwise, local, namespace),
            )
        rewritten.append(instruction)
    return tuple(rewritten)


def _warnings(base: Sequence[ParsedScene], pack: Sequence[ParsedScene]) -> List[str]:
    warnings: List[str] = []
    if len(pack) > LARGE_PACK_SCENES:
        warnings.append(f"Adding {len(pack)} scenes - this is a large upgrade")
    total = len(base) + len(pack)
    if total > LARGE_TABLE_SCENES:
        warnings.append(f"Total scenes after upgrade: {total} - consider performance impact")
    return warnings
