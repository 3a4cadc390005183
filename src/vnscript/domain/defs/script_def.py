"""Script definition structures produced by the parser."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple, Union


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """Where an instruction was declared, for diagnostics."""

    file: str
    line: int
    scene: str

    def describe(self) -> str:
        return f"{self.file}:{self.line} (scene '{self.scene}')"


@dataclass(frozen=True, slots=True)
class ActionDef:
    """Single state mutation attached to a dialogue line, action entry or choice."""

    type: str
    data: Dict[str, object] = field(default_factory=dict)

    def to_payload(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"type": self.type}
        payload.update(self.data)
        return payload


@dataclass(frozen=True, slots=True)
class ChoiceOption:
    """Selectable option presented by a dialogue instruction."""

    text: str
    target: str | None = None
    condition: str | None = None
    actions: Tuple[ActionDef, ...] = ()


@dataclass(frozen=True, slots=True)
class DialogueInstruction:
    source_location: SourceLocation
    text: str | None = None
    speaker: str | None = None
    actions: Tuple[ActionDef, ...] = ()
    choices: Tuple[ChoiceOption, ...] = ()
    kind: str = field(default="dialogue", init=False)


@dataclass(frozen=True, slots=True)
class ActionInstruction:
    source_location: SourceLocation
    actions: Tuple[ActionDef, ...]
    kind: str = field(default="action", init=False)


@dataclass(frozen=True, slots=True)
class ConditionalInstruction:
    source_location: SourceLocation
    condition: str
    then: Tuple["ScriptInstruction", ...]
    otherwise: Tuple["ScriptInstruction", ...] | None = None
    kind: str = field(default="conditional", init=False)


@dataclass(frozen=True, slots=True)
class JumpInstruction:
    source_location: SourceLocation
    target: str
    kind: str = field(default="jump", init=False)


ScriptInstruction = Union[DialogueInstruction, ActionInstruction, ConditionalInstruction, JumpInstruction]


@dataclass(frozen=True, slots=True)
class ParsedScene:
    """Named, ordered sequence of instructions."""

    name: str
    instructions: Tuple[ScriptInstruction, ...]

    def __len__(self) -> int:
        return len(self.instructions)
