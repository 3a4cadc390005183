"""Domain definition exports."""

from .script_def import (
    ActionDef,
    ActionInstruction,
    ChoiceOption,
    ConditionalInstruction,
    DialogueInstruction,
    JumpInstruction,
    ParsedScene,
    ScriptInstruction,
    SourceLocation,
)

__all__ = [
    "ActionDef",
    "ActionInstruction",
    "ChoiceOption",
    "ConditionalInstruction",
    "DialogueInstruction",
    "JumpInstruction",
    "ParsedScene",
    "ScriptInstruction",
    "SourceLocation",
]
