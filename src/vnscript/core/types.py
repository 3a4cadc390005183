"""Shared type aliases for the core and domain layers."""
from typing import Dict, List, Literal, Union

JsonValue = Union[None, bool, int, float, str, List["JsonValue"], Dict[str, "JsonValue"]]

InstructionKind = Literal["dialogue", "action", "conditional", "jump"]

StepType = Literal["display_dialogue", "presenting_choices", "scene_complete", "error"]

EngineStatus = Literal["idle", "scene_active", "awaiting_choice", "scene_complete", "error"]

UpgradeMode = Literal["additive", "replace"]

__all__ = ["EngineStatus", "InstructionKind", "JsonValue", "StepType", "UpgradeMode"]
