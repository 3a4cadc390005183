"""Domain-level state tracking."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from vnscript.core.types import JsonValue


@dataclass(slots=True)
class ChoiceRecord:
    """Log entry for a choice the player selected."""

    choice_text: str
    scene: str
    instruction: int | None = None
    choice_index: int | None = None
    timestamp: int | None = None


@dataclass
class GameState:
    """Mutable interpreter state owned by the GameStateManager."""

    current_scene: str = ""
    current_instruction: int = 0
    variables: Dict[str, JsonValue] = field(default_factory=dict)
    story_flags: Set[str] = field(default_factory=set)
    choice_history: List[ChoiceRecord] = field(default_factory=list)
    # (branch, index) per open conditional frame, outermost first.
    branch_path: List[Tuple[str, int]] = field(default_factory=list)
