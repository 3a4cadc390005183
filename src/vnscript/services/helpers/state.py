"""Helpers that read interpreter state; none of them mutate it."""
from __future__ import annotations

from typing import Any

from vnscript.core.values import safe_number
from vnscript.services.game_state_manager import GameStateManager, get_nested_value
from vnscript.services.helpers.registry import HelperRegistry


class StateHelpers:
    """Read-only view of a GameStateManager exposed to templates."""

    def __init__(self, state_manager: GameStateManager) -> None:
        self._state = state_manager

    def has_flag(self, flag: Any) -> bool:
        return isinstance(flag, str) and self._state.has_story_flag(flag)

    def get_var(self, key: Any, default: Any = None) -> Any:
        value = self._resolve(key)
        return default if value is None else value

    def has_var(self, key: Any) -> bool:
        return self._resolve(key) is not None

    def player_chose(self, choice_text: Any, scene: Any = None) -> bool:
        if not isinstance(choice_text, str):
            return False
        return self._state.player_chose(choice_text, scene if isinstance(scene, str) else None)

    def choice_count(self) -> int:
        return len(self._state.get_choice_history())

    def _resolve(self, key: Any) -> Any:
        if not isinstance(key, str) or not key:
            return None
        root_key, _, nested_path = key.partition(".")
        root = self._state.get_variable(root_key)
        if not nested_path:
            return root
        return get_nested_value(root, nested_path)


def format_time(minutes: Any) -> str:
    total = int(safe_number(minutes))
    if total < 60:
        return f"{total}m"
    return f"{total // 60}h {total % 60}m"


def register_state_helpers(registry: HelperRegistry, state_manager: GameStateManager) -> None:
    helpers = StateHelpers(state_manager)
    registry.register("hasFlag", helpers.has_flag, "state")
    registry.register("getVar", helpers.get_var, "state")
    registry.register("hasVar", helpers.has_var, "state")
    registry.register("playerChose", helpers.player_chose, "state")
    registry.register("choiceCount", helpers.choice_count, "state")
    registry.register("formatTime", format_time, "state")
