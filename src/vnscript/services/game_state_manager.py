"""Owner of the mutable interpreter state."""
from __future__ import annotations

import copy
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from vnscript.core.types import JsonValue
from vnscript.domain.state import ChoiceRecord, GameState

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0.0"
PATH_SEPARATOR = "."
GAME_TIME_KEY = "gameTime"
LEGACY_TIME_KEY = "currentTime"
BRANCH_NAMES = ("then", "else")

SerializedState = Dict[str, Any]


class GameStateManager:
    """Applies atomic operations to a single GameState.

    Callers never receive references into the live containers: every accessor
    that returns a list, dict or set hands back an independent copy.
    """

    def __init__(self, initial_state: GameState | None = None) -> None:
        self._state = copy.deepcopy(initial_state) if initial_state is not None else GameState()

    # Position
    def set_current_scene(self, scene: str) -> None:
        self._state.current_scene = scene

    def get_current_scene(self) -> str:
        return self._state.current_scene

    def set_current_instruction(self, index: int) -> None:
        self._state.current_instruction = max(0, int(index))

    def get_current_instruction(self) -> int:
        return self._state.current_instruction

    def set_branch_path(self, path: Iterable[Tuple[str, int]]) -> None:
        """Record the open conditional frames as (branch, index) pairs."""
        self._state.branch_path = [(branch, index) for branch, index in path]

    def get_branch_path(self) -> List[Tuple[str, int]]:
        return list(self._state.branch_path)

    # Story flags
    def set_story_flag(self, flag: str) -> None:
        self._state.story_flags.add(flag)

    def clear_story_flag(self, flag: str) -> None:
        self._state.story_flags.discard(flag)

    def has_story_flag(self, flag: str) -> bool:
        return flag in self._state.story_flags

    def get_story_flags(self) -> set[str]:
        return set(self._state.story_flags)

    # Variables
    def set_variable(self, key: str, value: JsonValue) -> None:
        self._state.variables[key] = copy.deepcopy(value)

    def get_variable(self, key: str) -> JsonValue:
        return copy.deepcopy(self._state.variables.get(key))

    def has_variable(self, key: str) -> bool:
        return key in self._state.variables

    def get_variables(self) -> Dict[str, JsonValue]:
        return copy.deepcopy(self._state.variables)

    def add_to_variable(self, key: str, delta: float) -> None:
        """Increment a flat or dotted-path numeric variable by delta."""
        if PATH_SEPARATOR not in key:
            self.set_variable(key, _as_number(self._state.variables.get(key)) + delta)
            return
        root_key, nested_path = key.split(PATH_SEPARATOR, 1)
        root = self.get_variable(root_key)
        if not isinstance(root, dict):
            root = {}
        current = _as_number(get_nested_value(root, nested_path))
        set_nested_value(root, nested_path, current + delta)
        self.set_variable(root_key, root)

    def set_bulk_variables(self, variables: Mapping[str, JsonValue]) -> None:
        for key, value in variables.items():
            self.set_variable(str(key), value)

    def set_bulk_flags(self, flags: Iterable[object]) -> None:
        for flag in flags:
            if isinstance(flag, str) and flag:
                self.set_story_flag(flag)

    # Choice history
    def add_choice(self, record: ChoiceRecord) -> None:
        self._state.choice_history.append(copy.copy(record))

    def get_choice_history(self) -> List[ChoiceRecord]:
        return [copy.copy(record) for record in self._state.choice_history]

    def player_chose(self, choice_text: str, scene: str | None = None) -> bool:
        return any(
            record.choice_text == choice_text and (not scene or record.scene == scene)
            for record in self._state.choice_history
        )

    # Lists
    def get_list(self, name: str) -> List[JsonValue]:
        value = self.get_variable(name)
        return value if isinstance(value, list) else []

    def set_list(self, name: str, items: List[JsonValue]) -> None:
        self.set_variable(name, list(items))

    def add_to_list(self, name: str, item: JsonValue) -> None:
        items = self.get_list(name)
        items.append(item)
        self.set_list(name, items)

    # Time
    def add_time(self, minutes: float) -> None:
        """Advance gameTime and mirror the value into the legacy currentTime key."""
        new_time = self.get_current_time() + minutes
        self.set_variable(GAME_TIME_KEY, new_time)
        self.set_variable(LEGACY_TIME_KEY, new_time)

    def get_current_time(self) -> float:
        for key in (GAME_TIME_KEY, LEGACY_TIME_KEY):
            value = self._state.variables.get(key)
            if _is_number(value) and value:
                return value
        return 0

    # Whole-state access
    def get_state(self) -> GameState:
        return copy.deepcopy(self._state)

    def reset(self) -> None:
        self._state = GameState()

    def validate_state(self) -> Tuple[bool, List[str]]:
        errors: List[str] = []
        if not isinstance(self._state.current_scene, str):
            errors.append("Current scene must be a string")
        if not isinstance(self._state.current_instruction, int) or self._state.current_instruction < 0:
            errors.append("Current instruction must be a non-negative integer")
        if not isinstance(self._state.variables, dict):
            errors.append("Variables must be a mapping")
        if not isinstance(self._state.story_flags, set):
            errors.append("Story flags must be a set")
        if not isinstance(self._state.choice_history, list):
            errors.append("Choice history must be a list")
        return not errors, errors

    # Persistence
    def serialize(self) -> SerializedState:
        """Return a JSON-serializable snapshot of the state."""
        return {
            "currentScene": self._state.current_scene,
            "currentInstruction": self._state.current_instruction,
            "variables": [[key, copy.deepcopy(value)] for key, value in self._state.variables.items()],
            "storyFlags": sorted(self._state.story_flags),
            "choiceHistory": [_serialize_choice(record) for record in self._state.choice_history],
            "branchPath": [[branch, index] for branch, index in self._state.branch_path],
            "schemaVersion": SCHEMA_VERSION,
            "saveDate": datetime.now(timezone.utc).isoformat(),
        }

    def deserialize(self, data: object) -> None:
        """Replace the state from a serialized payload; malformed fields fall back to defaults."""
        if not isinstance(data, Mapping):
            logger.warning("Ignoring non-mapping game state payload; state reset")
            self.reset()
            return
        version = data.get("schemaVersion")
        if version is not None and version != SCHEMA_VERSION:
            logger.info("Loading game state with schema version %s (current %s)", version, SCHEMA_VERSION)
        scene = data.get("currentScene")
        instruction = data.get("currentInstruction")
        self._state = GameState(
            current_scene=scene if isinstance(scene, str) else "",
            current_instruction=instruction if isinstance(instruction, int) and instruction >= 0 else 0,
            variables=_coerce_variables(data.get("variables")),
            story_flags={flag for flag in _as_iterable(data.get("storyFlags")) if isinstance(flag, str)},
            choice_history=_coerce_choice_history(data.get("choiceHistory")),
            branch_path=_coerce_branch_path(data.get("branchPath")),
        )


def get_nested_value(obj: object, path: str) -> JsonValue:
    """Walk a dotted path through nested dicts; missing segments give None."""
    if not path:
        return None
    current = obj
    for part in path.split(PATH_SEPARATOR):
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return None
    return current


def set_nested_value(obj: Dict[str, JsonValue], path: str, value: JsonValue) -> None:
    """Write value at a dotted path, creating intermediate dicts as needed."""
    parts = path.split(PATH_SEPARATOR)
    current = obj
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: object) -> float:
    return value if _is_number(value) else 0


def _as_iterable(value: object) -> Iterable[object]:
    return value if isinstance(value, (list, tuple, set)) else ()


def _coerce_variables(raw: object) -> Dict[str, JsonValue]:
    if isinstance(raw, Mapping):
        return {str(key): copy.deepcopy(value) for key, value in raw.items()}
    variables: Dict[str, JsonValue] = {}
    for entry in _as_iterable(raw):
        if isinstance(entry, (list, tuple)) and len(entry) == 2 and isinstance(entry[0], str):
            variables[entry[0]] = copy.deepcopy(entry[1])
    return variables


def _serialize_choice(record: ChoiceRecord) -> Dict[str, Any]:
    payload = asdict(record)
    return {
        "choiceText": payload["choice_text"],
        "scene": payload["scene"],
        "instruction": payload["instruction"],
        "choiceIndex": payload["choice_index"],
        "timestamp": payload["timestamp"],
    }


def _coerce_choice_history(raw: object) -> List[ChoiceRecord]:
    history: List[ChoiceRecord] = []
    for entry in _as_iterable(raw):
        if not isinstance(entry, Mapping):
            continue
        text = entry.get("choiceText")
        scene = entry.get("scene")
        if not isinstance(text, str):
            continue
        instruction = entry.get("instruction")
        choice_index = entry.get("choiceIndex")
        timestamp = entry.get("timestamp")
        history.append(
            ChoiceRecord(
                choice_text=text,
                scene=scene if isinstance(scene, str) else "",
                instruction=instruction if isinstance(instruction, int) else None,
                choice_index=choice_index if isinstance(choice_index, int) else None,
                timestamp=timestamp if isinstance(timestamp, int) else None,
            )
        )
    return history


def _coerce_branch_path(raw: object) -> List[Tuple[str, int]]:
    path: List[Tuple[str, int]] = []
    for entry in _as_iterable(raw):
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            return []
        branch, index = entry
        if branch not in BRANCH_NAMES or isinstance(index, bool) or not isinstance(index, int) or index < 0:
            return []
        path.append((branch, index))
    return path
