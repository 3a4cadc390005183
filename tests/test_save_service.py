from __future__ import annotations

from types import MappingProxyType

import pytest

from vnscript.services.errors import SaveLoadError
from vnscript.services.game_state_manager import GameStateManager
from vnscript.services.save_service import SaveService


def _build_state() -> GameStateManager:
    state = GameStateManager()
    state.set_current_scene("market")
    state.set_current_instruction(2)
    state.set_variable("gold", 12)
    state.set_story_flag("met_merchant")
    state.add_time(95)
    return state


def test_create_save_wraps_state_with_metadata() -> None:
    service = SaveService(_build_state())

    payload = service.create_save({"slotName": "Harbour"})

    assert payload["version"] == SaveService.SAVE_VERSION
    assert isinstance(payload["timestamp"], int)
    assert payload["gameState"]["currentScene"] == "market"
    assert payload["metadata"] == {"currentScene": "market", "playtime": 95, "slotName": "Harbour"}
    assert SaveService.is_valid_save(payload)


def test_import_save_restores_state() -> None:
    payload = SaveService(_build_state()).create_save()
    target = GameStateManager()

    SaveService(target).import_save(payload)

    assert target.get_current_scene() == "market"
    assert target.get_current_instruction() == 2
    assert target.get_variable("gold") == 12
    assert target.has_story_flag("met_merchant")


def test_import_save_accepts_other_versions() -> None:
    payload = SaveService(_build_state()).create_save()
    payload["version"] = "0.9.0"
    target = GameStateManager()

    SaveService(target).import_save(payload)

    assert target.get_current_scene() == "market"


def test_import_save_accepts_read_only_mapping() -> None:
    payload = SaveService(_build_state()).create_save()
    target = GameStateManager()

    SaveService(target).import_save(MappingProxyType(payload))

    assert target.get_variable("gold") == 12


@pytest.mark.parametrize(
    "payload",
    [
        None,
        "save",
        {"gameState": {}, "version": "1.0.0"},
        {"gameState": {}, "timestamp": True, "version": "1.0.0"},
        {"gameState": [], "timestamp": 1, "version": "1.0.0"},
        {"gameState": {}, "timestamp": 1},
    ],
)
def test_invalid_save_payload_is_rejected(payload: object) -> None:
    state = _build_state()

    with pytest.raises(SaveLoadError):
        SaveService(state).import_save(payload)

    assert state.get_current_scene() == "market"
