"""Serialization helpers for manual save/load."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Mapping, cast

from vnscript.services.errors import SaveLoadError
from vnscript.services.game_state_manager import GameStateManager

logger = logging.getLogger(__name__)

SavePayload = Dict[str, Any]


class SaveService:
    """Wraps a serialized game state in a versioned save payload."""

    SAVE_VERSION = "1.0.0"

    def __init__(self, state_manager: GameStateManager) -> None:
        self._state = state_manager

    def create_save(self, metadata: Mapping[str, Any] | None = None) -> SavePayload:
        """Return a JSON-serializable payload for disk persistence."""
        return {
            "gameState": self._state.serialize(),
            "timestamp": int(time.time() * 1000),
            "version": self.SAVE_VERSION,
            "metadata": self._build_metadata(metadata),
        }

    @staticmethod
    def is_valid_save(payload: object) -> bool:
        if not isinstance(payload, Mapping):
            return False
        timestamp = payload.get("timestamp")
        return (
            isinstance(payload.get("gameState"), Mapping)
            and isinstance(timestamp, (int, float))
            and not isinstance(timestamp, bool)
            and isinstance(payload.get("version"), str)
        )

    def import_save(self, payload: object) -> None:
        """Replace the live state from a save payload."""
        if not self.is_valid_save(payload):
            raise SaveLoadError("Save data is missing required sections.")
        save = cast(Mapping[str, Any], payload)
        if save["version"] != self.SAVE_VERSION:
            logger.info("Importing save with version %s (current %s)", save["version"], self.SAVE_VERSION)
        self._state.deserialize(save["gameState"])
        logger.info("Imported save for scene '%s'", self._state.get_current_scene())

    def _build_metadata(self, extra: Mapping[str, Any] | None) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "currentScene": self._state.get_current_scene(),
            "playtime": self._state.get_current_time(),
        }
        if extra:
            metadata.update(extra)
        return metadata
