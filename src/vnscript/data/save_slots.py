"""File-system helpers for save slot storage."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from vnscript import config
from vnscript.services.errors import SaveLoadError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SlotMetadata:
    """Describes the contents of a save slot for menu display."""

    slot: int
    exists: bool
    metadata: Dict[str, Any] | None = None
    is_corrupt: bool = False


class SaveSlotStore:
    """Handles slot-based persistence on disk."""

    def __init__(self, base_dir: Path | str | None = None, slot_count: int = 3) -> None:
        self._base_dir = Path(base_dir) if base_dir is not None else config.get_save_dir()
        self._slot_count = slot_count

    @classmethod
    def from_config(cls, engine_config: config.EngineConfig) -> "SaveSlotStore":
        return cls(engine_config.get_save_path(), engine_config.slot_count)

    @property
    def slot_count(self) -> int:
        return self._slot_count

    def list_slots(self) -> List[SlotMetadata]:
        """Return metadata for each configured slot."""
        slots: List[SlotMetadata] = []
        for slot_index in range(1, self._slot_count + 1):
            path = self._slot_path(slot_index)
            if not path.exists():
                slots.append(SlotMetadata(slot=slot_index, exists=False))
                continue
            try:
                payload = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                logger.warning("Save slot %d is unreadable", slot_index)
                slots.append(SlotMetadata(slot=slot_index, exists=True, metadata=None, is_corrupt=True))
                continue
            raw_metadata = payload.get("metadata") if isinstance(payload, dict) else None
            metadata = raw_metadata if isinstance(raw_metadata, dict) else None
            slots.append(
                SlotMetadata(slot=slot_index, exists=True, metadata=metadata, is_corrupt=not isinstance(payload, dict))
            )
        return slots

    def slot_exists(self, slot: int) -> bool:
        """Return True if the slot has data on disk."""
        self._validate_slot(slot)
        return self._slot_path(slot).exists()

    def read_slot(self, slot: int) -> Dict[str, Any]:
        """Load and parse the payload stored in the requested slot."""
        self._validate_slot(slot)
        path = self._slot_path(slot)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise SaveLoadError(f"Save slot {slot} is empty.") from exc
        except (OSError, ValueError) as exc:
            raise SaveLoadError(f"Save slot {slot} is corrupt: {exc}") from exc
        if not isinstance(payload, dict):
            raise SaveLoadError(f"Save slot {slot} is corrupt: expected a JSON object.")
        return payload

    def write_slot(self, slot: int, payload: Dict[str, Any]) -> None:
        """Persist the payload into the requested slot."""
        self._validate_slot(slot)
        self._base_dir.mkdir(parents=True, exist_ok=True)
        path = self._slot_path(slot)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        logger.info("Wrote save slot %d", slot)

    def delete_slot(self, slot: int) -> None:
        """Delete the requested slot payload if it exists."""
        self._validate_slot(slot)
        path = self._slot_path(slot)
        try:
            path.unlink()
        except FileNotFoundError:
            return

    def _slot_path(self, slot: int) -> Path:
        return self._base_dir / f"slot_{slot}.json"

    def _validate_slot(self, slot: int) -> None:
        if not 1 <= slot <= self._slot_count:
            raise ValueError(f"Slot index must be between 1 and {self._slot_count}.")
