from __future__ import annotations

import pytest

from vnscript.config import EngineConfig
from vnscript.data.save_slots import SaveSlotStore
from vnscript.services.errors import SaveLoadError


def test_write_read_and_list_slots(tmp_path) -> None:
    store = SaveSlotStore(tmp_path, slot_count=3)
    payload = {"gameState": {}, "metadata": {"currentScene": "inn"}}

    store.write_slot(2, payload)

    assert store.slot_exists(2)
    assert not store.slot_exists(1)
    assert store.read_slot(2) == payload
    slots = store.list_slots()
    assert [slot.exists for slot in slots] == [False, True, False]
    assert slots[1].metadata == {"currentScene": "inn"}


def test_delete_slot_is_idempotent(tmp_path) -> None:
    store = SaveSlotStore(tmp_path)
    store.write_slot(1, {"metadata": {}})

    store.delete_slot(1)
    store.delete_slot(1)

    assert not store.slot_exists(1)


def test_corrupt_slot_is_flagged(tmp_path) -> None:
    store = SaveSlotStore(tmp_path)
    (tmp_path / "slot_1.json").write_text("{not json", encoding="utf-8")

    slot = store.list_slots()[0]

    assert slot.exists and slot.is_corrupt
    with pytest.raises(SaveLoadError, match="corrupt"):
        store.read_slot(1)


def test_reading_empty_slot_raises(tmp_path) -> None:
    with pytest.raises(SaveLoadError, match="empty"):
        SaveSlotStore(tmp_path).read_slot(3)


@pytest.mark.parametrize("slot", [0, 4])
def test_slot_index_is_validated(tmp_path, slot: int) -> None:
    with pytest.raises(ValueError):
        SaveSlotStore(tmp_path, slot_count=3).write_slot(slot, {})


def test_store_from_config(tmp_path) -> None:
    store = SaveSlotStore.from_config(EngineConfig(slot_count=5, save_dir=str(tmp_path)))

    store.write_slot(5, {"metadata": {}})

    assert store.slot_count == 5
    assert (tmp_path / "slot_5.json").exists()
