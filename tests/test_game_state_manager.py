import json

from vnscript.domain.state import ChoiceRecord, GameState
from vnscript.services.game_state_manager import (
    SCHEMA_VERSION,
    GameStateManager,
    get_nested_value,
    set_nested_value,
)


def test_add_to_variable_creates_and_accumulates() -> None:
    manager = GameStateManager()

    manager.add_to_variable("gold", 5)
    assert manager.get_variable("gold") == 5

    manager.add_to_variable("gold", 7)
    assert manager.get_variable("gold") == 12


def test_add_to_variable_dotted_path() -> None:
    manager = GameStateManager()

    manager.add_to_variable("player.level", 5)
    assert manager.get_variable("player") == {"level": 5}

    manager.add_to_variable("player.level", 3)
    assert manager.get_variable("player")["level"] == 8


def test_add_to_variable_replaces_non_numeric_leaf_and_non_dict_root() -> None:
    manager = GameStateManager()
    manager.set_variable("stats", "broken")
    manager.set_variable("name", "Mara")

    manager.add_to_variable("stats.hp", 2)
    manager.add_to_variable("name", 1)

    assert manager.get_variable("stats") == {"hp": 2}
    assert manager.get_variable("name") == 1


def test_add_time_keeps_both_keys_in_sync() -> None:
    manager = GameStateManager()

    manager.add_time(30)
    assert manager.get_variable("gameTime") == manager.get_variable("currentTime") == 30

    manager.add_time(15)
    assert manager.get_variable("gameTime") == manager.get_variable("currentTime") == 45
    assert manager.get_current_time() == 45


def test_get_current_time_falls_back_to_legacy_key() -> None:
    manager = GameStateManager()
    manager.set_variable("currentTime", 90)

    assert manager.get_current_time() == 90


def test_story_flags_are_idempotent() -> None:
    manager = GameStateManager()

    manager.set_story_flag("met_guide")
    manager.set_story_flag("met_guide")
    assert manager.get_story_flags() == {"met_guide"}

    manager.clear_story_flag("met_guide")
    manager.clear_story_flag("met_guide")
    assert not manager.has_story_flag("met_guide")


def test_accessors_return_defensive_copies() -> None:
    manager = GameStateManager()
    inventory = ["rope"]
    manager.set_variable("inventory", inventory)
    inventory.append("torch")

    returned = manager.get_list("inventory")
    returned.append("map")
    manager.get_variables()["inventory"].append("coin")
    manager.get_story_flags().add("leaked")

    assert manager.get_variable("inventory") == ["rope"]
    assert not manager.has_story_flag("leaked")


def test_add_to_list_does_not_mutate_previous_result() -> None:
    manager = GameStateManager()
    manager.add_to_list("items", "lantern")
    before = manager.get_list("items")

    manager.add_to_list("items", "map")

    assert before == ["lantern"]
    assert manager.get_list("items") == ["lantern", "map"]


def test_get_list_of_non_list_is_empty() -> None:
    manager = GameStateManager()
    manager.set_variable("items", 3)

    assert manager.get_list("items") == []
    assert manager.get_list("missing") == []


def test_player_chose_optionally_filters_by_scene() -> None:
    manager = GameStateManager()
    manager.add_choice(ChoiceRecord(choice_text="Go left", scene="crossroads"))

    assert manager.player_chose("Go left")
    assert manager.player_chose("Go left", "crossroads")
    assert not manager.player_chose("Go left", "harbour")
    assert not manager.player_chose("Go right")


def test_serialize_round_trip_preserves_variables_and_flags() -> None:
    manager = GameStateManager()
    manager.set_current_scene("market")
    manager.set_current_instruction(3)
    manager.set_variable("player", {"name": "Mara", "level": 2})
    manager.set_variable("items", ["lantern"])
    manager.set_story_flag("heard_rumour")
    manager.add_choice(ChoiceRecord(choice_text="Visit the market", scene="intro", choice_index=0))

    payload = json.loads(json.dumps(manager.serialize()))
    restored = GameStateManager()
    restored.deserialize(payload)

    assert payload["schemaVersion"] == SCHEMA_VERSION
    assert ["items", ["lantern"]] in payload["variables"]
    assert restored.get_variables() == manager.get_variables()
    assert restored.get_story_flags() == {"heard_rumour"}
    assert restored.get_current_scene() == "market"
    assert restored.get_current_instruction() == 3
    assert restored.get_choice_history()[0].choice_text == "Visit the market"


def test_deserialize_defaults_malformed_fields() -> None:
    manager = GameStateManager()
    manager.set_variable("gold", 5)

    manager.deserialize(
        {
            "currentScene": 7,
            "currentInstruction": -2,
            "variables": "nope",
            "storyFlags": ["ok", 3],
            "choiceHistory": [{"choiceText": 1}, {"choiceText": "Yes", "scene": "a"}],
            "schemaVersion": "9.9.9",
        }
    )

    assert manager.get_current_scene() == ""
    assert manager.get_current_instruction() == 0
    assert manager.get_variables() == {}
    assert manager.get_story_flags() == {"ok"}
    assert [record.choice_text for record in manager.get_choice_history()] == ["Yes"]


def test_branch_path_survives_serialization() -> None:
    manager = GameStateManager()
    manager.set_branch_path([("then", 2), ("else", 0)])

    payload = json.loads(json.dumps(manager.serialize()))
    restored = GameStateManager()
    restored.deserialize(payload)

    assert payload["branchPath"] == [["then", 2], ["else", 0]]
    assert restored.get_branch_path() == [("then", 2), ("else", 0)]


def test_malformed_branch_path_is_dropped() -> None:
    manager = GameStateManager()

    for raw in ([["sideways", 1]], [["then", -1]], [["then"]], [["then", True]], "then"):
        manager.deserialize({"currentScene": "a", "branchPath": raw})
        assert manager.get_branch_path() == [], raw


def test_deserialize_non_mapping_resets() -> None:
    manager = GameStateManager()
    manager.set_story_flag("x")

    manager.deserialize(None)

    assert manager.get_state() == GameState()


def test_deserialize_accepts_mapping_variables() -> None:
    manager = GameStateManager()

    manager.deserialize({"variables": {"gold": 3}})

    assert manager.get_variable("gold") == 3


def test_bulk_setters_and_validate_state() -> None:
    manager = GameStateManager()

    manager.set_bulk_variables({"a": 1, "b": [2]})
    manager.set_bulk_flags(["x", "", 5, "y"])

    assert manager.get_variables() == {"a": 1, "b": [2]}
    assert manager.get_story_flags() == {"x", "y"}
    assert manager.validate_state() == (True, [])


def test_reset_clears_everything() -> None:
    manager = GameStateManager()
    manager.set_variable("gold", 1)
    manager.set_current_scene("intro")

    manager.reset()

    assert manager.get_variables() == {}
    assert manager.get_current_scene() == ""


def test_nested_value_helpers() -> None:
    data: dict = {}
    set_nested_value(data, "a.b.c", 1)

    assert data == {"a": {"b": {"c": 1}}}
    assert get_nested_value(data, "a.b.c") == 1
    assert get_nested_value(data, "a.x.c") is None
    assert get_nested_value({"list": [10, 20]}, "list.1") == 20
