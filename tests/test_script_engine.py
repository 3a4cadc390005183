from vnscript.data.script_parser import ScriptParser
from vnscript.domain.defs import ActionDef, ActionInstruction, ParsedScene, SourceLocation
from vnscript.services.game_state_manager import GameStateManager
from vnscript.services.script_engine import ScriptEngine
from vnscript.services.template_bridge import TemplateBridge


def _make_engine(script: str) -> tuple[ScriptEngine, GameStateManager]:
    state = GameStateManager()
    engine = ScriptEngine(state, TemplateBridge(state))
    engine.load_scenes(ScriptParser().parse_text(script, "test.yaml"))
    return engine, state


_CONDITIONAL_SCRIPT = """
check:
  - if: gt (length items) 1
    then: multi
    else: single
"""


def test_conditional_picks_then_branch() -> None:
    engine, state = _make_engine(_CONDITIONAL_SCRIPT)
    state.set_variable("items", [1, 2])

    step = engine.start_scene("check")

    assert step.type == "display_dialogue"
    assert step.content == "multi"


def test_conditional_picks_else_branch() -> None:
    engine, state = _make_engine(_CONDITIONAL_SCRIPT)
    state.set_variable("items", [1])

    assert engine.start_scene("check").content == "single"


def test_conditional_on_game_time() -> None:
    engine, _ = _make_engine(
        """
clock:
  - action:
      type: addTime
      minutes: 90
  - if: gt gameTime 60
    then: late
    else: early
"""
    )

    assert engine.start_scene("clock").content == "late"


def test_false_condition_without_else_resumes_after_conditional() -> None:
    engine, _ = _make_engine("start:\n  - if: hasFlag \"nope\"\n    then: hidden\n  - shown\n")

    assert engine.start_scene("start").content == "shown"


def test_branch_resumes_parent_sequence() -> None:
    engine, _ = _make_engine(
        """
start:
  - if: "true"
    then:
      - inner one
      - inner two
  - after
"""
    )

    first = engine.start_scene("start")
    second = engine.continue_()
    third = engine.continue_()
    done = engine.continue_()

    assert [first.content, second.content, third.content] == ["inner one", "inner two", "after"]
    assert first.can_continue and second.can_continue
    assert not third.can_continue
    assert done.type == "scene_complete"
    assert engine.status == "scene_complete"


def test_jump_moves_to_target_scene_with_cursor_at_zero() -> None:
    engine, state = _make_engine(
        """
a:
  - goto: b
b:
  - say: Which way?
    choices:
      - text: North
"""
    )

    step = engine.start_scene("a")

    assert step.type == "presenting_choices"
    assert state.get_current_scene() == "b"
    assert state.get_current_instruction() == 0


def test_jump_after_continue_lands_in_target() -> None:
    engine, state = _make_engine("a:\n  - hello\n  - goto: b\nb: []\n")

    engine.start_scene("a")
    step = engine.continue_()

    assert step.type == "scene_complete"
    assert state.get_current_scene() == "b"
    assert state.get_current_instruction() == 0


def test_jump_into_plain_dialogue_advances_past_displayed_line() -> None:
    engine, state = _make_engine("a:\n  - goto: b\nb:\n  - first line\n  - second line\n")

    step = engine.start_scene("a")

    assert step.content == "first line"
    assert step.can_continue
    assert state.get_current_scene() == "b"
    assert state.get_current_instruction() == 1
    assert engine.continue_().content == "second line"


def test_jump_to_unknown_scene_is_error_step() -> None:
    engine, _ = _make_engine("a:\n  - goto: nowhere\n")

    step = engine.start_scene("a")

    assert step.type == "error"
    assert "nowhere" in step.message
    assert engine.status == "error"


def test_start_unknown_scene_returns_error_and_keeps_state() -> None:
    engine, state = _make_engine("a:\n  - hello\n")

    step = engine.start_scene("does_not_exist")

    assert step.type == "error"
    assert engine.status == "idle"
    assert state.get_current_scene() == ""


def test_actions_run_without_yielding_steps() -> None:
    engine, state = _make_engine(
        """
start:
  - actions:
      - type: setVar
        key: name
        value: Mara
      - type: addVar
        key: gold
        value: 10
      - type: setFlag
        flag: ready
      - type: addToList
        list: bag
        item: "{{name}}'s rope"
      - type: addTime
        minutes: 90
  - "{{name}} has {{gold}} gold at {{computed.gameTime}}"
"""
    )

    step = engine.start_scene("start")

    assert step.content == "Mara has 10 gold at 01:30"
    assert state.has_story_flag("ready")
    assert state.get_list("bag") == ["Mara's rope"]


def test_choices_record_history_apply_actions_and_jump() -> None:
    engine, state = _make_engine(
        """
start:
  - say: Pick
    choices:
      - text: Take the coin
        actions:
          - type: addVar
            key: gold
            value: 1
        goto: end
      - text: Leave it
  - You walk away.
end:
  - "Gold: {{gold}}"
"""
    )

    presented = engine.start_scene("start")
    assert [choice.text for choice in presented.choices] == ["Take the coin", "Leave it"]
    assert presented.choices[0].target == "end"
    assert not presented.can_continue
    assert engine.status == "awaiting_choice"

    step = engine.choose(0)

    assert step.content == "Gold: 1"
    record = state.get_choice_history()[0]
    assert (record.choice_text, record.scene, record.choice_index) == ("Take the coin", "start", 0)


def test_choice_without_target_resumes_after_dialogue() -> None:
    engine, _ = _make_engine("start:\n  - say: Pick\n    choices: [Stay]\n  - You stay.\n")

    engine.start_scene("start")

    assert engine.choose(0).content == "You stay."


def test_continue_while_awaiting_choice_is_error() -> None:
    engine, _ = _make_engine("start:\n  - say: Pick\n    choices: [One]\n")
    engine.start_scene("start")

    step = engine.continue_()

    assert step.type == "error"
    assert "Make a choice first" in step.message
    assert engine.status == "awaiting_choice"


def test_out_of_range_choice_keeps_awaiting() -> None:
    engine, state = _make_engine("start:\n  - say: Pick\n    choices: [One]\n")
    engine.start_scene("start")

    step = engine.choose(5)

    assert step.type == "error"
    assert engine.status == "awaiting_choice"
    assert state.get_choice_history() == []
    assert engine.choose(0).type == "scene_complete"


def test_choose_without_pending_choices_is_error() -> None:
    engine, _ = _make_engine("start:\n  - hello\n")
    engine.start_scene("start")

    assert engine.choose(0).type == "error"


def test_conditional_choices_are_filtered() -> None:
    engine, state = _make_engine(
        """
start:
  - say: Pick
    choices:
      - text: Secret
        condition: hasFlag "key"
      - text: Normal
"""
    )

    assert [choice.text for choice in engine.start_scene("start").choices] == ["Normal"]

    state.set_story_flag("key")
    assert [choice.text for choice in engine.start_scene("start").choices] == ["Secret", "Normal"]


def test_all_choices_filtered_treats_dialogue_as_plain() -> None:
    engine, _ = _make_engine(
        """
start:
  - say: Nothing to pick
    choices:
      - text: Secret
        condition: hasFlag "key"
  - next line
"""
    )

    step = engine.start_scene("start")

    assert step.type == "display_dialogue"
    assert step.content == "Nothing to pick"
    assert engine.continue_().content == "next line"


def test_unknown_action_type_is_error_step_and_restartable() -> None:
    state = GameStateManager()
    engine = ScriptEngine(state, TemplateBridge(state))
    location = SourceLocation(file="test.yaml", line=1, scene="start")
    engine.load_scenes(
        [
            ParsedScene(
                name="start",
                instructions=(ActionInstruction(source_location=location, actions=(ActionDef(type="explode"),)),),
            ),
            ParsedScene(name="safe", instructions=()),
        ]
    )

    step = engine.start_scene("start")

    assert step.type == "error"
    assert "explode" in step.message
    assert "test.yaml:1" in step.message
    assert engine.start_scene("safe").type == "scene_complete"


def test_mistyped_action_field_is_error_step() -> None:
    engine, state = _make_engine("start:\n  - action:\n      type: addVar\n      key: gold\n      value: lots\n")

    step = engine.start_scene("start")

    assert step.type == "error"
    assert "must be a number" in step.message
    assert state.get_variable("gold") is None


def test_invalid_action_list_applies_nothing_even_when_continued() -> None:
    engine, state = _make_engine(
        """
start:
  - actions:
      - type: addVar
        key: gold
        value: 5
      - type: addToList
        list: bag
        item: rope
      - type: bogus
"""
    )

    first = engine.start_scene("start")
    second = engine.continue_()

    assert first.type == second.type == "error"
    assert "bogus" in second.message
    assert state.get_variable("gold") is None
    assert state.get_list("bag") == []


def test_template_failure_is_error_step() -> None:
    engine, _ = _make_engine("start:\n  - \"{{nope 1}}\"\n")

    step = engine.start_scene("start")

    assert step.type == "error"
    assert engine.status == "error"


def test_speaker_and_text_are_rendered() -> None:
    engine, state = _make_engine("start:\n  - speaker: \"{{uppercase who}}\"\n    say: \"Hi {{who}}\"\n")
    state.set_variable("who", "mara")

    step = engine.start_scene("start")

    assert step.speaker == "MARA"
    assert step.content == "Hi mara"


def test_start_scene_at_instruction_index() -> None:
    engine, state = _make_engine("start:\n  - one\n  - two\n")

    step = engine.start_scene("start", 1)

    assert step.content == "two"
    assert state.get_current_instruction() == 2
