import pytest

from vnscript.services.helpers.comparison import eq, gt
from vnscript.services.helpers.collection import length
from vnscript.services.template_engine import TemplateEngine, TemplateSyntaxError

_HELPERS = {"eq": eq, "gt": gt, "length": length}


def _render(template: str, context: dict | None = None) -> str:
    return TemplateEngine().render(template, _HELPERS, context or {})


def test_plain_text_is_returned_unchanged() -> None:
    assert _render("No tags here") == "No tags here"


def test_path_lookup_and_missing_values() -> None:
    context = {"player": {"name": "Mara", "stats": {"hp": 12}}}

    assert _render("{{player.name}} has {{player.stats.hp}} hp", context) == "Mara has 12 hp"
    assert _render("[{{player.missing.deep}}]", context) == "[]"


def test_value_formatting() -> None:
    context = {"flag": True, "whole": 3.0, "part": 2.5, "items": ["a", "b"], "nothing": None}

    assert _render("{{flag}} {{whole}} {{part}} {{items}} [{{nothing}}]", context) == "true 3 2.5 a, b []"


def test_output_is_not_escaped() -> None:
    context = {"html": "<b>bold</b> & more"}

    assert _render("{{html}}", context) == "<b>bold</b> & more"
    assert _render("{{{html}}}", context) == "<b>bold</b> & more"


def test_helper_call_with_subexpression_and_literals() -> None:
    context = {"items": [1, 2, 3]}

    assert _render("{{gt (length items) 2}}", context) == "true"
    assert _render("{{eq 'a' \"a\"}}", context) == "true"
    assert _render("{{eq 1 true}}", context) == "false"


def test_if_else_and_unless() -> None:
    assert _render("{{#if flag}}yes{{else}}no{{/if}}", {"flag": False}) == "no"
    assert _render("{{#if flag}}yes{{else}}no{{/if}}", {"flag": [0]}) == "yes"
    assert _render("{{#unless flag}}hidden{{/unless}}", {"flag": 0}) == "hidden"


def test_if_with_subexpression_condition() -> None:
    template = "{{#if (gt (length items) 1)}}multi{{else}}single{{/if}}"

    assert _render(template, {"items": [1, 2]}) == "multi"
    assert _render(template, {"items": [1]}) == "single"


def test_each_exposes_index_and_position_data() -> None:
    template = "{{#each items}}{{@index}}:{{this}}{{#unless @last}}, {{/unless}}{{/each}}"

    assert _render(template, {"items": ["a", "b", "c"]}) == "0:a, 1:b, 2:c"


def test_each_over_mapping_and_empty_inverse() -> None:
    assert _render("{{#each stats}}{{@key}}={{this}};{{/each}}", {"stats": {"hp": 3, "mp": 1}}) == "hp=3;mp=1;"
    assert _render("{{#each items}}x{{else}}empty{{/each}}", {"items": []}) == "empty"


def test_each_falls_back_to_outer_context() -> None:
    assert _render("{{#each items}}{{prefix}}{{this}}{{/each}}", {"items": ["a", "b"], "prefix": "-"}) == "-a-b"


def test_with_changes_context() -> None:
    context = {"player": {"name": "Mara", "level": 2}}

    assert _render("{{#with player}}{{name}} L{{level}}{{/with}}", context) == "Mara L2"


def test_helper_used_as_block() -> None:
    template = "{{#eq mood 'happy'}}smile{{else}}frown{{/eq}}"

    assert _render(template, {"mood": "happy"}) == "smile"
    assert _render(template, {"mood": "sad"}) == "frown"


def test_comments_are_dropped() -> None:
    assert _render("a{{! hidden }}b{{!-- also }} hidden --}}c") == "abc"


def test_length_property_on_lists() -> None:
    assert _render("{{items.length}}", {"items": [1, 2]}) == "2"


def test_missing_helper_with_arguments_raises() -> None:
    with pytest.raises(TemplateSyntaxError, match="Missing helper"):
        _render("{{nope 1}}")


@pytest.mark.parametrize(
    "template",
    ["{{#if x}}open", "{{/if}}", "{{#if x}}{{/each}}", "{{unclosed", "{{}}", "{{add (1}}"],
)
def test_malformed_templates_raise(template: str) -> None:
    with pytest.raises(TemplateSyntaxError):
        _render(template, {"x": True})


def test_compiled_templates_are_cached() -> None:
    engine = TemplateEngine()

    first = engine.compile("{{a}}")
    second = engine.compile("{{a}}")

    assert first is second
