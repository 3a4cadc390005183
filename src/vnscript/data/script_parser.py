"""Converts decoded script documents into typed scene definitions."""
from __future__ import annotations

from typing import List, Mapping, Tuple

from vnscript.data.errors import DataLoadError, ScriptParseError
from vnscript.data.yaml_loader import load_yaml_text
from vnscript.domain.defs import (
    ActionDef,
    ActionInstruction,
    ChoiceOption,
    ConditionalInstruction,
    DialogueInstruction,
    JumpInstruction,
    ParsedScene,
    ScriptInstruction,
    SourceLocation,
)

DEFAULT_FILE_NAME = "script.yaml"
_DIALOGUE_KEYS = ("say", "text", "speaker", "choices", "choice")


class ScriptParser:
    """Builds ParsedScene trees from a mapping of scene name to instruction list.

    Parsing is pure: the same document always yields the same scenes, and no
    state is read or written.
    """

    def parse_text(self, content: str, file_name: str = DEFAULT_FILE_NAME) -> List[ParsedScene]:
        """Decode YAML text and parse the resulting document."""
        try:
            document = load_yaml_text(content, file_name)
        except DataLoadError as exc:
            raise ScriptParseError(
                f"Failed to parse script: {exc}",
                SourceLocation(file=file_name, line=0, scene="root"),
            ) from exc
        return self.parse(document, file_name)

    def parse(self, document: object, file_name: str = DEFAULT_FILE_NAME) -> List[ParsedScene]:
        """Return the scenes of a document in declaration order."""
        if not isinstance(document, Mapping):
            raise ScriptParseError(
                "Invalid script format: expected a mapping of scene names to instruction lists",
                SourceLocation(file=file_name, line=1, scene="root"),
            )
        return [self._parse_scene(str(name), body, file_name) for name, body in document.items()]

    def _parse_scene(self, name: str, body: object, file_name: str) -> ParsedScene:
        if not isinstance(body, list):
            raise ScriptParseError(
                f"Scene '{name}' must be a list of instructions",
                SourceLocation(file=file_name, line=1, scene=name),
            )
        instructions = tuple(
            self.parse_instruction(item, SourceLocation(file=file_name, line=index + 1, scene=name))
            for index, item in enumerate(body)
        )
        return ParsedScene(name=name, instructions=instructions)

    def parse_instruction(self, item: object, location: SourceLocation) -> ScriptInstruction:
        """Convert one raw list entry into an instruction; the first matching shape wins."""
        if isinstance(item, str):
            return DialogueInstruction(source_location=location, text=item)

        if isinstance(item, Mapping):
            if item.get("action") or item.get("actions"):
                return ActionInstruction(
                    source_location=location,
                    actions=self._parse_actions(self._action_entries(item), location),
                )

            if item.get("if"):
                otherwise = None
                if item.get("else"):
                    otherwise = self._parse_branch(item["else"], location)
                return ConditionalInstruction(
                    source_location=location,
                    condition=self._require_str(item["if"], "Conditional 'if'", location),
                    then=self._parse_branch(item.get("then"), location),
                    otherwise=otherwise,
                )

            if item.get("goto") or item.get("jump"):
                target = item.get("goto") or item.get("jump")
                return JumpInstruction(
                    source_location=location,
                    target=self._require_str(target, "Jump target", location),
                )

            if any(item.get(key) for key in _DIALOGUE_KEYS):
                text = item.get("say") or item.get("text")
                speaker = item.get("speaker")
                raw_choices = item.get("choices") or item.get("choice")
                return DialogueInstruction(
                    source_location=location,
                    text=None if text is None else str(text),
                    speaker=None if speaker is None else str(speaker),
                    actions=self._parse_actions(self._as_list(item.get("actions")), location),
                    choices=self._parse_choices(raw_choices, location),
                )

        raise ScriptParseError("Invalid instruction format", location)

    def _parse_branch(self, raw: object, location: SourceLocation) -> Tuple[ScriptInstruction, ...]:
        # Nested entries share the enclosing entry's location.
        return tuple(self.parse_instruction(entry, location) for entry in self._as_list(raw, keep_none=True))

    @staticmethod
    def _action_entries(item: Mapping[str, object]) -> list[object]:
        actions = item.get("actions")
        if isinstance(actions, list):
            return actions
        if actions:
            return [actions]
        return [item.get("action")]

    def _parse_actions(self, raw_actions: list[object], location: SourceLocation) -> Tuple[ActionDef, ...]:
        actions: List[ActionDef] = []
        for index, entry in enumerate(raw_actions):
            if not isinstance(entry, Mapping):
                raise ScriptParseError(f"Action [{index}] must be a mapping", location)
            action_type = entry.get("type")
            if not isinstance(action_type, str) or not action_type:
                raise ScriptParseError(f"Action [{index}] requires a string 'type'", location)
            payload = {str(key): value for key, value in entry.items() if key != "type"}
            actions.append(ActionDef(type=action_type, data=payload))
        return tuple(actions)

    def _parse_choices(self, raw_choices: object, location: SourceLocation) -> Tuple[ChoiceOption, ...]:
        choices: List[ChoiceOption] = []
        for index, entry in enumerate(self._as_list(raw_choices)):
            if isinstance(entry, str):
                choices.append(ChoiceOption(text=entry))
                continue
            if not isinstance(entry, Mapping) or entry.get("text") is None:
                raise ScriptParseError(f"Choice [{index}] must be a mapping with 'text'", location)
            target = entry.get("goto") or entry.get("jump")
            condition = entry.get("condition")
            choices.append(
                ChoiceOption(
                    text=str(entry["text"]),
                    target=None if target is None else str(target),
                    condition=None if condition is None else str(condition),
                    actions=self._parse_actions(self._as_list(entry.get("actions")), location),
                )
            )
        return tuple(choices)

    @staticmethod
    def _as_list(raw: object, keep_none: bool = False) -> list[object]:
        if isinstance(raw, list):
            return raw
        if raw is None and not keep_none:
            return []
        return [raw]

    @staticmethod
    def _require_str(value: object, context: str, location: SourceLocation) -> str:
        if not isinstance(value, str):
            raise ScriptParseError(f"{context} must be a string", location)
        return value
