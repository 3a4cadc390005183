"""Execution engine that walks parsed scenes one step at a time."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

from vnscript.core.types import EngineStatus, StepType
from vnscript.core.values import is_number
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
from vnscript.domain.state import ChoiceRecord
from vnscript.services.errors import ActionValidationError, EngineError
from vnscript.services.game_state_manager import GameStateManager
from vnscript.services.template_bridge import TemplateBridge

logger = logging.getLogger(__name__)

# Upper bound on instructions processed by a single step without producing output.
MAX_AUTO_STEPS = 10_000

# Required fields per action type and the kind of value each must hold.
ACTION_FIELDS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "setVar": (("key", "str"), ("value", "any")),
    "addVar": (("key", "str"), ("value", "number")),
    "setFlag": (("flag", "str"),),
    "clearFlag": (("flag", "str"),),
    "addToList": (("list", "str"), ("item", "any")),
    "addTime": (("minutes", "number"),),
}


@dataclass(frozen=True, slots=True)
class PresentedChoice:
    """Choice as shown to the host: rendered text and its jump target."""

    text: str
    target: str | None = None


@dataclass(frozen=True, slots=True)
class ExecutionStep:
    """Result handed back to the host after each engine call."""

    type: StepType
    content: str | None = None
    speaker: str | None = None
    choices: Tuple[PresentedChoice, ...] = ()
    can_continue: bool = False
    message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.type == "error"


@dataclass(slots=True)
class _BranchFrame:
    instructions: Tuple[ScriptInstruction, ...]
    branch: str
    index: int = 0


@dataclass(slots=True)
class _PendingChoice:
    option: ChoiceOption
    text: str


class ScriptEngine:
    """State machine over a scene table.

    Status moves ``idle -> scene_active -> awaiting_choice -> scene_complete``
    or ``error``. Conditional branches run in frames stacked above the scene
    cursor. Jumps replace the scene and drop every frame.
    """

    def __init__(self, state_manager: GameStateManager, bridge: TemplateBridge) -> None:
        self._state = state_manager
        self._bridge = bridge
        self._scenes: Dict[str, ParsedScene] = {}
        self._scene_name = ""
        self._cursor = 0
        self._frames: List[_BranchFrame] = []
        self._pending: List[_PendingChoice] | None = None
        self._status: EngineStatus = "idle"
        self._last_step: ExecutionStep | None = None

    # Scene table
    def load_scenes(self, scenes: Iterable[ParsedScene]) -> None:
        self._scenes = {scene.name: scene for scene in scenes}
        logger.debug("Loaded %d scenes into engine", len(self._scenes))

    def get_scene(self, name: str) -> ParsedScene | None:
        return self._scenes.get(name)

    def get_scenes(self) -> List[ParsedScene]:
        return list(self._scenes.values())

    def swap_scenes(self, scenes: Iterable[ParsedScene]) -> bool:
        """Replace the scene table while keeping cursor, frames and pending choices.

        Returns False, leaving the table untouched, when the active scene is
        not part of the new table.
        """
        table = {scene.name: scene for scene in scenes}
        if self._scene_name and self._scene_name not in table:
            return False
        self._scenes = table
        logger.debug("Swapped scene table, %d scenes", len(table))
        return True

    def has_scene(self, name: str) -> bool:
        return name in self._scenes

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def current_scene(self) -> str:
        return self._scene_name

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def last_step(self) -> ExecutionStep | None:
        return self._last_step

    @property
    def awaiting_choice(self) -> bool:
        return self._pending is not None

    def reset(self) -> None:
        """Forget the position but keep the scene table."""
        self._scene_name = ""
        self._cursor = 0
        self._frames.clear()
        self._pending = None
        self._status = "idle"
        self._last_step = None

    def restore_position(
        self,
        scene: str,
        instruction: int,
        branch_path: Sequence[Tuple[str, int]] = (),
    ) -> bool:
        """Point the cursor at scene/instruction, reopening saved branch frames, without executing anything."""
        if scene not in self._scenes:
            return False
        self._enter(scene, instruction)
        self._reopen_frames(branch_path)
        self._status = "scene_active"
        return True

    def _reopen_frames(self, branch_path: Sequence[Tuple[str, int]]) -> None:
        for branch, index in branch_path:
            parent = self._current_instruction()
            body = None
            if isinstance(parent, ConditionalInstruction):
                body = parent.then if branch == "then" else parent.otherwise
            if not body:
                logger.warning(
                    "Saved branch path does not match scene '%s'; resuming at the conditional", self._scene_name
                )
                self._frames.clear()
                break
            self._frames.append(_BranchFrame(instructions=tuple(body), branch=branch, index=index))
        self._sync_branch_path()

    # Host operations
    def start_scene(self, name: str, instruction_index: int = 0) -> ExecutionStep:
        if name not in self._scenes:
            logger.warning("Cannot start unknown scene '%s'", name)
            return self._record(ExecutionStep(type="error", message=f'Scene "{name}" not found'))
        logger.debug("Starting scene '%s' at %d", name, instruction_index)
        self._enter(name, instruction_index)
        self._status = "scene_active"
        return self._record(self._run())

    def continue_(self) -> ExecutionStep:
        if self._pending is not None:
            logger.warning("Continue requested while a choice is pending")
            return self._record(
                ExecutionStep(
                    type="error",
                    message="Cannot continue while choices are pending. Make a choice first.",
                )
            )
        if not self._scene_name:
            return self._record(ExecutionStep(type="error", message="No scene is active"))
        return self._record(self._run())

    def choose(self, index: int) -> ExecutionStep:
        pending = self._pending
        if pending is None:
            logger.warning("Choice %s requested with no choices pending", index)
            return self._record(ExecutionStep(type="error", message="No choices are currently available"))
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(pending):
            logger.warning("Rejected choice index %r", index)
            return self._record(ExecutionStep(type="error", message=f"Invalid choice index: {index}"))

        selected = pending[index]
        instruction = self._current_instruction()
        location = instruction.source_location if instruction is not None else None
        self._state.add_choice(
            ChoiceRecord(
                choice_text=selected.text,
                scene=self._scene_name,
                instruction=self._cursor,
                choice_index=index,
                timestamp=int(time.time() * 1000),
            )
        )
        self._pending = None
        self._status = "scene_active"
        try:
            self._apply_actions(selected.option.actions, location)
            if selected.option.target:
                target = self._bridge.render(selected.option.target)
                return self._record(self._jump(target))
        except EngineError as exc:
            return self._record(self._fail(exc))
        self._advance()
        return self._record(self._run())

    # Stepping
    def _run(self) -> ExecutionStep:
        try:
            return self._step()
        except EngineError as exc:
            return self._fail(exc)

    def _step(self) -> ExecutionStep:
        for _ in range(MAX_AUTO_STEPS):
            if self._frames and self._frames[-1].index >= len(self._frames[-1].instructions):
                self._frames.pop()
                self._sync_branch_path()
                self._advance()
                continue
            instruction = self._current_instruction()
            if instruction is None:
                scene = self._scenes.get(self._scene_name)
                if scene is None:
                    raise EngineError(f'Current scene "{self._scene_name}" not found')
                logger.debug("Scene '%s' complete", self._scene_name)
                self._status = "scene_complete"
                return ExecutionStep(type="scene_complete")

            if isinstance(instruction, ActionInstruction):
                self._apply_actions(instruction.actions, instruction.source_location)
                self._advance()
            elif isinstance(instruction, DialogueInstruction):
                step = self._dialogue(instruction)
                if step is not None:
                    return step
            elif isinstance(instruction, ConditionalInstruction):
                passed = self._bridge.evaluate_condition(instruction.condition)
                body = instruction.then if passed else instruction.otherwise
                if body:
                    self._frames.append(_BranchFrame(instructions=tuple(body), branch="then" if passed else "else"))
                    self._sync_branch_path()
                else:
                    self._advance()
            elif isinstance(instruction, JumpInstruction):
                target = self._bridge.render(instruction.target)
                if target not in self._scenes:
                    raise EngineError(
                        f'Jump target "{target}" not found',
                        {"source_location": instruction.source_location},
                    )
                logger.debug("Jumping from '%s' to '%s'", self._scene_name, target)
                self._enter(target, 0)
            else:
                raise EngineError(f"Unknown instruction type: {type(instruction).__name__}")
        raise EngineError(f"Exceeded {MAX_AUTO_STEPS} instructions without producing output")

    def _dialogue(self, instruction: DialogueInstruction) -> ExecutionStep | None:
        self._apply_actions(instruction.actions, instruction.source_location)
        speaker = self._bridge.render(instruction.speaker) if instruction.speaker else None
        content = self._bridge.render(instruction.text) if instruction.text else None

        available = [choice for choice in instruction.choices if self._choice_available(choice)]
        if available:
            pending = [_PendingChoice(option=choice, text=self._bridge.render(choice.text)) for choice in available]
            self._pending = pending
            self._status = "awaiting_choice"
            logger.debug("Presenting %d choices in '%s'", len(pending), self._scene_name)
            return ExecutionStep(
                type="presenting_choices",
                content=content,
                speaker=speaker,
                choices=tuple(PresentedChoice(text=item.text, target=item.option.target) for item in pending),
                can_continue=False,
            )

        self._advance()
        if content is None:
            return None
        return ExecutionStep(
            type="display_dialogue",
            content=content,
            speaker=speaker,
            can_continue=self._has_more(),
        )

    def _choice_available(self, choice: ChoiceOption) -> bool:
        if not choice.condition:
            return True
        return self._bridge.evaluate_condition(choice.condition)

    def _jump(self, target: str) -> ExecutionStep:
        if target not in self._scenes:
            raise EngineError(f'Scene "{target}" not found')
        logger.debug("Choice jumps from '%s' to '%s'", self._scene_name, target)
        self._enter(target, 0)
        return self._step()

    def _fail(self, exc: EngineError) -> ExecutionStep:
        logger.error("Execution failed in scene '%s': %s", self._scene_name, exc)
        self._status = "error"
        self._pending = None
        return ExecutionStep(type="error", message=str(exc))

    def _record(self, step: ExecutionStep) -> ExecutionStep:
        self._last_step = step
        return step

    # Cursor
    def _enter(self, scene: str, instruction: int) -> None:
        self._scene_name = scene
        self._cursor = max(0, instruction)
        self._frames.clear()
        self._pending = None
        self._state.set_current_scene(scene)
        self._state.set_current_instruction(self._cursor)
        self._state.set_branch_path(())

    def _advance(self) -> None:
        if self._frames:
            self._frames[-1].index += 1
            self._sync_branch_path()
            return
        self._cursor += 1
        self._state.set_current_instruction(self._cursor)

    def _sync_branch_path(self) -> None:
        self._state.set_branch_path((frame.branch, frame.index) for frame in self._frames)

    def _current_instruction(self) -> ScriptInstruction | None:
        if self._frames:
            frame = self._frames[-1]
            if frame.index < len(frame.instructions):
                return frame.instructions[frame.index]
            return None
        scene = self._scenes.get(self._scene_name)
        if scene is None or self._cursor >= len(scene.instructions):
            return None
        return scene.instructions[self._cursor]

    def _has_more(self) -> bool:
        scene = self._scenes.get(self._scene_name)
        levels: List[Tuple[Sequence[ScriptInstruction], int]] = [
            (scene.instructions if scene else (), self._cursor)
        ]
        levels.extend((frame.instructions, frame.index) for frame in self._frames)
        instructions, index = levels[-1]
        if index < len(instructions):
            return True
        # Enclosing levels point at their conditional; anything after it remains.
        return any(position + 1 < len(items) for items, position in levels[:-1])

    # Actions
    def _apply_actions(self, actions: Sequence[ActionDef], location: SourceLocation | None) -> None:
        """Validate every descriptor first so a bad one leaves state untouched."""
        for action in actions:
            self._validate_action(action, location)
        for action in actions:
            self._apply_action(action)

    def _apply_action(self, action: ActionDef) -> None:
        data = action.data
        action_type = action.type
        if action_type == "setVar":
            self._state.set_variable(self._bridge.render(data["key"]), self._bridge.render_value(data["value"]))
        elif action_type == "addVar":
            self._state.add_to_variable(self._bridge.render(data["key"]), data["value"])
        elif action_type == "setFlag":
            self._state.set_story_flag(self._bridge.render(data["flag"]))
        elif action_type == "clearFlag":
            self._state.clear_story_flag(self._bridge.render(data["flag"]))
        elif action_type == "addToList":
            self._state.add_to_list(self._bridge.render(data["list"]), self._bridge.render_value(data["item"]))
        elif action_type == "addTime":
            self._state.add_time(data["minutes"])

    @staticmethod
    def _validate_action(action: ActionDef, location: SourceLocation | None) -> None:
        fields = ACTION_FIELDS.get(action.type)
        if fields is None:
            raise ActionValidationError(
                f"Unknown action type '{action.type}'",
                action.to_payload(),
                f"Use one of {', '.join(ACTION_FIELDS)}.",
                location,
            )
        for name, kind in fields:
            if name not in action.data:
                raise ActionValidationError(
                    f"{action.type} requires a '{name}'", action.to_payload(), f"Add a {name} field.", location
                )
            value = action.data[name]
            if kind == "str" and (not isinstance(value, str) or not value):
                raise ActionValidationError(
                    f"{action.type}.{name} must be a non-empty string",
                    action.to_payload(),
                    f"Provide '{name}' as a string.",
                    location,
                )
            if kind == "number" and not is_number(value):
                raise ActionValidationError(
                    f"{action.type}.{name} must be a number",
                    action.to_payload(),
                    f"Provide '{name}' as a number.",
                    location,
                )
