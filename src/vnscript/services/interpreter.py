"""Host-facing facade wiring parser, state, bridge and engine together."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, List, Mapping, Sequence, Tuple

from vnscript.config import EngineConfig, load_config
from vnscript.data.errors import DataError
from vnscript.data.paths import get_scripts_path
from vnscript.data.repositories import ScriptRepository
from vnscript.data.save_slots import SaveSlotStore, SlotMetadata
from vnscript.data.script_parser import ScriptParser
from vnscript.domain.defs import ParsedScene
from vnscript.domain.state import ChoiceRecord, GameState
from vnscript.services.errors import SaveLoadError, TemplateRenderError
from vnscript.services.events import EventBus, Listener
from vnscript.services.game_state_manager import GameStateManager, SerializedState
from vnscript.services.save_service import SavePayload, SaveService
from vnscript.services.script_engine import ExecutionStep, ScriptEngine
from vnscript.services.script_validator import Issue, validate_scenes
from vnscript.services.template_bridge import AssetRecord, TemplateBridge
from vnscript.services.template_engine import TemplateEngine
from vnscript.services.upgrade_service import (
    ScriptUpgrader,
    UpgradeError,
    UpgradeOptions,
    UpgradeResult,
    UpgradeValidation,
)

logger = logging.getLogger(__name__)


class Interpreter:
    """Loads a script, drives execution and exposes state to a host.

    The interpreter owns one state manager, one helper registry and one
    engine. Nothing is shared between instances.
    """

    def __init__(
        self,
        *,
        assets: Sequence[AssetRecord] | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self._config = config if config is not None else load_config()
        self._state = GameStateManager()
        self._templates = TemplateEngine()
        self._bridge = TemplateBridge(self._state, engine=self._templates, assets=assets)
        self._parser = ScriptParser()
        self._engine = ScriptEngine(self._state, self._bridge)
        self._upgrader = ScriptUpgrader(self._state, self._engine, self._parser)
        self._saves = SaveService(self._state)
        self._slots = SaveSlotStore.from_config(self._config)
        self._events = EventBus()
        self._is_loaded = False
        self._error: str | None = None
        self._current_result: ExecutionStep | None = None

    # Loading
    @property
    def is_loaded(self) -> bool:
        return self._is_loaded

    def get_error(self) -> str | None:
        return self._error

    def load_script(self, content: str, file_name: str | None = None) -> None:
        """Parse and install a script; failures are kept as the last error."""
        try:
            scenes = self._parser.parse_text(content, file_name or self._config.default_file_name)
        except DataError as exc:
            self._fail_load(str(exc))
            return
        self._install(scenes)

    @property
    def config(self) -> EngineConfig:
        return self._config

    def load_script_file(self, path: Path | str | None = None) -> None:
        """Load a script from disk; defaults to the configured file in the scripts directory."""
        script_path = Path(path) if path is not None else get_scripts_path() / self._config.default_file_name
        repository = ScriptRepository(script_path.name, script_path.parent, parser=self._parser)
        try:
            scenes = repository.all()
        except DataError as exc:
            self._fail_load(str(exc))
            return
        self._install(scenes)

    def _install(self, scenes: Sequence[ParsedScene]) -> None:
        self._engine.reset()
        self._engine.load_scenes(scenes)
        self._error = None
        self._is_loaded = True
        self._current_result = None
        logger.info("Script loaded with %d scenes", len(scenes))
        self._events.publish("loaded", [scene.name for scene in scenes])

    def _fail_load(self, message: str) -> None:
        logger.warning("Script load failed: %s", message)
        self._error = message
        self._is_loaded = False
        self._current_result = None
        self._events.publish("error", message)

    # Execution
    def start_scene(self, name: str, instruction_index: int = 0) -> ExecutionStep:
        return self._emit(self._engine.start_scene(name, instruction_index))

    def continue_(self) -> ExecutionStep:
        return self._emit(self._engine.continue_())

    def choose(self, index: int) -> ExecutionStep:
        return self._emit(self._engine.choose(index))

    def get_current_result(self) -> ExecutionStep | None:
        return self._current_result

    @property
    def status(self) -> str:
        return self._engine.status

    def _emit(self, step: ExecutionStep) -> ExecutionStep:
        self._current_result = step
        self._events.publish("step", step)
        if step.is_error:
            self._events.publish("error", step.message or "Unknown error")
        return step

    # State
    def get_game_state(self) -> GameState:
        return self._state.get_state()

    def get_serialized_state(self) -> SerializedState:
        return self._state.serialize()

    def set_game_state(self, data: object) -> None:
        self._state.deserialize(data)
        self._sync_engine_position()

    def create_save(self, metadata: Mapping[str, Any] | None = None) -> SavePayload:
        return self._saves.create_save(metadata)

    def load_save(self, data: object) -> bool:
        try:
            self._saves.import_save(data)
        except SaveLoadError as exc:
            logger.warning("Rejected save data: %s", exc)
            return False
        self._sync_engine_position()
        return True

    # Save slots
    def list_save_slots(self) -> List[SlotMetadata]:
        return self._slots.list_slots()

    def save_to_slot(self, slot: int, metadata: Mapping[str, Any] | None = None) -> SavePayload:
        """Write a save into a configured slot; a slot outside the range raises ValueError."""
        payload = self.create_save(metadata)
        self._slots.write_slot(slot, payload)
        return payload

    def load_from_slot(self, slot: int) -> bool:
        try:
            payload = self._slots.read_slot(slot)
        except SaveLoadError as exc:
            logger.warning("Cannot load slot %d: %s", slot, exc)
            return False
        return self.load_save(payload)

    def delete_save_slot(self, slot: int) -> None:
        self._slots.delete_slot(slot)

    def _sync_engine_position(self) -> None:
        scene = self._state.get_current_scene()
        branch_path = self._state.get_branch_path()
        if not self._engine.restore_position(scene, self._state.get_current_instruction(), branch_path):
            self._engine.reset()
        self._current_result = None

    def get_current_scene(self) -> str:
        return self._state.get_current_scene()

    def has_flag(self, flag: str) -> bool:
        return self._state.has_story_flag(flag)

    def get_variable(self, key: str) -> Any:
        return self._state.get_variable(key)

    def get_choice_history(self) -> List[ChoiceRecord]:
        return self._state.get_choice_history()

    def reset(self) -> None:
        """Clear state, scenes and the last error."""
        self._state.reset()
        self._engine.reset()
        self._engine.load_scenes([])
        self._is_loaded = False
        self._error = None
        self._current_result = None

    # Templates
    def set_assets(self, assets: Sequence[AssetRecord]) -> None:
        self._bridge.set_assets(assets)

    def parse_template(self, template: str) -> str:
        return self.render_with_variables(template, None)

    def render_with_variables(self, template: str, variables: Mapping[str, Any] | None) -> str:
        try:
            return self._bridge.render(template, variables)
        except TemplateRenderError as exc:
            cause = exc.original_error or exc
            logger.warning("Template error: %s", cause)
            return f"[Template Error: {cause}]"

    def validate_template(self, template: str) -> Tuple[bool, str | None]:
        try:
            self._bridge.render(template)
        except TemplateRenderError as exc:
            return False, str(exc.original_error or exc)
        return True, None

    # Upgrades
    def upgrade_script(self, content: str, options: UpgradeOptions | None = None) -> UpgradeResult:
        if not self._is_loaded:
            error = UpgradeError("STATE_INVALID", "Cannot upgrade script before loading base script")
            self._events.publish("upgrade_failed", error.message)
            return UpgradeResult(success=False, error=error)
        result = self._upgrader.upgrade(self._engine.get_scenes(), content, options)
        if result.success:
            self._events.publish("upgrade_completed", result)
        else:
            self._events.publish("upgrade_failed", result.error.message if result.error else "Unknown upgrade error")
        return result

    def validate_upgrade(self, content: str, options: UpgradeOptions | None = None) -> UpgradeValidation:
        options = options or UpgradeOptions()
        if not self._is_loaded:
            return UpgradeValidation(
                valid=False,
                errors=[UpgradeError("STATE_INVALID", "Cannot validate upgrade before loading base script")],
            )
        try:
            pack = self._upgrader.parse_pack(content, options)
        except DataError as exc:
            return UpgradeValidation(
                valid=False,
                errors=[UpgradeError("PARSE_ERROR", f"Failed to parse content pack: {exc}", {"parseErrors": [str(exc)]})],
            )
        return self._upgrader.validate(self._engine.get_scenes(), pack, options)

    # Inspection
    def get_all_scenes(self) -> List[ParsedScene]:
        return self._engine.get_scenes()

    def get_scene_names(self) -> List[str]:
        return [scene.name for scene in self._engine.get_scenes()]

    def has_scene(self, name: str) -> bool:
        return self._engine.has_scene(name)

    def get_scenes_by_namespace(self, namespace: str) -> List[ParsedScene]:
        prefix = f"{namespace}_"
        return [scene for scene in self._engine.get_scenes() if scene.name.startswith(prefix)]

    def validate_script(self, entry_scenes: Sequence[str] = ()) -> List[Issue]:
        return validate_scenes(self._engine.get_scenes(), entry_scenes)

    # Events
    def on(self, event: str, callback: Listener) -> Callable[[], bool]:
        return self._events.subscribe(event, callback)


def create_interpreter(
    assets: Sequence[AssetRecord] | None = None, config: EngineConfig | None = None
) -> Interpreter:
    return Interpreter(assets=assets, config=config)
