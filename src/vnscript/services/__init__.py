"""Service layer exports."""

from .errors import ActionValidationError, EngineError, SaveLoadError, TemplateRenderError
from .game_state_manager import GameStateManager
from .script_engine import ExecutionStep, PresentedChoice, ScriptEngine
from .template_bridge import TemplateBridge
from .upgrade_service import ScriptUpgrader, UpgradeOptions, UpgradeResult
from .interpreter import Interpreter, create_interpreter

__all__ = [
    "ActionValidationError",
    "EngineError",
    "SaveLoadError",
    "TemplateRenderError",
    "GameStateManager",
    "ExecutionStep",
    "PresentedChoice",
    "ScriptEngine",
    "TemplateBridge",
    "ScriptUpgrader",
    "UpgradeOptions",
    "UpgradeResult",
    "Interpreter",
    "create_interpreter",
]
