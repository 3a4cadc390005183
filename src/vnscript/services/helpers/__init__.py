"""Template helper registry and the built-in helper sets."""

from vnscript.services.game_state_manager import GameStateManager

from .arithmetic import register_arithmetic_helpers
from .asset import get_asset, has_asset, normalize_key, register_asset_helpers, resolve_asset
from .collection import register_collection_helpers
from .comparison import register_comparison_helpers
from .registry import HelperFn, HelperRegistry
from .state import StateHelpers, format_time, register_state_helpers
from .text import register_text_helpers


def build_helper_registry(state_manager: GameStateManager) -> HelperRegistry:
    """Create a registry holding every built-in helper bound to state_manager."""
    registry = HelperRegistry()
    register_arithmetic_helpers(registry)
    register_comparison_helpers(registry)
    register_collection_helpers(registry)
    register_text_helpers(registry)
    register_asset_helpers(registry)
    register_state_helpers(registry, state_manager)
    return registry


__all__ = [
    "HelperFn",
    "HelperRegistry",
    "StateHelpers",
    "build_helper_registry",
    "format_time",
    "get_asset",
    "has_asset",
    "normalize_key",
    "resolve_asset",
]
