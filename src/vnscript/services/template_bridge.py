"""Connects the template evaluator to game state through the helper registry."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

from vnscript.services.errors import TemplateRenderError
from vnscript.services.game_state_manager import GameStateManager
from vnscript.services.helpers import HelperRegistry, build_helper_registry
from vnscript.services.template_engine import TemplateEngine

logger = logging.getLogger(__name__)

AssetRecord = Mapping[str, Any]


class TemplateBridge:
    """Renders templates and evaluates conditions against the current state.

    Rendering only reads state. Mutation happens through action dispatch in
    the script engine.
    """

    def __init__(
        self,
        state_manager: GameStateManager,
        *,
        registry: HelperRegistry | None = None,
        engine: TemplateEngine | None = None,
        assets: Sequence[AssetRecord] | None = None,
    ) -> None:
        self._state = state_manager
        self._registry = registry if registry is not None else build_helper_registry(state_manager)
        self._engine = engine or TemplateEngine()
        self._assets: List[AssetRecord] = list(assets or [])

    @property
    def registry(self) -> HelperRegistry:
        return self._registry

    def set_assets(self, assets: Sequence[AssetRecord]) -> None:
        self._assets = list(assets)

    def get_assets(self) -> List[AssetRecord]:
        return list(self._assets)

    def build_context(self, extra: Mapping[str, Any] | None = None) -> Dict[str, Any]:
        """Return a snapshot context: variables at top level plus state views.

        ``gameTime`` stays numeric (minutes) so helpers can compare it; the
        ``HH:MM`` clock is under ``computed.gameTime``.
        """
        variables = self._state.get_variables()
        minutes = self._state.get_current_time()
        context: Dict[str, Any] = dict(variables)
        context.update(
            {
                "variables": variables,
                "storyFlags": sorted(self._state.get_story_flags()),
                "choiceHistory": [
                    {"choiceText": record.choice_text, "scene": record.scene}
                    for record in self._state.get_choice_history()
                ],
                "gameTime": minutes,
                "computed": {"gameTime": format_clock(minutes)},
                "assets": list(self._assets),
            }
        )
        if extra:
            context.update(extra)
            context["variables"] = {**variables, **extra}
        return context

    def render(self, template: str, extra: Mapping[str, Any] | None = None) -> str:
        """Render template text, wrapping any evaluator failure in TemplateRenderError."""
        try:
            return self._engine.render(template, self._registry, self.build_context(extra))
        except Exception as exc:
            logger.debug("Template rendering failed for %r: %s", template, exc)
            raise TemplateRenderError(f"Failed to render template: {exc}", template, exc) from exc

    def evaluate_condition(self, condition: str) -> bool:
        """Render ``{{condition}}`` and compare the output with "true"."""
        return self.render(f"{{{{{condition}}}}}") == "true"

    def render_value(self, value: Any) -> Any:
        """Render strings that contain template tags; other values pass through."""
        if isinstance(value, str) and "{{" in value:
            return self.render(value)
        return value


def format_clock(minutes: float) -> str:
    total = int(minutes)
    return f"{total // 60:02d}:{total % 60:02d}"
