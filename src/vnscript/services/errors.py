"""Service-layer exceptions."""
from __future__ import annotations

from typing import Any, Dict, Mapping

from vnscript.domain.defs import SourceLocation


class EngineError(Exception):
    """Base exception for execution-time failures."""

    code = "ENGINE_ERROR"

    def __init__(self, message: str, context: Dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class ActionValidationError(EngineError):
    """Raised when an action descriptor is unknown or malformed."""

    code = "ACTION_VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        invalid_action: Mapping[str, object],
        suggestion: str,
        source_location: SourceLocation | None = None,
    ) -> None:
        super().__init__(
            message,
            {"invalid_action": dict(invalid_action), "suggestion": suggestion, "source_location": source_location},
        )
        self.invalid_action = dict(invalid_action)
        self.suggestion = suggestion
        self.source_location = source_location

    def __str__(self) -> str:
        where = f" at {self.source_location.describe()}" if self.source_location else ""
        return f"{self.message}{where}. {self.suggestion}"


class TemplateRenderError(EngineError):
    """Raised when a template or condition cannot be evaluated."""

    code = "TEMPLATE_RENDER_ERROR"

    def __init__(self, message: str, template: str, original_error: Exception | None = None) -> None:
        super().__init__(message, {"template": template, "original_error": original_error})
        self.template = template
        self.original_error = original_error


class SaveLoadError(Exception):
    """Raised when save slot operations fail."""
