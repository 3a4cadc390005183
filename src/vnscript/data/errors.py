"""Custom exceptions for script loading and validation."""
from __future__ import annotations

from vnscript.domain.defs import SourceLocation


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """Raised when script files are missing, unreadable or not valid YAML."""


class ScriptParseError(DataError):
    """Raised when a script document or instruction has an invalid shape."""

    code = "SCRIPT_PARSE_ERROR"

    def __init__(self, message: str, source_location: SourceLocation | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.source_location = source_location

    @property
    def file(self) -> str | None:
        return self.source_location.file if self.source_location else None

    @property
    def line(self) -> int | None:
        return self.source_location.line if self.source_location else None

    @property
    def scene(self) -> str | None:
        return self.source_location.scene if self.source_location else None

    def __str__(self) -> str:
        if self.source_location is None:
            return self.message
        return f"{self.message} at {self.source_location.describe()}"
