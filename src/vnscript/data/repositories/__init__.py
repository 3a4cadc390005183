"""Repository exports."""

from .script_repo import ScriptRepository

__all__ = ["ScriptRepository"]
