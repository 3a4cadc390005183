"""Data layer utilities for loading and parsing YAML scripts."""

from .errors import DataError, DataLoadError, ScriptParseError
from .paths import get_repo_root, get_scripts_path
from .script_parser import ScriptParser

__all__ = [
    "DataError",
    "DataLoadError",
    "ScriptParseError",
    "ScriptParser",
    "get_repo_root",
    "get_scripts_path",
]
