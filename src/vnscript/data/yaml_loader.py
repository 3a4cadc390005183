"""Low-level YAML helpers for script loading."""
from __future__ import annotations

from pathlib import Path

import yaml

from .errors import DataLoadError


def load_yaml_text(text: str, source: str = "<string>") -> object:
    """Decode YAML text and raise DataLoadError on syntax errors."""
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DataLoadError(f"Invalid YAML in {source}: {exc}") from exc


def load_yaml(path: Path) -> object:
    """Load YAML from disk and raise DataLoadError on failure."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise DataLoadError(f"Script file not found: {path}") from exc
    except OSError as exc:
        raise DataLoadError(f"Unable to read script file: {path}") from exc
    return load_yaml_text(text, str(path))
