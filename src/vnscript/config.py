"""Configuration helpers for per-user engine settings."""
from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path

from vnscript.data.script_parser import DEFAULT_FILE_NAME

_APP_DIR_NAME = "vnscript"
_DEFAULT_SLOT_COUNT = 3


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / _APP_DIR_NAME
        return Path.home() / _APP_DIR_NAME
    return Path.home() / ".config" / _APP_DIR_NAME


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def get_save_dir() -> Path:
    """Return the per-user save directory."""
    return get_user_data_dir() / "saves"


@dataclass(slots=True)
class EngineConfig:
    default_file_name: str = DEFAULT_FILE_NAME
    slot_count: int = _DEFAULT_SLOT_COUNT
    save_dir: str = ""

    def get_save_path(self) -> Path:
        return Path(self.save_dir) if self.save_dir else get_save_dir()


def _normalize_file_name(value: object) -> str:
    return value if isinstance(value, str) and value.strip() else DEFAULT_FILE_NAME


def _normalize_slot_count(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and value >= 1:
        return value
    return _DEFAULT_SLOT_COUNT


def _normalize_save_dir(value: object) -> str:
    return value if isinstance(value, str) and value.strip() else str(get_save_dir())


def load_config(path: Path | None = None) -> EngineConfig:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return _defaults()
    except (OSError, ValueError):
        return _defaults()
    if not isinstance(raw, dict):
        return _defaults()
    return EngineConfig(
        default_file_name=_normalize_file_name(raw.get("default_file_name")),
        slot_count=_normalize_slot_count(raw.get("slot_count")),
        save_dir=_normalize_save_dir(raw.get("save_dir")),
    )


def save_config(config: EngineConfig, path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    payload = asdict(config)
    payload["default_file_name"] = _normalize_file_name(payload["default_file_name"])
    payload["slot_count"] = _normalize_slot_count(payload["slot_count"])
    payload["save_dir"] = _normalize_save_dir(payload["save_dir"])
    config_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def _defaults() -> EngineConfig:
    return EngineConfig(save_dir=str(get_save_dir()))
