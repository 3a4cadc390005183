"""String formatting helpers."""
from __future__ import annotations

from typing import Any, Dict

from vnscript.core.values import format_value, safe_number
from vnscript.services.helpers.registry import HelperFn, HelperRegistry


def uppercase(value: Any) -> str:
    return format_value(value).upper()


def lowercase(value: Any) -> str:
    return format_value(value).lower()


def capitalize(value: Any) -> str:
    text = format_value(value)
    return text[:1].upper() + text[1:].lower()


def trim(value: Any) -> str:
    return format_value(value).strip()


def truncate(value: Any, size: Any, suffix: Any = "...") -> str:
    text = format_value(value)
    limit = int(safe_number(size))
    if len(text) <= limit:
        return text
    tail = format_value(suffix)
    return text[: max(0, limit - len(tail))] + tail


TEXT_HELPERS: Dict[str, HelperFn] = {
    "uppercase": uppercase,
    "lowercase": lowercase,
    "capitalize": capitalize,
    "trim": trim,
    "truncate": truncate,
}


def register_text_helpers(registry: HelperRegistry) -> None:
    registry.register_many(TEXT_HELPERS, "text")
