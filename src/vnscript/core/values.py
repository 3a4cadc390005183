"""Coercion rules shared by helpers and the template evaluator."""
from __future__ import annotations

import json
import math
from typing import Any


def is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def safe_number(value: object, fallback: float = 0) -> float:
    """Coerce value to a finite number, returning fallback when that is impossible."""
    if isinstance(value, bool):
        return int(value)
    if is_number(value):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return fallback
    elif value is None:
        return 0
    else:
        return fallback
    if isinstance(number, float) and (math.isnan(number) or math.isinf(number)):
        return fallback
    return number


def is_truthy(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0 and not (isinstance(value, float) and math.isnan(value))
    if isinstance(value, (str, list, tuple, dict, set)):
        return len(value) > 0
    return bool(value)


def format_value(value: Any) -> str:
    """Render a value the way template output shows it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ", ".join(format_value(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value, default=str)
    return str(value)
