"""Arithmetic helpers. Non-numeric input is treated as 0; division by zero yields 0."""
from __future__ import annotations

import math
from typing import Any, Dict

from vnscript.core.values import safe_number
from vnscript.services.helpers.registry import HelperFn, HelperRegistry


def _tidy(value: float) -> float:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def add(a: Any, b: Any) -> float:
    return _tidy(safe_number(a) + safe_number(b))


def subtract(a: Any, b: Any) -> float:
    return _tidy(safe_number(a) - safe_number(b))


def multiply(a: Any, b: Any) -> float:
    return _tidy(safe_number(a) * safe_number(b))


def divide(a: Any, b: Any) -> float:
    divisor = safe_number(b)
    if divisor == 0:
        return 0
    return _tidy(safe_number(a) / divisor)


def remainder(a: Any, b: Any) -> float:
    divisor = safe_number(b)
    if divisor == 0:
        return 0
    return _tidy(math.fmod(safe_number(a), divisor))


def absolute(value: Any) -> float:
    return abs(safe_number(value))


def minimum(*values: Any) -> float:
    numbers = [safe_number(value) for value in values]
    return min(numbers) if numbers else 0


def maximum(*values: Any) -> float:
    numbers = [safe_number(value) for value in values]
    return max(numbers) if numbers else 0


def round_to(value: Any, precision: Any = 0) -> float:
    factor = 10 ** int(safe_number(precision))
    # Half-up rounding rather than banker's rounding.
    return _tidy(math.floor(safe_number(value) * factor + 0.5) / factor)


def ceil(value: Any) -> int:
    return math.ceil(safe_number(value))


def floor(value: Any) -> int:
    return math.floor(safe_number(value))


def clamp(value: Any, low: Any, high: Any) -> float:
    return min(max(safe_number(value), safe_number(low)), safe_number(high))


def total(values: Any) -> float:
    if not isinstance(values, (list, tuple)):
        return 0
    return _tidy(sum(safe_number(value) for value in values))


def average(values: Any) -> float:
    if not isinstance(values, (list, tuple)) or not values:
        return 0
    return _tidy(sum(safe_number(value) for value in values) / len(values))


def percentage(value: Any, whole: Any) -> float:
    denominator = safe_number(whole)
    if denominator == 0:
        return 0
    return round_to(safe_number(value) / denominator * 100, 2)


ARITHMETIC_HELPERS: Dict[str, HelperFn] = {
    "add": add,
    "subtract": subtract,
    "multiply": multiply,
    "divide": divide,
    "mod": remainder,
    "remainder": remainder,
    "abs": absolute,
    "min": minimum,
    "max": maximum,
    "round": round_to,
    "ceil": ceil,
    "floor": floor,
    "clamp": clamp,
    "sum": total,
    "average": average,
    "percentage": percentage,
}


def register_arithmetic_helpers(registry: HelperRegistry) -> None:
    registry.register_many(ARITHMETIC_HELPERS, "arithmetic")


__all__ = ["ARITHMETIC_HELPERS", "register_arithmetic_helpers", "add", "subtract", "multiply", "divide"]
