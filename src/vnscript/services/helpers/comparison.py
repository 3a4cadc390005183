"""Comparison and logical helpers."""
from __future__ import annotations

from typing import Any, Dict

from vnscript.core.values import is_truthy, safe_number
from vnscript.services.helpers.registry import HelperFn, HelperRegistry


def eq(a: Any, b: Any) -> bool:
    """Strict equality: 1 == 1.0, but 1 != "1" and 1 != True."""
    if _both_numbers(a, b):
        return a == b
    return type(a) is type(b) and a == b


def ne(a: Any, b: Any) -> bool:
    return not eq(a, b)


def gt(a: Any, b: Any) -> bool:
    return safe_number(a) > safe_number(b)


def gte(a: Any, b: Any) -> bool:
    return safe_number(a) >= safe_number(b)


def lt(a: Any, b: Any) -> bool:
    return safe_number(a) < safe_number(b)


def lte(a: Any, b: Any) -> bool:
    return safe_number(a) <= safe_number(b)


def all_of(*values: Any) -> bool:
    return all(is_truthy(value) for value in values)


def any_of(*values: Any) -> bool:
    return any(is_truthy(value) for value in values)


def negate(value: Any) -> bool:
    return not is_truthy(value)


def contains(collection: Any, value: Any) -> bool:
    if isinstance(collection, (list, tuple)):
        return value in collection
    if isinstance(collection, str):
        return isinstance(value, str) and value in collection
    if isinstance(collection, dict):
        return value in collection
    return False


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def between(value: Any, low: Any, high: Any) -> bool:
    number = safe_number(value)
    return safe_number(low) <= number <= safe_number(high)


def ifx(condition: Any, truthy_value: Any, falsy_value: Any = None) -> Any:
    return truthy_value if is_truthy(condition) else falsy_value


def coalesce(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def default_to(value: Any, fallback: Any) -> Any:
    if value is None or value == "":
        return fallback
    return value


def _both_numbers(a: Any, b: Any) -> bool:
    return all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in (a, b))


COMPARISON_HELPERS: Dict[str, HelperFn] = {
    "eq": eq,
    "ne": ne,
    "gt": gt,
    "gte": gte,
    "lt": lt,
    "lte": lte,
    "contains": contains,
    "isEmpty": is_empty,
    "between": between,
    "coalesce": coalesce,
    "default": default_to,
}

LOGICAL_HELPERS: Dict[str, HelperFn] = {
    "and": all_of,
    "or": any_of,
    "not": negate,
    "ifx": ifx,
}


def register_comparison_helpers(registry: HelperRegistry) -> None:
    registry.register_many(COMPARISON_HELPERS, "comparison")
    registry.register_many(LOGICAL_HELPERS, "logical")
