"""Collection helpers for lists, strings and mappings."""
from __future__ import annotations

from typing import Any, Dict, List

from vnscript.core.values import format_value, safe_number
from vnscript.services.helpers.registry import HelperFn, HelperRegistry


def length(value: Any) -> int:
    if isinstance(value, (list, tuple, str, dict, set)):
        return len(value)
    return 0


def first(value: Any, count: Any = None) -> Any:
    if not isinstance(value, (list, tuple, str)):
        return None
    if count is not None:
        return list(value[: max(0, int(safe_number(count)))])
    return value[0] if value else None


def last(value: Any, count: Any = None) -> Any:
    if not isinstance(value, (list, tuple, str)):
        return None
    if count is not None:
        size = max(0, int(safe_number(count)))
        return list(value[-size:]) if size else []
    return value[-1] if value else None


def includes(value: Any, item: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return item in value
    if isinstance(value, str):
        return isinstance(item, str) and item in value
    return False


def join(value: Any, separator: Any = ",") -> str:
    if not isinstance(value, (list, tuple)):
        return ""
    return str(separator).join(format_value(item) for item in value)


def reverse(value: Any) -> Any:
    if isinstance(value, str):
        return value[::-1]
    if isinstance(value, (list, tuple)):
        return list(reversed(value))
    return []


def unique(value: Any) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        return []
    result: List[Any] = []
    for item in value:
        if item not in result:
            result.append(item)
    return result


def take(value: Any, count: Any) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        return []
    return list(value[: max(0, int(safe_number(count)))])


COLLECTION_HELPERS: Dict[str, HelperFn] = {
    "length": length,
    "size": length,
    "first": first,
    "last": last,
    "includes": includes,
    "join": join,
    "reverse": reverse,
    "unique": unique,
    "take": take,
}


def register_collection_helpers(registry: HelperRegistry) -> None:
    registry.register_many(COLLECTION_HELPERS, "collection")
