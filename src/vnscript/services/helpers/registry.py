"""Owned registry of template helper functions."""
from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Mapping

HelperFn = Callable[..., Any]


class HelperRegistry(Mapping[str, HelperFn]):
    """Name -> helper mapping handed to the template evaluator.

    Each interpreter builds its own registry; nothing is registered globally.
    """

    def __init__(self) -> None:
        self._helpers: Dict[str, HelperFn] = {}
        self._categories: Dict[str, List[str]] = {}

    def register(self, name: str, helper: HelperFn, category: str = "custom") -> None:
        if not callable(helper):
            raise TypeError(f"Helper '{name}' must be callable.")
        if name in self._helpers:
            for names in self._categories.values():
                if name in names:
                    names.remove(name)
        self._helpers[name] = helper
        self._categories.setdefault(category, []).append(name)

    def register_many(self, helpers: Mapping[str, HelperFn], category: str) -> None:
        for name, helper in helpers.items():
            self.register(name, helper, category)

    def unregister(self, name: str) -> None:
        self._helpers.pop(name, None)
        for names in self._categories.values():
            if name in names:
                names.remove(name)

    def categories(self) -> Dict[str, List[str]]:
        return {category: list(names) for category, names in self._categories.items() if names}

    def __getitem__(self, name: str) -> HelperFn:
        return self._helpers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)
