"""Listener registry for interpreter notifications."""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]

EVENT_NAMES = ("step", "error", "loaded", "upgrade_completed", "upgrade_failed")


class EventBus:
    """Per-interpreter publish/subscribe hub; there is no shared global instance."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Listener]] = {}

    def subscribe(self, event_type: str, handler: Listener) -> Callable[[], bool]:
        """Register handler and return a callable that removes it again."""
        if event_type not in EVENT_NAMES:
            raise ValueError(f"Unknown event type '{event_type}'. Expected one of {', '.join(EVENT_NAMES)}.")
        handlers = self._subscribers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def unsubscribe(self, event_type: str, handler: Listener) -> bool:
        try:
            self._subscribers.get(event_type, []).remove(handler)
        except ValueError:
            return False
        return True

    def publish(self, event_type: str, payload: Any = None) -> None:
        for handler in list(self._subscribers.get(event_type, [])):
            try:
                handler(payload)
            except Exception:
                logger.exception("Listener for '%s' raised", event_type)

    def clear_subscribers(self, event_type: str | None = None) -> None:
        if event_type:
            self._subscribers.pop(event_type, None)
        else:
            self._subscribers.clear()

    def get_subscriber_count(self, event_type: str) -> int:
        return len(self._subscribers.get(event_type, []))
