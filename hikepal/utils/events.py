"""
Observer plumbing shared by the core components.
Events use the same envelope everywhere: {"type", "timestamp", "data"}.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Event = Dict[str, Any]
Listener = Callable[[Event], None]


def make_event(event_type: str, data: Dict[str, Any]) -> Event:
    return {
        "type": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


class Observable:
    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it"""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event_type: str, data: Dict[str, Any]):
        event = make_event(event_type, data)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Listener failed for {event_type}")
