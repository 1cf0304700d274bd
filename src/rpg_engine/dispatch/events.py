"""Event notification for dispatcher listeners.

Listeners subscribe per event type or to every event through the
wildcard key. A failing listener is logged and skipped; it never breaks
dispatch or starves the other listeners.
"""

from __future__ import annotations

from collections.abc import Callable

from rpg_engine.core.constants import WILDCARD_EVENT
from rpg_engine.core.logging import get_logger
from rpg_engine.models.enums import EventType
from rpg_engine.models.protocol import ActionEvent


logger = get_logger(__name__)

Listener = Callable[[ActionEvent], None]


class EventBus:
    """Per-type and wildcard event listeners.

    Example:
        >>> bus = EventBus()
        >>> seen = []
        >>> bus.subscribe("*", seen.append)
        >>> bus.emit(ActionEvent(type=EventType.SYSTEM, source="test"))
        >>> len(seen)
        1
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def subscribe(self, event_type: EventType | str, listener: Listener) -> None:
        """Register a listener for an event type, or ``"*"`` for all events."""
        key = str(event_type)
        if key != WILDCARD_EVENT:
            key = EventType(key).value
        self._listeners.setdefault(key, []).append(listener)

    def unsubscribe(self, event_type: EventType | str, listener: Listener) -> bool:
        """Remove a listener. Returns True if it was registered."""
        listeners = self._listeners.get(str(event_type), [])
        if listener not in listeners:
            return False
        listeners.remove(listener)
        return True

    def emit(self, event: ActionEvent) -> None:
        """Deliver an event to its type's listeners, then to wildcard listeners."""
        targets = [
            *self._listeners.get(event.type.value, []),
            *self._listeners.get(WILDCARD_EVENT, []),
        ]
        for listener in targets:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener failed", event_type=event.type, event_id=event.id)

    def clear(self) -> None:
        self._listeners.clear()

    @property
    def listener_count(self) -> int:
        return sum(len(listeners) for listeners in self._listeners.values())


__all__ = ["EventBus", "Listener"]
