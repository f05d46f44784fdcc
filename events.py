"""
Session change notification.

Typed, synchronous, in-process fan-out.  The session store emits exactly one
event per committed transition; listeners run in subscription order on the
caller's thread before the mutating call returns.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

log = logging.getLogger("session")


class EventType(str, Enum):
    DIMENSIONS_CHANGED = "dimensionsChanged"
    DOCUMENT_CHANGED = "documentChanged"
    PAGE_CHANGED = "pageChanged"
    LAST_CREATED_ITEM_CHANGED = "lastCreatedItemChanged"
    SESSION_CLEARED = "sessionCleared"
    SESSION_IMPORTED = "sessionImported"


@dataclass(frozen=True)
class SessionEvent:
    """One committed state transition.

    ``old``/``new`` carry copies of the slot before and after the change.
    Bulk transitions (clear, import) put their extra payload in ``detail``.
    """

    type: EventType
    old: Any = None
    new: Any = None
    detail: dict = field(default_factory=dict)


Listener = Callable[[SessionEvent], None]


class EventEmitter:
    """Listener registry keyed by event type (``None`` = every event)."""

    def __init__(self):
        self._listeners: list[tuple[EventType | None, Listener]] = []

    def subscribe(self, listener: Listener, event_type: EventType | None = None) -> Callable[[], None]:
        """Register ``listener``.  Returns a callable that unsubscribes it."""
        self._listeners.append((event_type, listener))
        return lambda: self.unsubscribe(listener, event_type)

    def unsubscribe(self, listener: Listener, event_type: EventType | None = None) -> bool:
        """Remove one registration.  Returns False if it was not registered."""
        try:
            self._listeners.remove((event_type, listener))
        except ValueError:
            return False
        return True

    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event: SessionEvent) -> None:
        # Snapshot so listeners may (un)subscribe while being notified.
        for event_type, listener in list(self._listeners):
            if event_type is not None and event_type != event.type:
                continue
            try:
                listener(event)
            except Exception:
                log.exception("Session listener %r failed on %s", listener, event.type.value)


def log_event(event: SessionEvent) -> None:
    """Listener that records every transition on the ``session`` logger."""
    if event.type is EventType.SESSION_CLEARED:
        log.info("Session cleared (preserved: %s)", ", ".join(event.detail.get("preserved", [])) or "none")
    elif event.type is EventType.SESSION_IMPORTED:
        log.info("Session imported (version %s)", event.detail.get("version"))
    else:
        log.info("%s: %r -> %r", event.type.value, event.old, event.new)
