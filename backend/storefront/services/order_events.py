"""In-process change feed for the orders table.

``OrderService`` publishes one event per committed insert, update or delete;
the order monitor subscribes to it. Callbacks run synchronously in the
publishing thread.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Literal, Optional

logger = logging.getLogger(__name__)

EventType = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class ChangeEvent:
    """A row change: ``new`` is absent for deletes, ``old`` for inserts."""
    event_type: EventType
    new: Optional[dict] = None
    old: Optional[dict] = None


Listener = Callable[[ChangeEvent], None]


class OrderChangeFeed:
    """Publish/subscribe hub for order row changes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: Dict[int, Listener] = {}
        self._next_token = 1

    def subscribe(self, listener: Listener) -> int:
        """Register a listener; the returned token unsubscribes it."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._listeners[token] = listener
        return token

    def unsubscribe(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                # One broken listener must not stop delivery to the others
                logger.error(f"Order change listener failed on {event.event_type}: {e}", exc_info=True)

    def close(self) -> None:
        """Drop every listener at shutdown."""
        with self._lock:
            self._listeners.clear()
