"""Change notifications delivered to watch listeners."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

WATCHER_ERROR = "watcher-error"


@dataclass(frozen=True)
class PathChanged:
    """Something under path may have changed; re-query status.

    error is set when the watcher for path died; no further events follow
    for that path until it is watched again.
    """
    path: str
    error: str | None = None


Listener = Callable[[PathChanged], None]


class ListenerBus:
    """Fan-out of PathChanged events to registered listeners."""

    def __init__(self):
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def emit(self, event: PathChanged) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"[watch] listener failed for {event.path}: {e}")
