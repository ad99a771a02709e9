"""Reference-counted watch registry.

Many subscriptions share one watcher (local) or poller (remote) per path.
Each path's lifecycle is a small state machine using the transitions
library:

    unwatched --subscribe--> watching --release (last)--> unwatched
                              watching --fail-----------> unwatched

The resource starts on the first subscription and stops when the last
subscription is released or the resource reports a failure.

Usage:
    registry = WatchRegistry()
    registry.add_listener(print)
    watch_id = registry.acquire(path, lambda: make_watcher(path))
    ...
    registry.release(path, watch_id)
    registry.shutdown()
"""

import logging
import threading
import uuid
from typing import Callable, Protocol

from transitions import Machine

from repobridge.watch.events import WATCHER_ERROR, Listener, ListenerBus, PathChanged

logger = logging.getLogger(__name__)


class WatchResource(Protocol):
    def start(self) -> None: ...

    def stop(self) -> None: ...


ResourceFactory = Callable[[], WatchResource]

STATES = ["unwatched", "watching"]

TRANSITIONS = [
    {"trigger": "subscribe", "source": "unwatched", "dest": "watching", "before": "_start_resource"},
    # Further subscriptions share the running resource
    {"trigger": "subscribe", "source": "watching", "dest": None},
    {"trigger": "release", "source": "watching", "dest": "unwatched",
     "unless": "has_subscribers", "after": "_stop_resource"},
    {"trigger": "fail", "source": "watching", "dest": "unwatched", "after": "_stop_resource"},
]


class WatchEntry:
    """Watch state for one path."""

    def __init__(self, path: str, factory: ResourceFactory):
        self.path = path
        self.factory = factory
        self.subscribers: set[str] = set()
        self.resource: WatchResource | None = None

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial="unwatched",
            auto_transitions=False,
            ignore_invalid_triggers=True,
            send_event=True,
            after_state_change="on_state_change",
        )

    def has_subscribers(self, event=None) -> bool:
        return bool(self.subscribers)

    def _start_resource(self, event) -> None:
        resource = self.factory()
        resource.start()
        self.resource = resource

    def _stop_resource(self, event) -> None:
        self.subscribers.clear()
        resource, self.resource = self.resource, None
        if resource is not None:
            resource.stop()

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        if to_state is None:
            return
        logger.info(f"[watch] {self.path}: {from_state} -> {to_state} ({event.event.name})")


class WatchRegistry:
    """Process-wide map of path -> WatchEntry, plus the listener bus."""

    def __init__(self):
        self._entries: dict[str, WatchEntry] = {}
        self._lock = threading.Lock()
        self._bus = ListenerBus()

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        return self._bus.add_listener(listener)

    def broadcast(self, event: PathChanged) -> None:
        self._bus.emit(event)

    def notify(self, path: str) -> None:
        """Broadcast a plain change event for path."""
        self.broadcast(PathChanged(path))

    def acquire(self, path: str, factory: ResourceFactory) -> str:
        """Subscribe to changes under path. Returns the new watch id.

        The first subscription creates and starts the resource; if that
        raises, no subscription is recorded and the error propagates.
        """
        watch_id = uuid.uuid4().hex
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                entry = WatchEntry(path, factory)
                self._entries[path] = entry

            entry.subscribers.add(watch_id)
            try:
                entry.subscribe()
            except Exception:
                entry.subscribers.discard(watch_id)
                if entry.state == "unwatched":
                    del self._entries[path]
                raise

        logger.debug(f"[watch] {path}: +{watch_id[:8]} ({len(entry.subscribers)} active)")
        return watch_id

    def release(self, path: str, watch_id: str | None = None) -> bool:
        """Drop one subscription.

        Without a watch_id nothing is removed, but an entry with no
        subscriptions left is still torn down.

        Returns:
            True if a subscription was removed
        """
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                return False
            removed = watch_id is not None and watch_id in entry.subscribers
            if removed:
                entry.subscribers.discard(watch_id)

            entry.release()
            if entry.state == "unwatched":
                del self._entries[path]
        return removed

    def fail(self, path: str, error: str = WATCHER_ERROR) -> None:
        """Tear down a dead watcher and tell listeners once."""
        with self._lock:
            entry = self._entries.pop(path, None)
            if entry is None:
                return
            entry.fail()
        logger.warning(f"[watch] {path}: watcher failed ({error})")
        self.broadcast(PathChanged(path, error=error))

    def is_watching(self, path: str) -> bool:
        with self._lock:
            entry = self._entries.get(path)
            return entry is not None and entry.state == "watching"

    def subscription_count(self, path: str) -> int:
        with self._lock:
            entry = self._entries.get(path)
            return len(entry.subscribers) if entry else 0

    def shutdown(self) -> None:
        """Stop every watcher and poller."""
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.subscribers.clear()
            entry.release()
