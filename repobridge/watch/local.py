"""
Filesystem watcher for local working trees.

A recursive watchdog observer reports raw events; each one (re)starts a
debounce timer, so a burst of writes (a checkout, an editor save) produces a
single notification once the tree has been quiet for debounce_ms.
"""

import logging
import os
import threading
from typing import Callable

from watchdog.events import EVENT_TYPE_DELETED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from repobridge.watch.events import WATCHER_ERROR

logger = logging.getLogger(__name__)

# Reads do not change status
IGNORED_EVENT_TYPES = ("opened", "closed_no_write")

# Observer threads are daemons; bound the wait when stopping
STOP_JOIN_TIMEOUT = 2.0


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: "LocalStatusWatcher"):
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._watcher.on_event(event)


class LocalStatusWatcher:
    """Debounced recursive watcher for one working tree."""

    def __init__(
        self,
        path: str,
        notify: Callable[[], None],
        on_error: Callable[[str], None],
        debounce_ms: int = 500,
        observer_factory=Observer,
    ):
        self.path = os.path.normpath(path)
        self.debounce = debounce_ms / 1000
        self._notify = notify
        self._on_error = on_error
        self._observer_factory = observer_factory
        self._observer = None
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()
        self._stopped = False

    def start(self) -> None:
        """Start observing. Raises OSError if the path cannot be watched."""
        observer = self._observer_factory()
        observer.schedule(_ChangeHandler(self), self.path, recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.debug(f"[watch] observing {self.path}")

    def on_event(self, event: FileSystemEvent) -> None:
        if self._stopped or event.event_type in IGNORED_EVENT_TYPES:
            return

        if event.event_type == EVENT_TYPE_DELETED and not os.path.isdir(self.path):
            logger.warning(f"[watch] {self.path} was removed")
            self._cancel_timer()
            self._on_error(WATCHER_ERROR)
            return

        with self._lock:
            if self._stopped:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.debounce, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            if self._stopped:
                return
        self._notify()

    def _cancel_timer(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def stop(self) -> None:
        self._stopped = True
        self._cancel_timer()

        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        # stop() can run on the observer thread itself (root deleted)
        if observer is not threading.current_thread():
            observer.join(timeout=STOP_JOIN_TIMEOUT)
        logger.debug(f"[watch] stopped observing {self.path}")
