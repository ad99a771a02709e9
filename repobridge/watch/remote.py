"""
Status poller for remote working trees.

There is no filesystem event stream over SSH, so a daemon thread runs
`status` every interval and broadcasts only when the fingerprint of the
result changes.
"""

import logging
import threading
from typing import Callable

from repobridge.backends.base import GitBackend
from repobridge.errors import GitCommandError, RemoteConnectionError
from repobridge.git.status import status_fingerprint

logger = logging.getLogger(__name__)

STOP_JOIN_TIMEOUT = 2.0


class RemoteStatusPoller:
    """Polls one remote working tree for status changes."""

    def __init__(
        self,
        path: str,
        backend: GitBackend,
        notify: Callable[[], None],
        interval_ms: int = 5000,
    ):
        self.path = path
        self.backend = backend
        self.interval = interval_ms / 1000
        self._notify = notify
        # An empty tree fingerprints as "" too, so a clean tree is never reported
        self.last_fingerprint = ""
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"poll:{self.path}", daemon=True
        )
        self._thread.start()
        logger.debug(f"[poll] polling {self.path} every {self.interval}s")

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval):
            self.poll_once()

    def poll_once(self) -> bool:
        """Run one poll cycle. Returns True if a change was broadcast."""
        try:
            changes = self.backend.status(self.path)
        except (RemoteConnectionError, GitCommandError) as e:
            logger.debug(f"[poll] {self.path}: skipped ({e})")
            return False

        fingerprint = status_fingerprint(changes)
        if fingerprint == self.last_fingerprint or self._stop_event.is_set():
            return False
        self.last_fingerprint = fingerprint
        self._notify()
        return True

    def stop(self) -> None:
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=STOP_JOIN_TIMEOUT)
        logger.debug(f"[poll] stopped polling {self.path}")
