"""Change notifications for working trees: local watchers and remote pollers."""

from repobridge.watch.events import WATCHER_ERROR, PathChanged
from repobridge.watch.local import LocalStatusWatcher
from repobridge.watch.registry import WatchRegistry
from repobridge.watch.remote import RemoteStatusPoller

__all__ = [
    "WATCHER_ERROR",
    "PathChanged",
    "LocalStatusWatcher",
    "WatchRegistry",
    "RemoteStatusPoller",
]
