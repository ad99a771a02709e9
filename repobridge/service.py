"""
GitService: the entry point callers use.

Resolves the backend for each path (local or SSH), converts repobridge
errors into soft failures, validates local working-tree paths and
broadcasts a change notification after operations that modify a tree.

Usage:
    from repobridge.service import create_service

    service = create_service()
    result = service.status("/home/me/project")
    if result.success:
        for change in result.value:
            print(change.path, change.status)
    service.shutdown()
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable

from repobridge.backends.base import GitBackend
from repobridge.backends.selector import BackendSelector
from repobridge.errors import InvalidArgumentError, RepoBridgeError
from repobridge.lib.config import Settings
from repobridge.lib.projects import RemoteProjectIndex
from repobridge.ssh.pool import SshConnectionPool
from repobridge.watch.events import Listener
from repobridge.watch.local import LocalStatusWatcher
from repobridge.watch.registry import WatchRegistry
from repobridge.watch.remote import RemoteStatusPoller

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """Outcome of a service call. value is set on success, error/kind on failure."""
    success: bool
    value: Any = None
    error: str | None = None
    kind: str | None = None


def validate_task_path(path: str) -> None:
    """Local working trees must be absolute paths to existing directories."""
    if not path:
        raise InvalidArgumentError("Missing path")
    if not os.path.isabs(path):
        raise InvalidArgumentError("Path must be absolute")
    if not os.path.exists(path):
        raise InvalidArgumentError("Path does not exist")
    if not os.path.isdir(path):
        raise InvalidArgumentError("Path is not a directory")


class GitService:
    """Backend-agnostic git operations on working trees."""

    def __init__(
        self,
        selector: BackendSelector,
        watches: WatchRegistry,
        settings: Settings | None = None,
        connections: SshConnectionPool | None = None,
    ):
        self.selector = selector
        self.watches = watches
        self.settings = settings or Settings()
        self.connections = connections

    def _backend(self, path: str, check_path: bool) -> GitBackend:
        if check_path and self.selector.remote_project_for(path) is None:
            validate_task_path(path)
        return self.selector.select(path)

    def _call(
        self,
        path: str,
        operation: Callable[[GitBackend], Any],
        *,
        check_path: bool = True,
        notify: bool = False,
    ) -> OperationResult:
        try:
            value = operation(self._backend(path, check_path))
        except RepoBridgeError as e:
            logger.debug(f"{path}: {e.kind}: {e}")
            return OperationResult(success=False, error=str(e), kind=e.kind)
        if notify:
            self.watches.notify(path)
        return OperationResult(success=True, value=value)

    # ---------- Status / Diff ----------

    def status(self, path: str) -> OperationResult:
        return self._call(path, lambda b: b.status(path), check_path=False)

    def file_diff(self, path: str, file_path: str) -> OperationResult:
        return self._call(path, lambda b: b.file_diff(path, file_path), check_path=False)

    # ---------- Index / Working tree ----------

    def stage(self, path: str, file_path: str) -> OperationResult:
        logger.info(f"Staging {file_path} in {path}")
        return self._call(path, lambda b: b.stage(path, file_path), notify=True)

    def stage_all(self, path: str) -> OperationResult:
        logger.info(f"Staging all files in {path}")
        return self._call(path, lambda b: b.stage_all(path), notify=True)

    def unstage(self, path: str, file_path: str) -> OperationResult:
        logger.info(f"Unstaging {file_path} in {path}")
        return self._call(path, lambda b: b.unstage(path, file_path), notify=True)

    def revert(self, path: str, file_path: str) -> OperationResult:
        """Discard changes to file_path. value is "deleted" or "restored"."""
        logger.info(f"Reverting {file_path} in {path}")
        return self._call(path, lambda b: b.revert(path, file_path), notify=True)

    # ---------- Commit / Push / Pull ----------

    def commit(self, path: str, message: str) -> OperationResult:
        return self._call(path, lambda b: b.commit(path, message), notify=True)

    def push(self, path: str) -> OperationResult:
        return self._call(path, lambda b: b.push(path))

    def pull(self, path: str) -> OperationResult:
        return self._call(path, lambda b: b.pull(path), notify=True)

    def commit_and_push(
        self,
        path: str,
        message: str,
        create_branch_if_on_default: bool = False,
        branch_prefix: str = "repobridge",
    ) -> OperationResult:
        return self._call(
            path,
            lambda b: b.commit_and_push(path, message, create_branch_if_on_default, branch_prefix),
            notify=True,
        )

    # ---------- Branches ----------

    def branch_status(self, path: str) -> OperationResult:
        return self._call(path, lambda b: b.get_branch_status(path), check_path=False)

    def default_branch(self, path: str) -> OperationResult:
        return self._call(path, lambda b: b.get_default_branch(path), check_path=False)

    def list_branches(self, path: str, remote: str = "origin") -> OperationResult:
        return self._call(path, lambda b: b.list_branches(path, remote), check_path=False)

    def rename_branch(self, path: str, old_branch: str, new_branch: str) -> OperationResult:
        """value is True when the remote branch was moved too."""
        return self._call(path, lambda b: b.rename_branch(path, old_branch, new_branch))

    # ---------- History ----------

    def log(
        self,
        path: str,
        max_count: int = 50,
        skip: int = 0,
        known_ahead_count: int | None = None,
    ) -> OperationResult:
        return self._call(path, lambda b: b.get_log(path, max_count, skip, known_ahead_count))

    def latest_commit(self, path: str) -> OperationResult:
        return self._call(path, lambda b: b.get_latest_commit(path))

    def commit_files(self, path: str, commit_hash: str) -> OperationResult:
        return self._call(path, lambda b: b.get_commit_files(path, commit_hash))

    def commit_file_diff(self, path: str, commit_hash: str, file_path: str) -> OperationResult:
        return self._call(path, lambda b: b.get_commit_file_diff(path, commit_hash, file_path))

    def soft_reset_last_commit(self, path: str) -> OperationResult:
        """Undo the latest unpushed commit. value is (subject, body)."""
        return self._call(path, lambda b: b.soft_reset_last_commit(path), notify=True)

    # ---------- Watching ----------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        return self.watches.add_listener(listener)

    def _resource_factory(self, path: str):
        watch_settings = self.settings.watch
        if self.selector.remote_project_for(path) is not None:
            backend = self.selector.select(path)
            return lambda: RemoteStatusPoller(
                path,
                backend,
                notify=lambda: self.watches.notify(path),
                interval_ms=watch_settings.poll_interval_ms,
            )
        return lambda: LocalStatusWatcher(
            path,
            notify=lambda: self.watches.notify(path),
            on_error=lambda error: self.watches.fail(path, error),
            debounce_ms=watch_settings.debounce_ms,
        )

    def watch(self, path: str) -> OperationResult:
        """Subscribe to change notifications for path. value is the watch id."""
        try:
            factory = self._resource_factory(path)
            watch_id = self.watches.acquire(path, factory)
        except RepoBridgeError as e:
            return OperationResult(success=False, error=str(e), kind=e.kind)
        except OSError as e:
            logger.warning(f"[watch] could not watch {path}: {e}")
            return OperationResult(
                success=False, error=str(e) or "Failed to watch workspace", kind="watch_failed"
            )
        return OperationResult(success=True, value=watch_id)

    def unwatch(self, path: str, watch_id: str | None = None) -> OperationResult:
        self.watches.release(path, watch_id)
        return OperationResult(success=True)

    def shutdown(self) -> None:
        """Stop all watchers and close SSH master connections."""
        self.watches.shutdown()
        if self.connections is not None:
            self.connections.close_all()


def create_service(settings: Settings | None = None) -> GitService:
    """Wire a GitService from settings.

    Factory function for cleaner imports.
    """
    settings = settings or Settings()
    connections = SshConnectionPool(settings.connections, settings.ssh)
    selector = BackendSelector(
        RemoteProjectIndex(settings.remote_projects),
        connections,
        settings=settings,
    )
    return GitService(selector, WatchRegistry(), settings, connections=connections)
