"""Local vs remote backend selection per working-tree path."""

import logging
from typing import Callable

from repobridge.backends.base import GitBackend
from repobridge.backends.local import LocalGitBackend
from repobridge.backends.remote import RemoteGitBackend
from repobridge.lib.config import RemoteProject, Settings
from repobridge.ssh.pool import SshConnectionPool

logger = logging.getLogger(__name__)

RemoteProjectResolver = Callable[[str], RemoteProject | None]


class BackendSelector:
    """Picks the backend for a path on every call.

    Paths that resolve to a configured remote project run over that
    project's SSH connection; everything else runs locally.
    """

    def __init__(
        self,
        resolve_remote_project: RemoteProjectResolver,
        connections: SshConnectionPool,
        settings: Settings | None = None,
        local_backend: GitBackend | None = None,
    ):
        self.settings = settings or Settings()
        self._resolve = resolve_remote_project
        self._connections = connections
        self._local = local_backend or LocalGitBackend(self.settings)

    def remote_project_for(self, path: str) -> RemoteProject | None:
        return self._resolve(path)

    def select(self, path: str) -> GitBackend:
        project = self._resolve(path)
        if project is None:
            return self._local
        connection = self._connections.get(project.connection_id)
        return RemoteGitBackend(connection, self.settings)
