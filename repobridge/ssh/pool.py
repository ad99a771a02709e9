"""Registry of open SSH connections, keyed by connection id."""

import logging
import threading

from repobridge.errors import RemoteConnectionError
from repobridge.lib.config import SshHostConfig, SshSettings
from repobridge.ssh.connection import SshConnection

logger = logging.getLogger(__name__)


class SshConnectionPool:
    """Hands out one SshConnection per configured host.

    Created at process start and drained with close_all() at shutdown.
    """

    def __init__(self, hosts: dict[str, SshHostConfig], settings: SshSettings | None = None):
        self._hosts = dict(hosts)
        self._settings = settings or SshSettings()
        self._connections: dict[str, SshConnection] = {}
        self._lock = threading.Lock()

    def get(self, connection_id: str) -> SshConnection:
        with self._lock:
            conn = self._connections.get(connection_id)
            if conn is not None:
                return conn
            host = self._hosts.get(connection_id)
            if host is None:
                raise RemoteConnectionError(f"Unknown SSH connection '{connection_id}'")
            conn = SshConnection(host, self._settings)
            self._connections[connection_id] = conn
            return conn

    def close_all(self) -> None:
        with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        for conn in connections:
            logger.debug(f"[ssh] closing {conn.connection_id}")
            conn.close()
