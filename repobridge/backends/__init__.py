"""Git backends: one contract, local and remote transports.

Usage:
    from repobridge.backends import BackendSelector

    backend = selector.select(path)
    changes = backend.status(path)
"""

from repobridge.backends.base import (
    GitBackend,
    REVERT_DELETED,
    REVERT_RESTORED,
)
from repobridge.backends.local import LocalGitBackend
from repobridge.backends.remote import RemoteGitBackend
from repobridge.backends.selector import BackendSelector

__all__ = [
    "GitBackend",
    "LocalGitBackend",
    "RemoteGitBackend",
    "BackendSelector",
    "REVERT_DELETED",
    "REVERT_RESTORED",
]
