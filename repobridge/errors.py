"""
Error taxonomy for repobridge.

Backends raise these; GitService turns them into soft failures
(OperationResult with success=False and the error's kind).
"""

from typing import Sequence


class RepoBridgeError(Exception):
    """Base class for all repobridge failures."""

    kind = "error"


class NotARepositoryError(RepoBridgeError):
    """Path is not inside a git working tree."""

    kind = "not_a_repository"

    def __init__(self, path: str):
        self.path = path
        super().__init__("Not a git repository")


class PathEscapeError(RepoBridgeError):
    """A requested file resolves outside the working tree."""

    kind = "path_escape"

    def __init__(self, worktree: str, file_path: str):
        self.worktree = worktree
        self.file_path = file_path
        super().__init__("File path is outside the worktree")


class GitCommandError(RepoBridgeError):
    """git (or gh) exited non-zero. stderr is kept verbatim."""

    kind = "command_failed"

    def __init__(self, args: Sequence[str], returncode: int, stderr: str, stdout: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        self.stdout = stdout
        detail = stderr.strip() or stdout.strip() or f"exit status {returncode}"
        super().__init__(detail)


class RemoteConnectionError(RepoBridgeError):
    """SSH channel unavailable."""

    kind = "connection_failed"


class GuardViolation(RepoBridgeError):
    """A precondition check refused a destructive operation."""

    kind = "guard_violation"


class InvalidArgumentError(RepoBridgeError, ValueError):
    """Caller passed an unusable argument (empty message, bad hash)."""

    kind = "invalid_argument"
