"""
Git backend for working trees on a remote host.

Every operation becomes one shell command sent over the SSH channel:
`cd <worktree> && git <args>`, each argument escaped with shlex.quote.
There is no editor or body file on the other side, so multi-line payloads
such as commit messages travel as a single quoted argument.
"""

import logging
import posixpath
import shlex

from repobridge.backends.base import GitBackend
from repobridge.errors import GitCommandError
from repobridge.git.runner import GitResult
from repobridge.lib.config import Settings
from repobridge.ssh.connection import SshConnection

logger = logging.getLogger(__name__)


def quote_args(args: list[str]) -> str:
    return " ".join(shlex.quote(arg) for arg in args)


def _capped(file_path: str, max_bytes: int, action: str) -> str:
    """Shell snippet running action on $f only for regular files <= max_bytes."""
    return (
        f"f={shlex.quote(file_path)} && "
        f'[ -f "$f" ] && [ $(( $(wc -c < "$f") )) -le {int(max_bytes)} ] && {action}'
    )


class RemoteGitBackend(GitBackend):
    """Runs git on a remote host through an SshConnection.

    Connection failures raise RemoteConnectionError from the channel; git
    failures come back as ordinary non-zero GitResults.
    """

    pathmod = posixpath

    def __init__(self, connection: SshConnection, settings: Settings | None = None):
        super().__init__(settings)
        self.connection = connection

    def _run_in(self, worktree: str, command: str):
        return self.connection.exec(f"cd {shlex.quote(worktree)} && {command}")

    def _exec(self, worktree: str, program: str, args: list[str]) -> GitResult:
        result = self._run_in(worktree, f"{program} {quote_args(args)}")
        return GitResult(
            returncode=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
            args=[program, *args],
        )

    def run_git(self, worktree: str, args: list[str]) -> GitResult:
        return self._exec(worktree, "git", args)

    def run_gh(self, worktree: str, args: list[str]) -> GitResult:
        return self._exec(worktree, "gh", args)

    def read_text_capped(self, worktree: str, file_path: str, max_bytes: int) -> str | None:
        result = self._run_in(worktree, _capped(file_path, max_bytes, 'cat -- "$f"'))
        if not result.success:
            return None
        return result.stdout

    def count_newlines_capped(self, worktree: str, file_path: str, max_bytes: int) -> int | None:
        result = self._run_in(worktree, _capped(file_path, max_bytes, 'wc -l < "$f"'))
        if not result.success:
            return None
        try:
            return int(result.stdout.strip())
        except ValueError:
            logger.debug(f"Unexpected wc output for {file_path}: {result.stdout!r}")
            return None

    def remove_file(self, worktree: str, file_path: str) -> None:
        args = ["rm", "-f", "--", file_path]
        result = self._run_in(worktree, quote_args(args))
        if not result.success:
            raise GitCommandError(args, result.exit_code, result.stderr, result.stdout)
