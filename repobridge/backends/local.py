"""Git backend for working trees on the local filesystem."""

import logging
import os
from pathlib import Path
from typing import Callable

from repobridge.backends.base import GitBackend
from repobridge.errors import GitCommandError
from repobridge.git.runner import GitResult, resolve_git_binary, run_gh, run_git
from repobridge.lib.config import Settings

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024


class LocalGitBackend(GitBackend):
    """Runs git as a child process with the working tree as its directory."""

    pathmod = os.path

    def __init__(
        self,
        settings: Settings | None = None,
        runner: Callable[..., GitResult] = run_git,
        gh_runner: Callable[..., GitResult] = run_gh,
    ):
        super().__init__(settings)
        self._runner = runner
        self._gh_runner = gh_runner
        self.git_path = resolve_git_binary(self.settings.git_path)

    def run_git(self, worktree: str, args: list[str]) -> GitResult:
        return self._runner(
            args,
            Path(worktree),
            timeout=self.settings.command_timeout,
            git_path=self.git_path,
        )

    def run_gh(self, worktree: str, args: list[str]) -> GitResult:
        return self._gh_runner(args, Path(worktree), timeout=self.settings.command_timeout)

    def ensure_within_worktree(self, worktree: str, file_path: str) -> str:
        # Relative worktrees ("." from a CLI) resolve against the process cwd
        return super().ensure_within_worktree(os.path.abspath(worktree), file_path)

    def _capped_file(self, worktree: str, file_path: str, max_bytes: int) -> Path | None:
        path = Path(worktree) / file_path
        try:
            stat = path.stat()
        except OSError:
            return None
        if not path.is_file() or stat.st_size > max_bytes:
            return None
        return path

    def read_text_capped(self, worktree: str, file_path: str, max_bytes: int) -> str | None:
        path = self._capped_file(worktree, file_path, max_bytes)
        if path is None:
            return None
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

    def count_newlines_capped(self, worktree: str, file_path: str, max_bytes: int) -> int | None:
        path = self._capped_file(worktree, file_path, max_bytes)
        if path is None:
            return None
        count = 0
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(READ_CHUNK_BYTES), b""):
                    count += chunk.count(b"\n")
        except OSError as e:
            logger.debug(f"Could not count lines in {path}: {e}")
            return None
        return count

    def remove_file(self, worktree: str, file_path: str) -> None:
        path = Path(worktree) / file_path
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            # Same failure shape as `rm -f` on the remote side (e.g. a directory)
            raise GitCommandError(
                ["rm", "-f", "--", file_path],
                1,
                f"rm: cannot remove '{file_path}': {e.strerror or e}",
            ) from e
