"""Local git/gh command runner."""

import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from repobridge.errors import GitCommandError

# None means no timeout: a hung command blocks its caller.
DEFAULT_TIMEOUT = None

GIT_BINARY_CANDIDATES = [
    "/opt/homebrew/bin/git",
    "/usr/local/bin/git",
    "/usr/bin/git",
]


@dataclass
class GitResult:
    """Result of a git command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False
    args: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out

    def check(self) -> "GitResult":
        """Return self, or raise GitCommandError carrying stderr verbatim."""
        if not self.success:
            raise GitCommandError(self.args, self.returncode, self.stderr, self.stdout)
        return self


def resolve_git_binary(configured: str | None = None) -> str:
    """Pick the git executable: GIT_PATH, then config, then well-known paths."""
    from_env = os.environ.get("GIT_PATH", "").strip()
    for candidate in (from_env, configured or ""):
        if candidate and (os.path.exists(candidate) or shutil.which(candidate)):
            return candidate
    for candidate in GIT_BINARY_CANDIDATES:
        if os.path.exists(candidate):
            return candidate
    return "git"


def _run(cmd: list[str], cwd: Path | None, timeout: float | None, args: list[str]) -> GitResult:
    try:
        result = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
        return GitResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            args=args,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
            args=args,
        )
    except FileNotFoundError as e:
        return GitResult(returncode=127, stdout="", stderr=str(e), args=args)


def run_git(
    args: list[str],
    cwd: Path,
    timeout: float | None = DEFAULT_TIMEOUT,
    git_path: str = "git",
) -> GitResult:
    """
    Run a git command in a working directory.

    Args:
        args: Git command arguments (e.g., ["status", "--porcelain"])
        cwd: Working directory for the command
        timeout: Timeout in seconds, None to wait indefinitely
        git_path: git executable

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    return _run([git_path, "-C", str(cwd), *args], None, timeout, ["git", *args])


def run_gh(args: list[str], cwd: Path, timeout: float | None = DEFAULT_TIMEOUT) -> GitResult:
    """Run a GitHub CLI command in a working directory."""
    return _run(["gh", *args], cwd, timeout, ["gh", *args])
