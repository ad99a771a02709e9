"""Git command execution and output parsing for repobridge.

Transport-independent pieces shared by the local and remote backends:
the subprocess runner, and pure parsers for porcelain status, unified
diffs and log output.

Return type conventions:
- run_git()/run_gh() return GitResult: caller checks .success or calls .check().
- Parsers take raw command output and return model objects; they never run git.
"""

from repobridge.git.runner import (
    GitResult,
    run_git,
    run_gh,
    resolve_git_binary,
)
from repobridge.git.diffparse import (
    DiffLine,
    FileDiff,
    parse_diff_lines,
    all_additions,
    all_deletions,
)
from repobridge.git.status import (
    PorcelainEntry,
    parse_porcelain_z,
    sum_numstat,
    status_fingerprint,
)
from repobridge.git.log import (
    parse_log,
    parse_commit_files,
)

__all__ = [
    # runner
    "GitResult",
    "run_git",
    "run_gh",
    "resolve_git_binary",
    # diff
    "DiffLine",
    "FileDiff",
    "parse_diff_lines",
    "all_additions",
    "all_deletions",
    # status
    "PorcelainEntry",
    "parse_porcelain_z",
    "sum_numstat",
    "status_fingerprint",
    # log
    "parse_log",
    "parse_commit_files",
]
