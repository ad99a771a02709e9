"""
Shared data types for repobridge.

Everything here is a transient snapshot read from git on each call;
nothing is cached or persisted.
"""

from dataclasses import dataclass, field

STATUS_ADDED = "added"
STATUS_MODIFIED = "modified"
STATUS_DELETED = "deleted"
STATUS_RENAMED = "renamed"


@dataclass
class ChangeEntry:
    """One changed path in a working tree."""
    path: str
    status: str  # added | modified | deleted | renamed
    additions: int = 0
    deletions: int = 0
    is_staged: bool = False


@dataclass
class CommitRecord:
    """One commit from the log.

    is_pushed is derived from the ahead count of the page it was read with.
    """
    hash: str
    subject: str
    body: str
    author: str
    date: str  # ISO 8601 author date
    is_pushed: bool
    tags: list[str] = field(default_factory=list)


@dataclass
class LogPage:
    """A page of history plus the ahead count used to compute is_pushed.

    Pass ahead_count back as known_ahead_count when fetching the next page
    so the pushed/unpushed boundary does not shift mid-pagination.
    """
    commits: list[CommitRecord]
    ahead_count: int


@dataclass
class CommitFileChange:
    """A file touched by a commit (first-parent diff)."""
    path: str
    status: str
    additions: int
    deletions: int


@dataclass
class BranchStatus:
    branch: str
    default_branch: str
    ahead: int
    behind: int
    ahead_of_default: int


@dataclass
class BranchRef:
    """Branch listing entry. remote is empty for local-only branches."""
    ref: str
    remote: str
    branch: str
    label: str
