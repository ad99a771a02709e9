"""Parsing of `git log` and `git diff-tree` output."""

import re

from repobridge.models import (
    CommitFileChange,
    CommitRecord,
    STATUS_ADDED,
    STATUS_DELETED,
    STATUS_MODIFIED,
    STATUS_RENAMED,
)

FIELD_SEP = "---FIELD_SEP---"
RECORD_SEP = "---RECORD_SEP---"
LOG_FORMAT = f"{RECORD_SEP}%H{FIELD_SEP}%s{FIELD_SEP}%an{FIELD_SEP}%aI{FIELD_SEP}%D{FIELD_SEP}%b"

COMMIT_HASH_PATTERN = re.compile(r"^[0-9a-f]{4,40}$", re.IGNORECASE)

# --root handles commits without a parent, -m --first-parent keeps merge
# commits to the diff against their first parent only.
DIFF_TREE_ARGS = ["diff-tree", "--root", "--no-commit-id", "-r", "-m", "--first-parent"]


def log_args(max_count: int, skip: int) -> list[str]:
    return [
        "log",
        f"--max-count={max_count}",
        f"--skip={skip}",
        f"--pretty=format:{LOG_FORMAT}",
        "--",
    ]


def parse_tags(decorations: str) -> list[str]:
    """Pull tag names out of %D output ("tag: v1, origin/main, HEAD -> main")."""
    tags = []
    for ref in decorations.split(","):
        ref = ref.strip()
        if ref.startswith("tag: "):
            tags.append(ref[len("tag: "):])
    return tags


def parse_log(output: str, skip: int, ahead_count: int) -> list[CommitRecord]:
    """Parse LOG_FORMAT output.

    A commit at position skip + index is pushed when that position is at or
    past the ahead count.
    """
    commits = []
    entries = [e for e in output.split(RECORD_SEP) if e.strip()]
    for index, entry in enumerate(entries):
        parts = entry.strip().split(FIELD_SEP)
        parts += [""] * (6 - len(parts))
        commits.append(CommitRecord(
            hash=parts[0],
            subject=parts[1],
            body=parts[5].strip(),
            author=parts[2],
            date=parts[3],
            is_pushed=skip + index >= ahead_count,
            tags=parse_tags(parts[4]),
        ))
    return commits


def _name_status(code: str) -> str:
    if code == "A":
        return STATUS_ADDED
    if code == "D":
        return STATUS_DELETED
    if code.startswith("R"):
        return STATUS_RENAMED
    return STATUS_MODIFIED


def parse_commit_files(numstat: str, name_status: str) -> list[CommitFileChange]:
    """Combine `diff-tree --numstat` and `--name-status` output per path."""
    statuses: dict[str, str] = {}
    for line in name_status.splitlines():
        if not line.strip():
            continue
        code, *paths = line.split("\t")
        if paths:
            statuses[paths[-1]] = _name_status(code)

    files = []
    for line in numstat.splitlines():
        if not line.strip():
            continue
        added, deleted, *paths = line.split("\t")
        path = "\t".join(paths)
        files.append(CommitFileChange(
            path=path,
            status=statuses.get(path, STATUS_MODIFIED),
            additions=int(added) if added.isdigit() else 0,
            deletions=int(deleted) if deleted.isdigit() else 0,
        ))
    return files


def parse_count(output: str) -> int:
    """Parse `rev-list --count` output. Raises ValueError on garbage."""
    return int(output.strip())


def parse_left_right(output: str) -> tuple[int, int]:
    """Parse `rev-list --left-right --count A...B` into (left, right)."""
    parts = output.split()
    if len(parts) != 2:
        raise ValueError(f"Unexpected rev-list output: {output!r}")
    return int(parts[0]), int(parts[1])
