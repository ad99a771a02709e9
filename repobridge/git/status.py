"""Parsing of `git status` and `git diff --numstat` output."""

from dataclasses import dataclass
from typing import Iterable

from repobridge.models import (
    ChangeEntry,
    STATUS_ADDED,
    STATUS_DELETED,
    STATUS_MODIFIED,
    STATUS_RENAMED,
)

STATUS_ARGS = ["status", "--porcelain", "-z", "--untracked-files=all"]


@dataclass
class PorcelainEntry:
    """One `git status --porcelain` record."""
    code: str  # two-character XY code
    path: str
    original_path: str | None = None

    @property
    def is_untracked(self) -> bool:
        return "?" in self.code

    @property
    def is_staged(self) -> bool:
        """First column carries index (staged) state."""
        return self.code[0] not in (" ", "?")

    @property
    def status(self) -> str:
        return classify_status(self.code)


def classify_status(code: str) -> str:
    """Map an XY status code to added/deleted/renamed/modified."""
    if "A" in code or "?" in code:
        return STATUS_ADDED
    if "D" in code:
        return STATUS_DELETED
    if "R" in code:
        return STATUS_RENAMED
    return STATUS_MODIFIED


def parse_porcelain_z(output: str) -> list[PorcelainEntry]:
    """Parse `git status --porcelain -z` output.

    -z format: "XY path\\0", renames and copies add the source path as the
    following record: "R  new\\0old\\0".
    """
    entries: list[PorcelainEntry] = []
    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        if len(record) < 4:
            i += 1
            continue

        code = record[:2]
        path = record[3:]
        if code[0] in ("R", "C") and i + 1 < len(records):
            entries.append(PorcelainEntry(code=code, path=path, original_path=records[i + 1]))
            i += 2
        else:
            entries.append(PorcelainEntry(code=code, path=path))
            i += 1

    return entries


def sum_numstat(output: str) -> tuple[int, int]:
    """Sum `--numstat` lines. Binary entries ("-") count as zero."""
    additions = 0
    deletions = 0
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        if parts[0].isdigit():
            additions += int(parts[0])
        if parts[1].isdigit():
            deletions += int(parts[1])
    return additions, deletions


def status_fingerprint(changes: Iterable[ChangeEntry]) -> str:
    """Cheap content fingerprint used by the remote poller."""
    return "|".join(f"{c.path}:{c.status}:{c.is_staged}" for c in changes)
