"""
Unified diff parsing.

Turns raw `git diff` output into an ordered list of DiffLine records a UI
can render side by side. Pure functions, no I/O.
"""

from dataclasses import dataclass, field
from typing import Optional

LINE_CONTEXT = "context"
LINE_ADD = "add"
LINE_DEL = "del"

# Headers emitted by `git diff` that are not part of any hunk
DIFF_HEADER_PREFIXES = (
    "diff ",
    "index ",
    "--- ",
    "+++ ",
    "@@",
    "new file mode",
    "old file mode",
    "deleted file mode",
    "similarity index",
    "rename from",
    "rename to",
    "Binary files",
)

BINARY_MARKER = "Binary files"


@dataclass(frozen=True)
class DiffLine:
    """One rendered diff row. left is set for context/del, right for context/add."""
    type: str
    left: Optional[str] = None
    right: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"type": self.type}
        if self.left is not None:
            data["left"] = self.left
        if self.right is not None:
            data["right"] = self.right
        return data


@dataclass
class FileDiff:
    """Diff of one file. Binary files carry no lines and is_binary=True."""
    lines: list[DiffLine] = field(default_factory=list)
    is_binary: bool = False

    @property
    def original(self) -> str:
        """Left-hand text (empty for newly added files)."""
        return "\n".join(line.left for line in self.lines if line.left is not None)

    @property
    def modified(self) -> str:
        """Right-hand text (empty for deleted files)."""
        return "\n".join(line.right for line in self.lines if line.right is not None)


def parse_diff_lines(text: str) -> FileDiff:
    """
    Parse raw unified diff text into DiffLine records.

    Metadata lines and "\\ No newline at end of file" markers are dropped.
    Unknown prefixes are kept as context rather than discarded.

    Inside a hunk only "diff " and "@@" lines are structural, so a removed
    line reading "-- x" (rendered "--- x") is not mistaken for a header.
    """
    result: list[DiffLine] = []
    in_hunk = False
    for line in text.split("\n"):
        if not line:
            continue
        if line.startswith("@@"):
            in_hunk = True
            continue
        if line.startswith("diff "):
            in_hunk = False
            continue
        if not in_hunk and line.startswith(DIFF_HEADER_PREFIXES):
            continue
        prefix = line[0]
        content = line[1:]
        if prefix == "\\":
            continue
        if prefix == " ":
            result.append(DiffLine(LINE_CONTEXT, left=content, right=content))
        elif prefix == "-":
            result.append(DiffLine(LINE_DEL, left=content))
        elif prefix == "+":
            result.append(DiffLine(LINE_ADD, right=content))
        else:
            result.append(DiffLine(LINE_CONTEXT, left=line, right=line))

    if not result and BINARY_MARKER in text:
        return FileDiff(lines=[], is_binary=True)
    return FileDiff(lines=result)


def _content_lines(text: str) -> list[str]:
    lines = text.split("\n")
    # A terminating newline does not start another line
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def all_additions(text: str) -> FileDiff:
    """Present a whole file as added (untracked files, root commits)."""
    return FileDiff(lines=[DiffLine(LINE_ADD, right=line) for line in _content_lines(text)])


def all_deletions(text: str) -> FileDiff:
    """Present a whole file as deleted (last committed content)."""
    return FileDiff(lines=[DiffLine(LINE_DEL, left=line) for line in _content_lines(text)])
