"""Tests for repobridge.git.diffparse module."""

from repobridge.git.diffparse import (
    LINE_ADD,
    LINE_CONTEXT,
    LINE_DEL,
    DiffLine,
    FileDiff,
    all_additions,
    all_deletions,
    parse_diff_lines,
)

MODIFIED_DIFF = """diff --git a/app.py b/app.py
index 83db48f..bf269f4 100644
--- a/app.py
+++ b/app.py
@@ -1,3 +1,3 @@
 import os
-print("old")
+print("new")
 done()
"""


class TestParseDiffLines:
    """Test unified diff parsing."""

    def test_parses_context_add_and_del(self):
        diff = parse_diff_lines(MODIFIED_DIFF)
        assert diff.lines == [
            DiffLine(LINE_CONTEXT, left="import os", right="import os"),
            DiffLine(LINE_DEL, left='print("old")'),
            DiffLine(LINE_ADD, right='print("new")'),
            DiffLine(LINE_CONTEXT, left="done()", right="done()"),
        ]
        assert diff.is_binary is False

    def test_drops_headers_and_no_newline_marker(self):
        text = (
            "diff --git a/x b/x\n"
            "new file mode 100644\n"
            "index 0000000..e69de29\n"
            "--- /dev/null\n"
            "+++ b/x\n"
            "@@ -0,0 +1 @@\n"
            "+hello\n"
            "\\ No newline at end of file\n"
        )
        diff = parse_diff_lines(text)
        assert diff.lines == [DiffLine(LINE_ADD, right="hello")]

    def test_removed_line_that_looks_like_header_is_kept(self):
        text = (
            "diff --git a/notes.md b/notes.md\n"
            "--- a/notes.md\n"
            "+++ b/notes.md\n"
            "@@ -1,2 +1 @@\n"
            "--- separator\n"
            " body\n"
        )
        diff = parse_diff_lines(text)
        assert diff.lines[0] == DiffLine(LINE_DEL, left="-- separator")
        assert len(diff.lines) == 2

    def test_unknown_prefix_kept_as_context(self):
        diff = parse_diff_lines("@@ -1 +1 @@\n*weird\n")
        assert diff.lines == [DiffLine(LINE_CONTEXT, left="*weird", right="*weird")]

    def test_binary_diff(self):
        text = (
            "diff --git a/logo.png b/logo.png\n"
            "index 1111111..2222222 100644\n"
            "Binary files a/logo.png and b/logo.png differ\n"
        )
        diff = parse_diff_lines(text)
        assert diff.is_binary is True
        assert diff.lines == []

    def test_empty_input(self):
        diff = parse_diff_lines("")
        assert diff.lines == []
        assert diff.is_binary is False

    def test_every_line_has_exactly_the_right_sides(self):
        diff = parse_diff_lines(MODIFIED_DIFF)
        for line in diff.lines:
            assert line.left is not None or line.right is not None
            if line.type == LINE_ADD:
                assert line.left is None
            if line.type == LINE_DEL:
                assert line.right is None


class TestWholeFileDiffs:
    """Test all_additions / all_deletions."""

    def test_all_additions_drops_trailing_newline_row(self):
        diff = all_additions("a\nb\n")
        assert diff.lines == [DiffLine(LINE_ADD, right="a"), DiffLine(LINE_ADD, right="b")]

    def test_all_deletions(self):
        diff = all_deletions("gone\n")
        assert diff.lines == [DiffLine(LINE_DEL, left="gone")]

    def test_keeps_blank_lines_in_the_middle(self):
        diff = all_additions("a\n\nb")
        assert [line.right for line in diff.lines] == ["a", "", "b"]


class TestFileDiff:
    """Test FileDiff views."""

    def test_original_and_modified(self):
        diff = parse_diff_lines(MODIFIED_DIFF)
        assert diff.original == 'import os\nprint("old")\ndone()'
        assert diff.modified == 'import os\nprint("new")\ndone()'

    def test_to_dict_omits_missing_side(self):
        assert DiffLine(LINE_ADD, right="x").to_dict() == {"type": "add", "right": "x"}
        assert DiffLine(LINE_DEL, left="y").to_dict() == {"type": "del", "left": "y"}

    def test_default_is_empty_text(self):
        assert FileDiff().original == ""
