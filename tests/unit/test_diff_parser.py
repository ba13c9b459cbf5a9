"""
Unit tests for the unified diff parser.
"""

from pr_context.github.parser import parse_diff, reconstruct_patch, render_file_diff
from pr_context.models.pr_diff import DiffHunk, DiffLine, FileDiff, FileStatus, LineKind


RENAME_DIFF = """diff --git a/src/old_name.py b/src/new_name.py
similarity index 90%
rename from src/old_name.py
rename to src/new_name.py
index 1234567..89abcde 100644
--- a/src/old_name.py
+++ b/src/new_name.py
@@ -1,2 +1,2 @@
-x = 1
+x = 2
 y = 3
"""

NO_NEWLINE_DIFF = """diff --git a/a.txt b/a.txt
--- a/a.txt
+++ b/a.txt
@@ -1 +1 @@
-old
\\ No newline at end of file
+new
\\ No newline at end of file
"""


class TestParseDiff:
    """Unit tests for parse_diff."""

    def test_single_file_scenario(self, readme_diff):
        """Test the basic one-hunk README diff."""
        files = parse_diff(readme_diff)

        assert len(files) == 1
        readme = files[0]
        assert readme.filename == "README.md"
        assert readme.status is FileStatus.MODIFIED
        assert readme.additions == 1
        assert readme.deletions == 1
        assert readme.changes == 2

        hunk = readme.hunks[0]
        assert (hunk.old_start, hunk.old_line_count, hunk.new_start, hunk.new_line_count) == (1, 3, 1, 3)
        assert hunk.lines == [
            DiffLine(LineKind.DELETE, "old", old_line_number=1),
            DiffLine(LineKind.ADD, "new", new_line_number=1),
            DiffLine(LineKind.CONTEXT, "context", old_line_number=2, new_line_number=2),
        ]

    def test_multi_file_statuses(self, multi_file_diff):
        """Test status, binary and count detection across several files."""
        files = parse_diff(multi_file_diff)

        assert [f.filename for f in files] == [
            "src/auth/session.ts",
            "src/utils/format.py",
            "docs/old.md",
            "assets/logo.png",
            "package-lock.json",
        ]
        session, added, removed, logo, lock = files

        assert session.status is FileStatus.MODIFIED
        assert (session.additions, session.deletions) == (3, 1)
        assert session.hunks[0].header_text == "export function createSession(user: User) {"

        assert added.status is FileStatus.ADDED
        assert added.additions == 3
        assert [line.new_line_number for line in added.hunks[0].lines] == [1, 2, 3]
        assert added.hunks[0].lines[-1].text == ""

        assert removed.status is FileStatus.REMOVED
        assert removed.deletions == 2
        assert [line.old_line_number for line in removed.hunks[0].lines] == [1, 2]

        assert logo.is_binary
        assert logo.hunks == []
        assert logo.changes == 0

        assert lock.hunks[0].old_line_count == 1
        assert lock.hunks[0].new_line_count == 1

    def test_line_numbers_follow_hunk_start(self, multi_file_diff):
        """Test old/new numbering of context, deleted and added lines."""
        session = parse_diff(multi_file_diff)[0]
        numbered = [(line.kind, line.old_line_number, line.new_line_number) for line in session.hunks[0].lines]

        assert numbered == [
            (LineKind.CONTEXT, 10, 10),
            (LineKind.DELETE, 11, None),
            (LineKind.ADD, None, 11),
            (LineKind.ADD, None, 12),
            (LineKind.ADD, None, 13),
            (LineKind.CONTEXT, 12, 14),
            (LineKind.CONTEXT, 13, 15),
        ]

    def test_rename(self):
        """Test renamed files keep their previous path."""
        renamed = parse_diff(RENAME_DIFF)[0]

        assert renamed.status is FileStatus.RENAMED
        assert renamed.filename == "src/new_name.py"
        assert renamed.previous_filename == "src/old_name.py"
        assert renamed.changes == 2

    def test_no_newline_marker(self):
        """Test no-newline markers are kept without affecting counts."""
        file_diff = parse_diff(NO_NEWLINE_DIFF)[0]
        kinds = [line.kind for line in file_diff.hunks[0].lines]

        assert kinds == [LineKind.DELETE, LineKind.NO_NEWLINE, LineKind.ADD, LineKind.NO_NEWLINE]
        assert file_diff.hunks[0].lines[1].text == "\\ No newline at end of file"
        assert file_diff.additions == 1
        assert file_diff.deletions == 1

    def test_multiple_hunks(self):
        """Test a file with two hunks."""
        diff = (
            "diff --git a/app.py b/app.py\n"
            "@@ -1,2 +1,2 @@\n"
            "-a\n"
            "+b\n"
            "@@ -40,3 +40,4 @@ def handler(event):\n"
            " keep\n"
            "+added\n"
        )
        file_diff = parse_diff(diff)[0]

        assert len(file_diff.hunks) == 2
        assert file_diff.hunks[1].header_text == "def handler(event):"
        assert file_diff.hunks[1].lines[1].new_line_number == 41
        assert file_diff.additions == 2

    def test_empty_and_garbage_input(self):
        """Test malformed input never raises."""
        assert parse_diff("") == []
        assert parse_diff("not a diff\nat all\n") == []
        assert parse_diff("@@ -1 +1 @@\n+orphan line\n") == []

    def test_malformed_hunk_header_is_skipped(self):
        """Test unparseable hunk headers are ignored."""
        diff = "diff --git a/x.py b/x.py\n@@ nonsense @@\n+line\n"
        files = parse_diff(diff)

        assert len(files) == 1
        assert files[0].hunks == []
        assert files[0].additions == 0

    def test_unterminated_file_is_flushed(self):
        """Test the last file is emitted without a trailing newline."""
        files = parse_diff("diff --git a/a b/a\n@@ -1 +1 @@\n+x")

        assert len(files) == 1
        assert files[0].additions == 1


class TestPatchRendering:
    """Unit tests for reconstruct_patch and render_file_diff."""

    def test_reconstruct_patch(self, readme_diff):
        """Test a parsed file is replayed as patch text."""
        readme = parse_diff(readme_diff)[0]

        assert reconstruct_patch(readme) == "@@ -1,3 +1,3 @@\n-old\n+new\n context"

    def test_reconstruct_patch_keeps_header_text(self, multi_file_diff):
        """Test hunk trailers survive reconstruction."""
        session = parse_diff(multi_file_diff)[0]
        patch = reconstruct_patch(session)

        assert patch.splitlines()[0] == "@@ -10,6 +10,8 @@ export function createSession(user: User) {"
        assert "+  const token = await sign(id)" in patch

    def test_reconstruct_patch_without_hunks(self):
        """Test binary files have no patch."""
        assert reconstruct_patch(FileDiff(filename="logo.png", is_binary=True)) is None

    def test_render_rename_reparses(self):
        """Test a rendered renamed file parses back to the same file."""
        renamed = parse_diff(RENAME_DIFF)[0]

        assert parse_diff(render_file_diff(renamed)) == [renamed]

    def test_render_added_file(self):
        """Test an added file is rendered with its status line."""
        file_diff = FileDiff(
            filename="new.py",
            status=FileStatus.ADDED,
            additions=1,
            changes=1,
            hunks=[DiffHunk(0, 0, 1, 1, lines=[DiffLine(LineKind.ADD, "print()", new_line_number=1)])],
        )
        rendered = render_file_diff(file_diff)

        assert "new file mode 100644" in rendered
        assert parse_diff(rendered) == [file_diff]
