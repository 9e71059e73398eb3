import unittest

from commit_inference.vcs.diff_parser import (
    diffs_by_path,
    parse_diff_to_changeset,
    parse_unified_diff,
)


GIT_DIFF = """\
diff --git a/src/app.py b/src/app.py
index 83db48f..bf269f4 100644
--- a/src/app.py
+++ b/src/app.py
@@ -1,3 +1,4 @@
 import os
-x = 1
+x = 2
+y = 3
 print(x)
diff --git a/docs/new.md b/docs/new.md
new file mode 100644
index 0000000..e69de29
--- /dev/null
+++ b/docs/new.md
@@ -0,0 +1,2 @@
+# New
+text
diff --git a/old.txt b/old.txt
deleted file mode 100644
index e69de29..0000000
--- a/old.txt
+++ /dev/null
@@ -1 +0,0 @@
-gone
diff --git a/a.txt b/b.txt
similarity index 100%
rename from a.txt
rename to b.txt
"""

PLAIN_DIFF = """\
--- a/one.txt\t2024-01-01 10:00:00
+++ b/one.txt\t2024-01-02 10:00:00
@@ -1 +1 @@
-a
+b
--- two.txt
+++ two.txt
@@ -1,0 +1 @@
+new
"""


class TestParseUnifiedDiff(unittest.TestCase):
    def test_git_diff_statuses_and_counts(self) -> None:
        files = parse_unified_diff(GIT_DIFF)
        summary = [(f.path, f.status, f.additions, f.deletions) for f in files]
        self.assertEqual(
            summary,
            [
                ("src/app.py", "modified", 2, 1),
                ("docs/new.md", "added", 2, 0),
                ("old.txt", "deleted", 0, 1),
                ("b.txt", "renamed", 0, 0),
            ],
        )

    def test_file_diff_text_is_kept(self) -> None:
        app = parse_unified_diff(GIT_DIFF)[0]
        self.assertTrue(app.diff.startswith("diff --git a/src/app.py b/src/app.py"))
        self.assertEqual(app.added_lines, ["x = 2", "y = 3"])
        self.assertEqual(app.removed_lines, ["x = 1"])
        self.assertNotIn("docs/new.md", app.diff)

    def test_removed_line_that_looks_like_a_header(self) -> None:
        diff = (
            "diff --git a/schema.sql b/schema.sql\n"
            "--- a/schema.sql\n"
            "+++ b/schema.sql\n"
            "@@ -1,2 +1,1 @@\n"
            "--- drop me\n"
            " keep\n"
        )
        files = parse_unified_diff(diff)
        self.assertEqual(len(files), 1)
        self.assertEqual((files[0].additions, files[0].deletions), (0, 1))

    def test_no_newline_marker(self) -> None:
        diff = (
            "diff --git a/f.txt b/f.txt\n"
            "--- a/f.txt\n"
            "+++ b/f.txt\n"
            "@@ -1 +1 @@\n"
            "-old\n"
            "\\ No newline at end of file\n"
            "+new\n"
            "\\ No newline at end of file\n"
        )
        files = parse_unified_diff(diff)
        self.assertEqual((files[0].additions, files[0].deletions), (1, 1))

    def test_plain_unified_diff(self) -> None:
        files = parse_unified_diff(PLAIN_DIFF)
        summary = [(f.path, f.status, f.additions, f.deletions) for f in files]
        self.assertEqual(summary, [("one.txt", "modified", 1, 1), ("two.txt", "modified", 1, 0)])

    def test_empty_input(self) -> None:
        self.assertEqual(parse_unified_diff(""), [])
        self.assertEqual(parse_unified_diff("not a diff\n"), [])


class TestHelpers(unittest.TestCase):
    def test_parse_diff_to_changeset(self) -> None:
        changeset = parse_diff_to_changeset(GIT_DIFF)
        self.assertEqual(len(changeset.files), 4)
        self.assertEqual(changeset.total_additions, 4)
        self.assertEqual(changeset.total_deletions, 2)

    def test_diffs_by_path(self) -> None:
        diffs = diffs_by_path(GIT_DIFF)
        self.assertEqual(list(diffs), ["src/app.py", "docs/new.md", "old.txt", "b.txt"])
        self.assertIn("+# New", diffs["docs/new.md"])


if __name__ == "__main__":
    unittest.main()
