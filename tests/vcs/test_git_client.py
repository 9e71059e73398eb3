import subprocess
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from commit_inference.vcs.git_client import (
    EMPTY_TREE,
    GitClient,
    GitError,
    RepositoryErrorKind,
    RepositoryStateError,
)


class DummyProc(SimpleNamespace):
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""


DIFF = """\
diff --git a/src/app.py b/src/app.py
--- a/src/app.py
+++ b/src/app.py
@@ -1,1 +1,2 @@
-x = 1
+x = 2
+y = 3
diff --git a/docs/new.md b/docs/new.md
new file mode 100644
--- /dev/null
+++ b/docs/new.md
@@ -0,0 +1,1 @@
+# New
"""

NAME_STATUS = "M\0src/app.py\0A\0docs/new.md\0R100\0a.txt\0b.txt\0"
NUMSTAT = "2\t1\tsrc/app.py\0" "1\t0\tdocs/new.md\0" "0\t0\t\0a.txt\0b.txt\0"


def make_fake_run(calls, head=True, conflicts="", name_status=NAME_STATUS, numstat=NUMSTAT, diff=DIFF):
    def fake_run(self, args, check=True):
        calls.append(args)
        if args[0] == "rev-parse":
            return DummyProc(returncode=0 if head else 1, stdout="abc\n" if head else "", stderr="")
        if args == ["diff", "--name-only", "--diff-filter=U"]:
            return DummyProc(returncode=0, stdout=conflicts, stderr="")
        if "--name-status" in args:
            return DummyProc(returncode=0, stdout=name_status, stderr="")
        if "--numstat" in args:
            return DummyProc(returncode=0, stdout=numstat, stderr="")
        if args[0] == "diff":
            return DummyProc(returncode=0, stdout=diff, stderr="")
        raise AssertionError(f"Unexpected git command: {args}")

    return fake_run


class TestGetChangeset(unittest.TestCase):
    def test_collects_files(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = make_fake_run(calls)
            changeset = GitClient(Path("/repo")).get_changeset()
        summary = [(f.path, f.status, f.additions, f.deletions) for f in changeset.files]
        self.assertEqual(
            summary,
            [
                ("src/app.py", "modified", 2, 1),
                ("docs/new.md", "added", 1, 0),
                ("b.txt", "renamed", 0, 0),
            ],
        )
        self.assertEqual(changeset.total_additions, 3)
        self.assertEqual(changeset.total_deletions, 1)
        self.assertIn("+y = 3", changeset.files[0].diff)
        self.assertEqual(changeset.files[2].diff, "")
        self.assertEqual(changeset.summary, "3 file(s) changed, +3 -1")
        self.assertIn(["diff", "-M", "HEAD", "--name-status", "-z"], calls)

    def test_staged_changes(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = make_fake_run(calls)
            GitClient(Path("/repo")).get_changeset(staged=True)
        self.assertIn(["diff", "--cached", "-M", "HEAD", "--numstat", "-z"], calls)

    def test_empty_tree_before_first_commit(self) -> None:
        calls = []
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = make_fake_run(calls, head=False)
            GitClient(Path("/repo")).get_changeset(staged=True)
        self.assertIn(["diff", "--cached", "-M", EMPTY_TREE], calls)

    def test_merge_conflicts(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = make_fake_run([], conflicts="src/app.py\nREADME.md\n")
            with self.assertRaises(RepositoryStateError) as ctx:
                GitClient(Path("/repo")).get_changeset()
        self.assertIs(ctx.exception.kind, RepositoryErrorKind.MERGE_CONFLICTS)
        self.assertEqual(ctx.exception.files, ["src/app.py", "README.md"])

    def test_no_changes(self) -> None:
        with patch.object(GitClient, "_run", autospec=True) as mock_run:
            mock_run.side_effect = make_fake_run([], name_status="", numstat="", diff="")
            with self.assertRaises(RepositoryStateError) as ctx:
                GitClient(Path("/repo")).get_changeset()
        self.assertIs(ctx.exception.kind, RepositoryErrorKind.NO_CHANGES)


class TestParsers(unittest.TestCase):
    def test_parse_name_status(self) -> None:
        output = "M\0a.py\0D\0b.py\0C75\0c.py\0d.py\0T\0e.sh\0U\0f.py\0"
        self.assertEqual(
            GitClient.parse_name_status(output),
            [("a.py", "modified"), ("b.py", "deleted"), ("d.py", "added"), ("e.sh", "modified")],
        )

    def test_parse_numstat(self) -> None:
        output = "3\t1\ta.py\0-\t-\timage.png\0" "4\t2\t\0old name.py\0new name.py\0"
        self.assertEqual(
            GitClient.parse_numstat(output),
            {"a.py": (3, 1), "image.png": (0, 0), "new name.py": (4, 2)},
        )

    def test_empty_output(self) -> None:
        self.assertEqual(GitClient.parse_name_status(""), [])
        self.assertEqual(GitClient.parse_numstat(""), {})


class TestRun(unittest.TestCase):
    def test_failure_raises_git_error(self) -> None:
        failed = subprocess.CompletedProcess(["git", "diff"], 128, stdout="", stderr="fatal: bad revision")
        with patch("subprocess.run", return_value=failed):
            with self.assertRaises(GitError) as ctx:
                GitClient(Path("/repo"))._run(["diff"])
        self.assertIn("bad revision", str(ctx.exception))

    def test_unchecked_failure_is_returned(self) -> None:
        failed = subprocess.CompletedProcess(["git", "rev-parse"], 1, stdout="", stderr="")
        with patch("subprocess.run", return_value=failed):
            result = GitClient(Path("/repo"))._run(["rev-parse"], check=False)
        self.assertEqual(result.returncode, 1)

    def test_missing_git_binary(self) -> None:
        with patch("subprocess.run", side_effect=FileNotFoundError("git")):
            with self.assertRaises(GitError):
                GitClient(Path("/repo"))._run(["status"])


class TestRepositoryDiscovery(unittest.TestCase):
    def test_find_repo_root_from_subdirectory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".git").mkdir()
            nested = root / "src" / "pkg"
            nested.mkdir(parents=True)
            self.assertEqual(GitClient.find_repo_root(nested), root)
            self.assertEqual(GitClient.from_path(nested).repo_root, root)

    def test_not_a_repository(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            with patch.object(GitClient, "find_repo_root", return_value=None):
                with self.assertRaises(RepositoryStateError) as ctx:
                    GitClient.from_path(Path(tmp))
        self.assertIs(ctx.exception.kind, RepositoryErrorKind.NOT_A_REPOSITORY)


if __name__ == "__main__":
    unittest.main()
