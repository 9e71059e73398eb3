"""
Git client implementation for commit_inference.

This module collects the changes of a Git working tree (or its index)
into a :class:`~commit_inference.analysis.diff_model.ChangeSet`. It runs
three flavours of ``git diff`` against ``HEAD``: ``--name-status`` for
the file status, ``--numstat`` for the line counts and the plain diff for
the per-file text. All subprocess calls go through :meth:`GitClient._run`
so that unit tests can mock them easily.

Repository states the analysis cannot work with (not a repository, no
changes, unresolved merge conflicts) raise :class:`RepositoryStateError`.
"""

from __future__ import annotations

import logging
import subprocess
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from commit_inference.analysis.diff_model import ChangedFile, ChangeSet
from commit_inference.vcs.diff_parser import diffs_by_path


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# The well-known hash of git's empty tree, used as base before the first commit.
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

STATUS_CODES = {
    "A": "added",
    "C": "added",
    "D": "deleted",
    "M": "modified",
    "R": "renamed",
    "T": "modified",
}


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class RepositoryErrorKind(Enum):
    NOT_A_REPOSITORY = "NOT_A_REPOSITORY"
    NO_CHANGES = "NO_CHANGES"
    MERGE_CONFLICTS = "MERGE_CONFLICTS"


class RepositoryStateError(GitError):
    """Raised when the repository is in a state no ChangeSet can be built from.

    Parameters
    ----------
    kind : RepositoryErrorKind
        The offending state.
    message : str
        Human readable explanation.
    files : sequence of str, optional
        Files involved, e.g. the conflicted paths.
    """

    def __init__(self, kind: RepositoryErrorKind, message: str, files: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.kind = kind
        self.files = list(files)


class GitClient:
    """Client for reading changes from a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    @classmethod
    def from_path(cls, start: Path) -> "GitClient":
        """Create a client for the repository containing ``start``.

        Raises
        ------
        RepositoryStateError
            With kind ``NOT_A_REPOSITORY`` when ``start`` is not inside one.
        """
        root = cls.find_repo_root(start)
        if root is None:
            raise RepositoryStateError(
                RepositoryErrorKind.NOT_A_REPOSITORY,
                f"Not a git repository: {start}",
            )
        return cls(root)

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If git cannot be started, or the command exits with a
            non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Failed to run git: %s", exc)
            raise GitError(f"Failed to run git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------
    def base_revision(self) -> str:
        """Return ``HEAD``, or the empty tree when there is no commit yet."""
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        if result.returncode != 0:
            logger.debug("HEAD does not exist; diffing against the empty tree")
            return EMPTY_TREE
        return "HEAD"

    def conflicted_files(self) -> List[str]:
        result = self._run(["diff", "--name-only", "--diff-filter=U"], check=True)
        return [line for line in result.stdout.splitlines() if line.strip()]

    def _diff_args(self, staged: bool) -> List[str]:
        args = ["diff"]
        if staged:
            args.append("--cached")
        args += ["-M", self.base_revision()]
        return args

    @staticmethod
    def parse_name_status(output: str) -> List[Tuple[str, str]]:
        """Parse ``git diff --name-status -z`` output into ``(path, status)``."""
        tokens = output.split("\0")
        entries: List[Tuple[str, str]] = []
        index = 0
        while index < len(tokens):
            code = tokens[index].strip()
            index += 1
            if not code:
                continue
            letter = code[0]
            if letter in ("R", "C"):
                path = tokens[index + 1]
                index += 2
            else:
                path = tokens[index]
                index += 1
            status = STATUS_CODES.get(letter)
            if status is None:
                logger.debug("Skipping entry with status '%s': %s", code, path)
                continue
            entries.append((path, status))
        return entries

    @staticmethod
    def parse_numstat(output: str) -> Dict[str, Tuple[int, int]]:
        """Parse ``git diff --numstat -z`` output into ``{path: (added, deleted)}``.

        Binary files report ``-`` for both counts and are counted as 0.
        """
        tokens = output.split("\0")
        counts: Dict[str, Tuple[int, int]] = {}
        index = 0
        while index < len(tokens):
            token = tokens[index]
            index += 1
            if not token.strip():
                continue
            added, deleted, path = (token.split("\t", 2) + ["", ""])[:3]
            if not path:
                # renames: the old and new path follow as separate tokens
                path = tokens[index + 1]
                index += 2
            counts[path] = (
                int(added) if added.isdigit() else 0,
                int(deleted) if deleted.isdigit() else 0,
            )
        return counts

    def get_changeset(self, staged: bool = False) -> ChangeSet:
        """Collect the current changes into a :class:`ChangeSet`.

        Parameters
        ----------
        staged : bool, optional
            Only consider changes in the index. By default the working
            tree is compared with ``HEAD``.

        Raises
        ------
        RepositoryStateError
            With kind ``MERGE_CONFLICTS`` when unmerged paths exist, or
            ``NO_CHANGES`` when there is nothing to describe.
        GitError
            If a git command fails.
        """
        conflicts = self.conflicted_files()
        if conflicts:
            raise RepositoryStateError(
                RepositoryErrorKind.MERGE_CONFLICTS,
                f"Resolve merge conflicts first: {', '.join(conflicts)}",
                conflicts,
            )

        args = self._diff_args(staged)
        statuses = self.parse_name_status(self._run(args + ["--name-status", "-z"]).stdout)
        counts = self.parse_numstat(self._run(args + ["--numstat", "-z"]).stdout)
        diffs = diffs_by_path(self._run(args).stdout)

        files = []
        for path, status in statuses:
            additions, deletions = counts.get(path, (0, 0))
            files.append(
                ChangedFile(
                    path=path,
                    status=status,
                    additions=additions,
                    deletions=deletions,
                    diff=diffs.get(path, ""),
                )
            )

        if not files:
            where = "staged" if staged else "uncommitted"
            raise RepositoryStateError(
                RepositoryErrorKind.NO_CHANGES,
                f"No {where} changes found in {self.repo_root}",
            )
        changeset = ChangeSet.from_files(files)
        changeset.summary = (
            f"{len(files)} file(s) changed, +{changeset.total_additions} "
            f"-{changeset.total_deletions}"
        )
        logger.debug("Collected changeset: %s", changeset.summary)
        return changeset
