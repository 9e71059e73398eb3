"""
Data models shared by the change analysis pipeline.

A :class:`ChangeSet` is the snapshot of a working tree (or index) diff
handed to the analysis code by the version control collaborator. The
remaining classes are the derived values produced while turning that
snapshot into a commit message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence


COMMIT_TYPES = ("feat", "fix", "docs", "style", "refactor", "test", "chore")

FILE_STATUSES = ("added", "modified", "deleted", "renamed")

IMPACT_MINOR = "minor"
IMPACT_MODERATE = "moderate"
IMPACT_MAJOR = "major"


def diff_lines(diff: str, marker: str) -> List[str]:
    """Return the body lines of ``diff`` starting with ``marker`` (``+`` or ``-``).

    File headers (``+++``/``---``) are skipped and the marker is removed.
    """
    header = marker * 3
    return [
        line[1:]
        for line in diff.splitlines()
        if line.startswith(marker) and not line.startswith(header)
    ]


@dataclass(frozen=True)
class ChangedFile:
    """A single changed file in a :class:`ChangeSet`.

    Attributes
    ----------
    path : str
        Path relative to the repository root, using ``/`` separators.
    status : str
        One of ``added``, ``modified``, ``deleted`` or ``renamed``.
    additions : int
        Number of added lines.
    deletions : int
        Number of removed lines.
    diff : str
        Unified diff text for this file. May be empty.
    """

    path: str
    status: str = "modified"
    additions: int = 0
    deletions: int = 0
    diff: str = ""

    def __post_init__(self) -> None:
        if self.status not in FILE_STATUSES:
            raise ValueError(f"Unknown file status '{self.status}' for {self.path}")
        if self.additions < 0 or self.deletions < 0:
            raise ValueError(f"Negative line counts for {self.path}")

    @property
    def added_lines(self) -> List[str]:
        """Lines introduced by the change, without the ``+`` marker."""
        return diff_lines(self.diff, "+")

    @property
    def removed_lines(self) -> List[str]:
        """Lines removed by the change, without the ``-`` marker."""
        return diff_lines(self.diff, "-")

    @property
    def is_pure_deletion(self) -> bool:
        return self.additions == 0 and self.deletions > 0


@dataclass
class ChangeSet:
    """The set of file changes being summarised.

    ``total_additions`` and ``total_deletions`` are expected to equal the
    sums over ``files``; use :meth:`from_files` to build a consistent
    instance.
    """

    files: List[ChangedFile] = field(default_factory=list)
    total_additions: int = 0
    total_deletions: int = 0
    summary: str = ""

    @classmethod
    def from_files(cls, files: Sequence[ChangedFile], summary: str = "") -> "ChangeSet":
        files = list(files)
        return cls(
            files=files,
            total_additions=sum(f.additions for f in files),
            total_deletions=sum(f.deletions for f in files),
            summary=summary,
        )

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]


@dataclass
class ChangeAnalysis:
    """Result of classifying a :class:`ChangeSet`."""

    commit_type: str
    description: str
    impact_level: str = IMPACT_MINOR
    scope: Optional[str] = None
    file_categories: List[str] = field(default_factory=list)


@dataclass
class CommitMessage:
    """A generated commit message.

    ``warnings`` holds non-fatal notices for the host, such as a subject
    truncation or a fallback from the AI service.
    """

    subject: str
    type: str
    scope: Optional[str] = None
    body: Optional[str] = None
    is_conventional: bool = False
    warnings: List[str] = field(default_factory=list)

    def full_text(self) -> str:
        if self.body:
            return f"{self.subject}\n\n{self.body}"
        return self.subject


@dataclass
class GenerationOptions:
    """Per-request overrides of the user preferences."""

    include_scope: Optional[bool] = None
    commit_type: Optional[str] = None
    template: Optional[str] = None
    max_length: Optional[int] = None
