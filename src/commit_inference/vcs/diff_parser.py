"""
Parser for unified diffs as printed by ``git diff``.

Turns raw diff text into :class:`~commit_inference.analysis.diff_model.ChangedFile`
records. The file status is taken from the extended git headers
(``new file mode``, ``deleted file mode``, ``rename from``/``rename to``),
the line counts from the hunk bodies. Plain unified diffs without a
``diff --git`` line are accepted as well.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from commit_inference.analysis.diff_model import ChangedFile, ChangeSet


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_GIT_HEADER_RE = re.compile(r'^diff --git "?a/(.+?)"? "?b/(.+?)"?$')
_HUNK_RE = re.compile(r"^@@ -\d+(?:,(\d+))? \+\d+(?:,(\d+))? @@")
DEV_NULL = "/dev/null"


def _strip_prefix(path: str) -> str:
    path = path.strip().strip('"')
    # a tab separates an optional timestamp in plain unified diffs
    path = path.split("\t", 1)[0]
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


class _FileBuilder:
    def __init__(self, old_path: Optional[str] = None, new_path: Optional[str] = None) -> None:
        self.old_path = old_path
        self.new_path = new_path
        self.status = "modified"
        self.additions = 0
        self.deletions = 0
        self.lines: List[str] = []
        self.has_hunk = False

    @property
    def path(self) -> Optional[str]:
        if self.status == "deleted":
            return self.old_path or self.new_path
        return self.new_path or self.old_path

    def build(self) -> ChangedFile:
        return ChangedFile(
            path=self.path or "",
            status=self.status,
            additions=self.additions,
            deletions=self.deletions,
            diff="\n".join(self.lines),
        )


def parse_unified_diff(text: str) -> List[ChangedFile]:
    """Parse unified diff text into changed files, in diff order.

    Parameters
    ----------
    text : str
        Output of ``git diff`` (or any unified diff).

    Returns
    -------
    List[ChangedFile]
        One entry per file section. Sections without a path are dropped.
    """
    files: List[_FileBuilder] = []
    current: Optional[_FileBuilder] = None
    old_left = new_left = 0

    lines = text.splitlines()
    for index, line in enumerate(lines):
        in_hunk = old_left > 0 or new_left > 0
        if in_hunk and line[:1] in ("+", "-", " ", ""):
            current.lines.append(line)
            if line.startswith("+"):
                current.additions += 1
                new_left -= 1
            elif line.startswith("-"):
                current.deletions += 1
                old_left -= 1
            else:
                old_left -= 1
                new_left -= 1
            continue
        if in_hunk and line.startswith("\\"):
            current.lines.append(line)
            continue
        old_left = new_left = 0

        header = _GIT_HEADER_RE.match(line)
        starts_plain = (
            line.startswith("--- ")
            and index + 1 < len(lines)
            and lines[index + 1].startswith("+++ ")
            and (current is None or current.has_hunk)
        )
        if header:
            current = _FileBuilder(header.group(1), header.group(2))
            files.append(current)
            current.lines.append(line)
            continue
        if starts_plain:
            current = _FileBuilder()
            files.append(current)

        if current is None:
            continue
        current.lines.append(line)

        if line.startswith("new file mode"):
            current.status = "added"
        elif line.startswith("deleted file mode"):
            current.status = "deleted"
        elif line.startswith("rename from "):
            current.status = "renamed"
            current.old_path = line[len("rename from "):].strip('"')
        elif line.startswith("rename to "):
            current.status = "renamed"
            current.new_path = line[len("rename to "):].strip('"')
        elif line.startswith("--- "):
            path = line[4:].strip()
            if path == DEV_NULL:
                current.status = "added"
            else:
                current.old_path = _strip_prefix(path)
        elif line.startswith("+++ "):
            path = line[4:].strip()
            if path == DEV_NULL:
                current.status = "deleted"
            else:
                current.new_path = _strip_prefix(path)
        else:
            hunk = _HUNK_RE.match(line)
            if hunk:
                current.has_hunk = True
                old_left = int(hunk.group(1)) if hunk.group(1) is not None else 1
                new_left = int(hunk.group(2)) if hunk.group(2) is not None else 1

    result = [f.build() for f in files if f.path]
    logger.debug("Parsed %d file(s) from diff", len(result))
    return result


def parse_diff_to_changeset(text: str) -> ChangeSet:
    """Parse diff text straight into a :class:`ChangeSet`."""
    files = parse_unified_diff(text)
    return ChangeSet.from_files(files, summary=f"{len(files)} file(s) from diff")


def diffs_by_path(text: str) -> Dict[str, str]:
    """Map each file path in ``text`` to its section of the diff."""
    return {f.path: f.diff for f in parse_unified_diff(text)}
