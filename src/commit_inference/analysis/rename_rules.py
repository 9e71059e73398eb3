"""
Rules that recognise project-wide renames.

A rename shows up in a diff as the same literal being replaced by another
literal on otherwise unchanged lines, usually across several files (a
product name in the README, the package manifest and a log message).
When a rule fires the change is reported as ``rename <old> to <new>``
without a scope.

Two rules are provided and both can be swapped out by passing a
different list to :func:`commit_inference.analysis.change_classifier.analyze_changes`:

* :class:`LiteralRenameRule` looks for one configured ``old``/``new`` pair.
* :class:`SymmetricSubstitutionRule` infers the pair from the diff itself.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from commit_inference.analysis.diff_model import ChangedFile
from commit_inference.analysis.patterns import argmax


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


_TOKEN_RE = re.compile(r"\w+|[^\w\s]")


@dataclass(frozen=True)
class RenameMatch:
    old: str
    new: str
    files: List[str] = field(default_factory=list)

    @property
    def description(self) -> str:
        return f"rename {self.old} to {self.new}"


class RenameRule:
    """Base class for rename detectors."""

    def detect(self, files: Sequence[ChangedFile]) -> Optional[RenameMatch]:
        raise NotImplementedError


class LiteralRenameRule(RenameRule):
    """Detect the replacement of one known literal by another.

    A file participates when one of its removed lines contains ``old``
    and one of its added lines contains ``new``.
    """

    def __init__(self, old: str, new: str) -> None:
        if not old or not new:
            raise ValueError("Both rename literals must be non-empty")
        self.old = old
        self.new = new

    def detect(self, files: Sequence[ChangedFile]) -> Optional[RenameMatch]:
        hits = [
            f.path
            for f in files
            if any(self.old in line for line in f.removed_lines)
            and any(self.new in line for line in f.added_lines)
        ]
        if not hits:
            return None
        return RenameMatch(self.old, self.new, hits)


def change_blocks(diff: str) -> Iterator[Tuple[List[str], List[str]]]:
    """Yield ``(removed, added)`` line runs of a unified diff.

    A block is a run of ``-`` lines directly followed by a run of ``+``
    lines, which is how replaced lines are laid out.
    """
    removed: List[str] = []
    added: List[str] = []
    for line in diff.splitlines():
        if line.startswith(("---", "+++")):
            continue
        if line.startswith("-"):
            if added:
                yield removed, added
                removed, added = [], []
            removed.append(line[1:])
        elif line.startswith("+"):
            added.append(line[1:])
        else:
            if removed or added:
                yield removed, added
            removed, added = [], []
    if removed or added:
        yield removed, added


def _is_word(tokens: Sequence[str]) -> bool:
    text = "".join(tokens)
    return bool(re.search(r"[A-Za-z]", text))


def word_substitution(old_line: str, new_line: str, max_words: int = 4) -> Optional[Tuple[str, str]]:
    """Return the single ``(old, new)`` phrase swapped between two lines.

    Returns ``None`` unless the lines differ by exactly one replaced run
    of at most ``max_words`` tokens on each side, surrounded by at least
    one unchanged token, and both sides contain a letter.
    """
    a_spans = [m.span() for m in _TOKEN_RE.finditer(old_line)]
    b_spans = [m.span() for m in _TOKEN_RE.finditer(new_line)]
    a = [old_line[start:end] for start, end in a_spans]
    b = [new_line[start:end] for start, end in b_spans]
    opcodes = [op for op in SequenceMatcher(None, a, b, autojunk=False).get_opcodes() if op[0] != "equal"]
    if len(opcodes) != 1:
        return None
    tag, i1, i2, j1, j2 = opcodes[0]
    if tag != "replace":
        return None
    if len(a) - (i2 - i1) == 0:
        return None
    if i2 - i1 > max_words or j2 - j1 > max_words:
        return None
    old, new = a[i1:i2], b[j1:j2]
    if not (_is_word(old) and _is_word(new)):
        return None
    # slice the source lines so the phrases keep their own spacing
    return (
        old_line[a_spans[i1][0]:a_spans[i2 - 1][1]],
        new_line[b_spans[j1][0]:b_spans[j2 - 1][1]],
    )


def file_substitution(diff: str, max_words: int = 4) -> Optional[Tuple[str, str]]:
    """Return the phrase swap that accounts for every change in ``diff``.

    Each change block must replace as many lines as it removes, and every
    replaced line pair must reduce to the same ``(old, new)`` phrase. Any
    other edit (an added function, a removed line, a second swap) means
    the file is not part of a rename and ``None`` is returned.
    """
    found: Optional[Tuple[str, str]] = None
    for removed, added in change_blocks(diff):
        if len(removed) != len(added):
            return None
        for old_line, new_line in zip(removed, added):
            pair = word_substitution(old_line, new_line, max_words)
            if pair is None or (found is not None and pair != found):
                return None
            found = pair
    return found


class SymmetricSubstitutionRule(RenameRule):
    """Infer a rename from the same substitution repeated across files.

    A file takes part only when one phrase swap explains all of its
    changes (see :func:`file_substitution`). The swap shared by the most
    files wins if it appears in at least ``min_files`` files.
    """

    def __init__(self, min_files: int = 2, max_words: int = 4) -> None:
        self.min_files = min_files
        self.max_words = max_words

    def detect(self, files: Sequence[ChangedFile]) -> Optional[RenameMatch]:
        seen: Dict[Tuple[str, str], List[str]] = {}
        for changed in files:
            pair = file_substitution(changed.diff, self.max_words)
            if pair is not None:
                seen.setdefault(pair, []).append(changed.path)

        best = argmax(seen.items(), key=lambda item: len(item[1]))
        if best is None or len(best[1]) < self.min_files:
            return None
        (old, new), paths = best
        logger.debug("Detected rename '%s' -> '%s' in %s", old, new, paths)
        return RenameMatch(old, new, paths)


def build_rename_rules(
    detect_renames: bool = True,
    rename_literals: Optional[Sequence[str]] = None,
) -> List[RenameRule]:
    """Build the rule list for the given preference values."""
    rules: List[RenameRule] = []
    if rename_literals:
        old, new = rename_literals
        rules.append(LiteralRenameRule(old, new))
    if detect_renames:
        rules.append(SymmetricSubstitutionRule())
    return rules
