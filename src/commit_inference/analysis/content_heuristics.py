"""
Heuristics over the textual content of a diff.

Path rules only say *where* a change happened. The functions in this
module look at the lines a change introduces to guess *what* happened:
new functions or classes, imports, configuration blocks, tests, null
guards and validation code. They are plain regular expressions over
individual lines and make no attempt at parsing any language.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from commit_inference.analysis.patterns import argmax


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Order matters: it breaks ties when picking the dominant kind.
CHANGE_KINDS = ("function", "class", "interface", "import", "config", "test", "comment")

_IDENT = r"[A-Za-z_$][\w$]*"

FUNCTION_PATTERNS = [
    re.compile(rf"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*({_IDENT})\s*\("),
    re.compile(
        rf"^\s*(?:export\s+)?(?:const|let|var)\s+({_IDENT})\s*(?::[^=]+)?=\s*(?:async\s+)?"
        rf"(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|{_IDENT}\s*=>)"
    ),
    re.compile(r"^\s*(?:async\s+)?def\s+([A-Za-z_]\w*)\s*\("),
    re.compile(r"^\s*func\s+(?:\([^)]*\)\s*)?([A-Za-z_]\w*)\s*\("),
]

CLASS_PATTERNS = [
    re.compile(rf"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+({_IDENT})"),
]

INTERFACE_PATTERNS = [
    re.compile(rf"^\s*(?:export\s+)?interface\s+{_IDENT}"),
    re.compile(rf"^\s*(?:export\s+)?type\s+{_IDENT}\s*(?:<[^>]*>)?\s*="),
]

IMPORT_PATTERNS = [
    re.compile(r"""^\s*import\s+[\w{*'"]"""),
    re.compile(r"^\s*from\s+[\w.]+\s+import\s"),
    re.compile(r"""\brequire\s*\(\s*['"]"""),
]

CONFIG_PATTERNS = [
    re.compile(r"""^\s*["'][^"']+["']\s*:\s*\S"""),
    re.compile(r"^\s*\[[\w.\- \"]+\]\s*$"),
    re.compile(r"""^[\w.-]+\s*=\s*["'\d\[{tf]"""),
    re.compile(r"^\s*[\w.-]+:\s+[^\s{(]"),
]

TEST_PATTERNS = [
    re.compile(r"(?<![.\w$])(?:describe|it|test)\s*\("),
    re.compile(r"(?<![.\w$])expect\s*\("),
    re.compile(r"^\s*(?:async\s+)?def\s+test_\w*"),
    re.compile(r"\bself\.assert\w+\s*\("),
]

COMMENT_PATTERNS = [
    re.compile(r"^\s*(?://|/\*|\*\s|\*$|#\s|<!--)"),
]

NULL_CHECK_PATTERNS = [
    re.compile(r"[!=]==?\s*(?:null|undefined|None|nil)\b"),
    re.compile(r"\b(?:null|undefined)\s*[!=]==?"),
    re.compile(r"\bis\s+(?:not\s+)?None\b"),
    re.compile(r"typeof\s+[\w$.]+\s*[!=]==?\s*['\"]undefined['\"]"),
    re.compile(r"\?\.|\?\?"),
    re.compile(r"^\s*if\s*\(\s*!?\s*[\w$.]+\s*\)"),
    re.compile(r"^\s*if\s+(?:not\s+)?[\w.]+\s*:\s*$"),
]

VALIDATION_KEYWORDS = (
    "validat",
    "sanitiz",
    "sanitis",
    "verif",
    "isvalid",
    "is_valid",
    "invalid",
    "required",
    "schema",
    "constraint",
)

_KIND_PATTERNS = {
    "function": FUNCTION_PATTERNS,
    "class": CLASS_PATTERNS,
    "interface": INTERFACE_PATTERNS,
    "import": IMPORT_PATTERNS,
    "config": CONFIG_PATTERNS,
    "test": TEST_PATTERNS,
    "comment": COMMENT_PATTERNS,
}

# Removed lines above this count, with nothing added, mark a deletion.
DELETION_LINE_THRESHOLD = 5


@dataclass
class ContentAnalysis:
    """Signals found in the added lines of a change."""

    has_new_functions: bool = False
    new_function_names: List[str] = field(default_factory=list)
    new_class_names: List[str] = field(default_factory=list)
    has_imports: bool = False
    has_config_changes: bool = False
    has_test_changes: bool = False
    has_class_changes: bool = False
    has_null_checks: bool = False
    has_validation: bool = False
    dominant_change_kind: Optional[str] = None
    kind_counts: Dict[str, int] = field(default_factory=dict)


def _any_match(patterns, line: str) -> bool:
    return any(p.search(line) for p in patterns)


def _declared_name(patterns, line: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(line)
        if match:
            return match.group(1)
    return None


def analyze_content(
    added_lines: Iterable[str],
    removed_lines: Optional[Iterable[str]] = None,
) -> ContentAnalysis:
    """Scan added lines for declaration, import, config and test patterns.

    Parameters
    ----------
    added_lines : iterable of str
        Lines introduced by the change, without the leading ``+``.
    removed_lines : iterable of str, optional
        Lines removed by the change. Functions declared here as well as in
        ``added_lines`` were only edited and are not reported as new.

    Returns
    -------
    ContentAnalysis
        The detected signals. ``dominant_change_kind`` is the kind with
        the most matching lines, or ``None`` when nothing matched.
    """
    result = ContentAnalysis()
    counts = {kind: 0 for kind in CHANGE_KINDS}
    existing = {
        name
        for name in (_declared_name(FUNCTION_PATTERNS, line) for line in removed_lines or ())
        if name
    }

    for line in added_lines:
        if not line.strip():
            continue
        for kind in CHANGE_KINDS:
            if _any_match(_KIND_PATTERNS[kind], line):
                counts[kind] += 1

        name = _declared_name(FUNCTION_PATTERNS, line)
        if name and name not in existing and name not in result.new_function_names:
            result.new_function_names.append(name)
        class_name = _declared_name(CLASS_PATTERNS, line)
        if class_name and class_name not in result.new_class_names:
            result.new_class_names.append(class_name)

        if _any_match(NULL_CHECK_PATTERNS, line):
            result.has_null_checks = True
        lowered = line.lower()
        if any(keyword in lowered for keyword in VALIDATION_KEYWORDS):
            result.has_validation = True

    result.has_new_functions = bool(result.new_function_names)
    result.has_class_changes = counts["class"] > 0
    result.has_imports = counts["import"] > 0
    result.has_config_changes = counts["config"] > 0
    result.has_test_changes = counts["test"] > 0
    result.kind_counts = counts

    dominant = argmax(CHANGE_KINDS, key=lambda kind: counts[kind])
    result.dominant_change_kind = dominant if dominant and counts[dominant] > 0 else None
    logger.debug("Content signals: %s", result)
    return result


def _is_body_line(line: str, marker: str) -> bool:
    return line.startswith(marker) and not line.startswith(marker * 3) and bool(line[1:].strip())


def is_deletion_change(diff: str) -> bool:
    """Return True when a single file's diff only removes content.

    The diff counts as a deletion when more than
    :data:`DELETION_LINE_THRESHOLD` non-empty lines were removed and not a
    single non-empty line was added. Small removals and partial rewrites
    are deliberately not reported.
    """
    lines = diff.splitlines()
    removed = sum(1 for line in lines if _is_body_line(line, "-"))
    added = sum(1 for line in lines if _is_body_line(line, "+"))
    return removed > DELETION_LINE_THRESHOLD and added == 0
