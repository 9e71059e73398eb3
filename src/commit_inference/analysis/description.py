"""
Natural language descriptions for a set of changed files.

The description is the part of the subject after ``type(scope): ``. It
is built from two kinds of evidence:

* the files themselves (status, name, location), and
* signals from :mod:`commit_inference.analysis.content_heuristics`.

Content signals win when both are available. When several content
signals fire at once the dominant change kind decides which one is used.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from commit_inference.analysis.content_heuristics import ContentAnalysis, is_deletion_change
from commit_inference.analysis.diff_model import ChangedFile
from commit_inference.analysis.patterns import (
    DEFAULT_FILE_TYPE,
    SOURCE_DIRECTORIES,
    argmax,
    categorize,
    normalize_path,
)


SOURCE_EXTENSION_RE = re.compile(
    r"\.(ts|js|tsx|jsx|mjs|cjs|py|java|kt|cpp|cc|c|h|hpp|cs|php|rb|go|rs|swift|scala|vue|svelte)$",
    re.IGNORECASE,
)
_TEST_AFFIX_RE = re.compile(r"(\.(test|spec)$|^test_|_test$)", re.IGNORECASE)
_DEPENDENCY_RE = re.compile(
    r"dependenc|requirements|\.lock$"
    r"|(^|/)(package(-lock)?\.json|go\.(mod|sum)|Cargo\.toml|Pipfile|Gemfile|pyproject\.toml)$",
    re.IGNORECASE,
)

STATUS_VERBS = {
    "added": "add",
    "deleted": "remove",
    "renamed": "rename",
    "modified": "update",
}

# Fallback phrases for several files without a clear primary file.
GENERIC_DESCRIPTIONS = {
    "fix": "fix multiple issues",
    "docs": "update documentation",
    "style": "update styling",
    "refactor": "refactor codebase",
    "test": "improve test coverage",
    "chore": "update configuration",
}
DEFAULT_GENERIC_DESCRIPTION = "update multiple components"


def base_name(path: str) -> str:
    """Return the file name of ``path`` with a source code extension removed."""
    name = normalize_path(path).rsplit("/", 1)[-1]
    return SOURCE_EXTENSION_RE.sub("", name) or name


def file_verb(changed: ChangedFile) -> str:
    """Pick the action verb for a single file.

    Modified files that only lose lines are reported as removals.
    """
    if changed.status == "modified" and (changed.is_pure_deletion or is_deletion_change(changed.diff)):
        return "remove"
    return STATUS_VERBS[changed.status]


def _category(changed: ChangedFile) -> str:
    return categorize(changed.path, default=DEFAULT_FILE_TYPE).category


def _in_source_dir(path: str) -> bool:
    parts = normalize_path(path).split("/")
    return len(parts) > 1 and parts[0].lower() in SOURCE_DIRECTORIES


def primary_file(files: Sequence[ChangedFile]) -> Optional[ChangedFile]:
    """Return the file that best represents a multi-file change.

    Only non-test source files qualify. Newly added files rank first and
    files under a conventional source directory second; among equals the
    file added last wins. A modified file is only primary when it is the
    sole candidate.
    """
    candidates = [f for f in files if _category(f) == "source"]
    if not candidates:
        return None
    best = argmax(
        reversed(candidates),
        key=lambda f: (f.status == "added", _in_source_dir(f.path)),
    )
    if best is not None and (best.status == "added" or len(candidates) == 1):
        return best
    return None


def type_verb(commit_type: str, files: Sequence[ChangedFile]) -> str:
    """Action verb for a commit type, given the overall shape of the change."""
    only_additions = all(f.deletions == 0 for f in files) and any(f.additions for f in files)
    only_deletions = all(f.additions == 0 for f in files) and any(f.deletions for f in files)
    if commit_type == "feat":
        return "add" if only_additions else "implement"
    if commit_type in ("fix", "refactor", "style"):
        return commit_type
    if commit_type == "chore" and only_deletions:
        return "remove"
    return "add" if only_additions else "update"


def function_phrase(names: Sequence[str]) -> str:
    """Describe newly added functions, using the first name's intent."""
    name = names[0]
    if len(names) == 2:
        return f"add {names[0]} and {names[1]} functions"
    if len(names) > 2:
        return f"add {name} and {len(names) - 1} other functions"

    lowered = name.lower()
    if re.search(r"validat|verif|sanitiz|check", lowered):
        kind = "validator"
    elif re.match(r"(handle|on[A-Z_])", name) or lowered.endswith("handler"):
        kind = "handler"
    elif re.match(r"(get|fetch|load|find|read)([A-Z_]|$)", name):
        kind = "getter"
    elif re.match(r"(set|update)([A-Z_]|$)", name):
        kind = "setter"
    else:
        kind = "function"
    return f"add {name} {kind}"


def _test_subject(files: Sequence[ChangedFile]) -> str:
    tests = [f for f in files if _category(f) == "test"] or list(files)
    return _TEST_AFFIX_RE.sub("", base_name(tests[0].path)) or base_name(tests[0].path)


def _content_phrases(content: ContentAnalysis, files: Sequence[ChangedFile]) -> Dict[str, str]:
    target = primary_file(files) or files[0]
    target_name = base_name(target.path)
    phrases: Dict[str, str] = {}
    if content.has_test_changes:
        phrases["test"] = f"add tests for {_test_subject(files)}"
    if content.has_new_functions:
        phrases["function"] = function_phrase(content.new_function_names)
    if content.new_class_names:
        phrases["class"] = f"add {content.new_class_names[0]} class"
    if content.has_null_checks:
        phrases["null_check"] = f"add null checks to {target_name}"
    if content.has_validation:
        phrases["validation"] = f"add validation to {target_name}"
    if content.has_config_changes and any(
        _DEPENDENCY_RE.search(f.path) or _DEPENDENCY_RE.search(f.diff) for f in files
    ) and all(_category(f) == "config" for f in files):
        phrases["config"] = "update dependencies"
    return phrases


def describe_from_content(content: ContentAnalysis, files: Sequence[ChangedFile]) -> Optional[str]:
    """Return a content-based description, or ``None`` without signals."""
    if not files:
        return None
    phrases = _content_phrases(content, files)
    if not phrases:
        return None
    if content.dominant_change_kind in phrases:
        return phrases[content.dominant_change_kind]
    return next(iter(phrases.values()))


def describe(
    files: Sequence[ChangedFile],
    commit_type: str,
    scope: Optional[str] = None,
    content: Optional[ContentAnalysis] = None,
) -> str:
    """Describe a change in a short imperative phrase.

    Parameters
    ----------
    files : sequence of ChangedFile
        The changed files, in change set order.
    commit_type : str
        The inferred commit type, used for generic phrasing.
    scope : str, optional
        The inferred scope, used when no primary file stands out.
    content : ContentAnalysis, optional
        Signals from the added lines. Take precedence over file names.
    """
    if not files:
        return "no changes detected"

    if len(files) == 1:
        changed = files[0]
        verb = file_verb(changed)
        if verb in ("add", "update") and content is not None:
            refined = describe_from_content(content, files)
            if refined:
                return refined
        return f"{verb} {base_name(changed.path)}"

    if all(file_verb(f) == "remove" for f in files):
        return "remove unused files"
    if content is not None:
        refined = describe_from_content(content, files)
        if refined:
            return refined

    primary = primary_file(files)
    if primary is not None:
        return f"{file_verb(primary)} {base_name(primary.path)} and related changes"
    if scope:
        return f"{type_verb(commit_type, files)} {scope} implementation"
    return GENERIC_DESCRIPTIONS.get(commit_type, DEFAULT_GENERIC_DESCRIPTION)
