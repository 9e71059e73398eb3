"""
Heuristics for classifying a change set into a Conventional Commit.

The classifier infers the commit type, the scope, the impact level and a
short description from file paths, per-file line counts and the added
diff lines. It is intentionally simple and deterministic so that it can
be unit tested without a language model, and it is what the commit
message generator falls back to when no model is available.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from commit_inference.analysis.content_heuristics import analyze_content
from commit_inference.analysis.description import describe
from commit_inference.analysis.diff_model import (
    COMMIT_TYPES,
    IMPACT_MAJOR,
    IMPACT_MINOR,
    IMPACT_MODERATE,
    ChangeAnalysis,
    ChangeSet,
)
from commit_inference.analysis.patterns import (
    DEFAULT_FILE_TYPE,
    SCOPE_PATTERNS,
    argmax,
    categorize,
    normalize_path,
)
from commit_inference.analysis.rename_rules import RenameRule


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Categories whose content is prose or binary rather than code.
NON_CODE_CATEGORIES = ("docs", "assets")


def assess_impact(additions: int, deletions: int, file_count: int) -> str:
    """Return ``minor``, ``moderate`` or ``major`` for the size of a change."""
    total = additions + deletions
    if file_count > 10 or total > 200:
        return IMPACT_MAJOR
    if file_count > 3 or total > 50:
        return IMPACT_MODERATE
    return IMPACT_MINOR


def detect_scope(paths: Sequence[str]) -> Optional[str]:
    """Return the scope whose rules score highest across all paths.

    Every matching scope rule adds its priority for every path, so an
    area touched by many files beats a single high priority match.
    Root-level files do not take part. Returns ``None`` when no rule
    matches.
    """
    scores: Dict[str, float] = {}
    for path in paths:
        path = normalize_path(path)
        if "/" not in path:
            continue
        for rule in SCOPE_PATTERNS:
            if rule.matches(path):
                scores[rule.scope] = scores.get(rule.scope, 0) + rule.priority
    logger.debug("Scope scores: %s", scores)
    return argmax(scores, key=lambda scope: scores[scope])


def score_commit_types(
    paths: Sequence[str],
    changes: Sequence[Tuple[int, int]],
) -> Dict[str, float]:
    """Score every commit type for the given paths and line counts.

    Parameters
    ----------
    paths : sequence of str
        Changed file paths.
    changes : sequence of (additions, deletions)
        Line counts, aligned with ``paths``.
    """
    scores: Dict[str, float] = {commit_type: 0.0 for commit_type in COMMIT_TYPES}

    for path, (additions, deletions) in zip(paths, changes):
        match = categorize(path)
        if match is None:
            scores[DEFAULT_FILE_TYPE.commit_type] += DEFAULT_FILE_TYPE.weight
            continue
        score = float(match.weight)
        if additions > 0 and deletions == 0:
            if match.commit_type == "feat":
                score *= 1.5
        elif deletions > additions:
            if match.commit_type in ("refactor", "fix"):
                score *= 1.3
        scores[match.commit_type] += score

    if changes:
        total = sum(a + d for a, d in changes)
        only_deletions = all(a == 0 and d > 0 for a, d in changes)
        large_deletions = any(d > a * 2 for a, d in changes)
        heavy_rewrite = any(d > 50 and a > 10 for a, d in changes)
        if only_deletions:
            scores["chore"] += 10
        elif large_deletions and total > 50:
            scores["refactor"] += 15
        elif heavy_rewrite:
            scores["refactor"] += 12

    return scores


def infer_commit_type(
    paths: Sequence[str],
    changes: Sequence[Tuple[int, int]],
    allowed_types: Optional[Sequence[str]] = None,
) -> str:
    """Return the highest scoring commit type.

    Ties go to the type declared first in :data:`COMMIT_TYPES`, so
    ``feat`` wins an all-zero board. With ``allowed_types`` the choice is
    restricted to those types.
    """
    scores = score_commit_types(paths, changes)
    candidates = [t for t in COMMIT_TYPES if allowed_types is None or t in allowed_types]
    logger.debug("Commit type scores: %s", scores)
    best = argmax(candidates, key=lambda commit_type: scores[commit_type])
    return best if best is not None else "feat"


def categorize_files(paths: Sequence[str]) -> Dict[str, List[str]]:
    """Group paths by file category, in first-seen order."""
    categories: Dict[str, List[str]] = {}
    for path in paths:
        category = categorize(path, default=DEFAULT_FILE_TYPE).category
        categories.setdefault(category, []).append(path)
    return categories


def analyze_changes(
    changeset: ChangeSet,
    include_scope: bool = True,
    allowed_types: Optional[Sequence[str]] = None,
    rename_rules: Sequence[RenameRule] = (),
) -> ChangeAnalysis:
    """Classify a change set.

    Parameters
    ----------
    changeset : ChangeSet
        The changes to classify.
    include_scope : bool, optional
        Infer a scope from the paths. Defaults to True.
    allowed_types : sequence of str, optional
        Restrict the commit type to these values.
    rename_rules : sequence of RenameRule, optional
        Checked in order before anything else; the first match turns the
        change into a scope-less project-wide rename.

    Returns
    -------
    ChangeAnalysis
        Commit type, scope, impact level, description and categories.
    """
    files = changeset.files
    if not files:
        return ChangeAnalysis(commit_type="chore", description="no changes detected")

    paths = changeset.paths
    categories = categorize_files(paths)
    impact = assess_impact(changeset.total_additions, changeset.total_deletions, len(files))

    for rule in rename_rules:
        match = rule.detect(files)
        if match is None:
            continue
        commit_type = "docs" if list(categories) == ["docs"] else "chore"
        if allowed_types is not None and commit_type not in allowed_types:
            commit_type = infer_commit_type(paths, [(f.additions, f.deletions) for f in files], allowed_types)
        logger.debug("Rename rule %s matched: %s", type(rule).__name__, match)
        return ChangeAnalysis(
            commit_type=commit_type,
            description=match.description,
            impact_level=impact,
            scope=None,
            file_categories=list(categories),
        )

    commit_type = infer_commit_type(paths, [(f.additions, f.deletions) for f in files], allowed_types)
    scope = detect_scope(paths) if include_scope else None

    code_files = [
        f for f in files
        if categorize(f.path, default=DEFAULT_FILE_TYPE).category not in NON_CODE_CATEGORIES
    ]
    content = None
    if code_files:
        content = analyze_content(
            [line for f in code_files for line in f.added_lines],
            [line for f in code_files for line in f.removed_lines],
        )
    description = describe(files, commit_type, scope, content)

    return ChangeAnalysis(
        commit_type=commit_type,
        description=description,
        impact_level=impact,
        scope=scope,
        file_categories=list(categories),
    )
