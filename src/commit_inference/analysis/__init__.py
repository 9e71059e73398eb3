"""
Deterministic change analysis.

Classifies a :class:`ChangeSet` into a commit type, scope, impact level
and description. See :mod:`commit_inference.analysis.change_classifier`
for the entry point and :mod:`commit_inference.analysis.patterns` for the
rule tables.
"""

from .diff_model import (  # noqa: F401
    COMMIT_TYPES,
    ChangeAnalysis,
    ChangedFile,
    ChangeSet,
    CommitMessage,
    GenerationOptions,
)
from .change_classifier import analyze_changes, assess_impact, detect_scope, infer_commit_type  # noqa: F401
