"""
Version control integration.

Builds a ChangeSet from a Git repository, or from unified diff text.
"""

from .git_client import GitClient, GitError, RepositoryStateError  # noqa: F401
from .diff_parser import parse_unified_diff  # noqa: F401
