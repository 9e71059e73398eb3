"""
Configuration loading for commit_inference.

Reads the JSON preferences file from the repository root or the user's
home directory. See :mod:`commit_inference.config.loader` for details.
"""

from .loader import ConfigError, UserPreferences, load_config  # noqa: F401
