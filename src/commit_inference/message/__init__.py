"""
Subject formatting and validation for commit messages.
"""

from .formatter import (  # noqa: F401
    CommitValidationError,
    ValidationErrorKind,
    format_subject,
    truncate_subject,
    validate_message,
)
