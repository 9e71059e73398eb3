"""
Formatting and validation of commit subjects.

The formatter turns a commit type, an optional scope and a description
into a subject line, either in Conventional Commit form, from a user
template, or as the bare description. The validator then enforces the
rules every generated message must satisfy, repairing what it can:

1. an empty subject is rejected;
2. an unknown type is mapped onto an allowed one where a known alias
   exists (``feature`` becomes ``feat``) and rejected otherwise;
3. a subject without a ``type(scope): `` prefix gets one prepended when
   that is unambiguous, and is rejected otherwise;
4. an overlong subject is truncated and a warning is recorded.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from commit_inference.analysis.diff_model import (
    IMPACT_MINOR,
    ChangeAnalysis,
    ChangeSet,
    CommitMessage,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONVENTIONAL_RE = re.compile(r"^(\w+)(\([^)]+\))?!?: .+$")

STYLE_CONVENTIONAL = "conventional"
STYLE_CUSTOM = "custom"
COMMIT_STYLES = (STYLE_CONVENTIONAL, STYLE_CUSTOM)

TYPE_ALIASES = {
    "feature": "feat",
    "features": "feat",
    "bugfix": "fix",
    "bug": "fix",
    "hotfix": "fix",
    "documentation": "docs",
    "doc": "docs",
    "styling": "style",
    "refactoring": "refactor",
    "testing": "test",
    "tests": "test",
    "maintenance": "chore",
    "build": "chore",
    "ci": "chore",
    "perf": "refactor",
}

# Share of the limit a word-boundary cut must keep; shorter cuts are hard.
WORD_BOUNDARY_RATIO = 0.7
ELLIPSIS = "..."

# Body lists individual files up to this many changed files.
BODY_FILE_LIST_LIMIT = 3


class ValidationErrorKind(Enum):
    EMPTY_MESSAGE = "EMPTY_MESSAGE"
    INVALID_COMMIT_FORMAT = "INVALID_COMMIT_FORMAT"
    MESSAGE_TOO_LONG = "MESSAGE_TOO_LONG"


class CommitValidationError(Exception):
    """Raised when a commit message violates a rule it cannot be repaired for.

    Parameters
    ----------
    kind : ValidationErrorKind
        Which rule was violated.
    subject : str, optional
        The offending subject line.
    invalid_type : str, optional
        The commit type that could not be mapped onto an allowed one.
    allowed_types : sequence of str, optional
        The allowed commit types at the time of validation.
    limit : int, optional
        The configured maximum subject length.
    length : int, optional
        The subject length before truncation.
    """

    def __init__(
        self,
        kind: ValidationErrorKind,
        subject: Optional[str] = None,
        invalid_type: Optional[str] = None,
        allowed_types: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
        length: Optional[int] = None,
    ) -> None:
        self.kind = kind
        self.subject = subject
        self.invalid_type = invalid_type
        self.allowed_types = list(allowed_types) if allowed_types is not None else None
        self.limit = limit
        self.length = length
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        if self.kind is ValidationErrorKind.EMPTY_MESSAGE:
            return "Commit subject line cannot be empty"
        if self.kind is ValidationErrorKind.MESSAGE_TOO_LONG:
            return f"Commit subject was truncated from {self.length} to {self.limit} characters"
        if self.invalid_type is not None:
            allowed = ", ".join(self.allowed_types or ())
            return f'Invalid commit type "{self.invalid_type}". Valid types: {allowed}'
        return "Commit message does not follow conventional format: type(scope): description"


def fix_commit_type(commit_type: str, allowed_types: Iterable[str]) -> Optional[str]:
    """Map ``commit_type`` onto an allowed type.

    Matching is case-insensitive. Known aliases are translated, but only
    to a target that is itself allowed. Returns ``None`` when no allowed
    type fits.
    """
    allowed = {t.lower(): t for t in allowed_types}
    lowered = commit_type.strip().lower()
    if lowered in allowed:
        return allowed[lowered]
    target = TYPE_ALIASES.get(lowered)
    if target is not None and target in allowed:
        return allowed[target]
    return None


def _capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def apply_template(
    template: str,
    commit_type: str,
    scope: Optional[str],
    description: str,
    body: Optional[str] = None,
) -> str:
    """Substitute the placeholders of a user template.

    ``{type}``, ``{scope}``, ``{description}`` and ``{body}`` are replaced
    everywhere they occur; their capitalised forms (``{Type}`` ...)
    receive the value with an upper-case first letter. An empty ``()``
    left behind by a missing scope is removed.
    """
    values = {
        "type": commit_type,
        "scope": scope or "",
        "description": description,
        "body": body or "",
    }
    result = template
    for name, value in values.items():
        result = result.replace("{" + name + "}", value)
        result = result.replace("{" + _capitalize(name) + "}", _capitalize(value))
    result = result.replace("()", "")
    return "\n".join(line.rstrip() for line in result.strip().splitlines())


def split_message(text: str) -> Tuple[str, Optional[str]]:
    """Split formatted text into its subject line and an optional body."""
    subject, _, rest = text.strip().partition("\n")
    body = rest.strip()
    return subject.strip(), body or None


def resolve_template(name_or_template: Optional[str], templates: Dict[str, str]) -> Optional[str]:
    """Look a template up by name, or treat the value as a literal template."""
    if not name_or_template:
        return None
    return templates.get(name_or_template, name_or_template)


def format_subject(
    commit_type: str,
    scope: Optional[str],
    description: str,
    style: str = STYLE_CONVENTIONAL,
    template: Optional[str] = None,
    body: Optional[str] = None,
) -> str:
    """Build the text of a commit message.

    Parameters
    ----------
    commit_type : str
        The commit type.
    scope : str, optional
        The scope; omitted from the output when empty.
    description : str
        The imperative description.
    style : str, optional
        ``conventional`` emits ``type(scope): description``; any other
        style emits the bare description.
    template : str, optional
        A template as understood by :func:`apply_template`. Takes
        precedence over ``style``.
    body : str, optional
        Body text, only used by templates with a ``{body}`` placeholder.

    Returns
    -------
    str
        The subject line, followed by a body when a template produced one.
    """
    if template is not None:
        return apply_template(template, commit_type, scope, description, body)
    if style == STYLE_CONVENTIONAL:
        if scope:
            return f"{commit_type}({scope}): {description}"
        return f"{commit_type}: {description}"
    return description


def truncate_subject(subject: str, max_length: int) -> str:
    """Shorten ``subject`` to at most ``max_length`` characters.

    The cut is made at the last space before ``max_length - 3`` when that
    keeps at least 70% of the limit, otherwise exactly at
    ``max_length - 3``. ``...`` is appended in both cases.
    """
    if len(subject) <= max_length:
        return subject
    truncated = subject[: max_length - len(ELLIPSIS)]
    last_space = truncated.rfind(" ")
    if last_space >= max_length * WORD_BOUNDARY_RATIO:
        truncated = truncated[:last_space]
    return truncated.rstrip() + ELLIPSIS


def build_body(changeset: ChangeSet, analysis: ChangeAnalysis) -> str:
    """Summarise a change set for the commit body."""
    files = changeset.files
    sections: List[str] = []
    if len(files) <= BODY_FILE_LIST_LIMIT:
        listing = ["Files changed:"] + [f"- {f.path} ({f.status})" for f in files]
        sections.append("\n".join(listing))
    else:
        sections.append(f"Modified {len(files)} files")

    stats = [f"Changes: +{changeset.total_additions} -{changeset.total_deletions}"]
    if analysis.impact_level != IMPACT_MINOR:
        stats.append(f"Impact: {analysis.impact_level}")
    if len(analysis.file_categories) > 1:
        stats.append(f"Affects: {', '.join(analysis.file_categories)} files")
    sections.append("\n".join(stats))
    return "\n\n".join(sections)


def _replace_type_prefix(subject: str, old: str, new: str) -> str:
    if subject.lower().startswith(old.lower()):
        return new + subject[len(old):]
    return subject


def validate_message(
    message: CommitMessage,
    allowed_types: Sequence[str],
    max_length: int,
    conventional: bool = True,
) -> CommitMessage:
    """Validate ``message`` in place, repairing what can be repaired.

    Parameters
    ----------
    message : CommitMessage
        The message to check. Its ``subject``, ``type`` and ``warnings``
        may be updated.
    allowed_types : sequence of str
        Commit types accepted in conventional mode.
    max_length : int
        Maximum subject length.
    conventional : bool, optional
        Enforce the Conventional Commit type and shape rules.

    Returns
    -------
    CommitMessage
        The same message object, for chaining.

    Raises
    ------
    CommitValidationError
        For an empty subject (``EMPTY_MESSAGE``) or a type or shape that
        cannot be repaired (``INVALID_COMMIT_FORMAT``).
    """
    message.subject = message.subject.strip()
    if not message.subject:
        raise CommitValidationError(ValidationErrorKind.EMPTY_MESSAGE, subject=message.subject)

    if conventional:
        match = CONVENTIONAL_RE.match(message.subject)
        if match:
            message.type = match.group(1)
            if match.group(2):
                message.scope = match.group(2)[1:-1]

        fixed = fix_commit_type(message.type, allowed_types)
        if fixed is None:
            raise CommitValidationError(
                ValidationErrorKind.INVALID_COMMIT_FORMAT,
                subject=message.subject,
                invalid_type=message.type,
                allowed_types=allowed_types,
            )
        if fixed != message.type:
            logger.debug("Mapped commit type '%s' to '%s'", message.type, fixed)
            if match:
                message.subject = _replace_type_prefix(message.subject, message.type, fixed)
            message.type = fixed

        if not CONVENTIONAL_RE.match(message.subject):
            if ":" in message.subject:
                raise CommitValidationError(
                    ValidationErrorKind.INVALID_COMMIT_FORMAT,
                    subject=message.subject,
                )
            prefix = f"{message.type}({message.scope})" if message.scope else message.type
            message.subject = f"{prefix}: {message.subject}"
        message.is_conventional = True

    length = len(message.subject)
    if length > max_length:
        message.subject = truncate_subject(message.subject, max_length)
        notice = CommitValidationError(
            ValidationErrorKind.MESSAGE_TOO_LONG,
            subject=message.subject,
            limit=len(message.subject),
            length=length,
        ).user_message
        logger.warning(notice)
        message.warnings.append(notice)
    return message
