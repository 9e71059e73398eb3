"""
Configuration loader for commit_inference.

Preferences are read from a JSON file. A repository may carry its own
``.commit_inference.json`` at its root; otherwise the user-level file
``~/.commit_inference/config.json`` is used. When neither exists the
built-in defaults apply.

The optional ``ai`` object holds the connection settings of an Ollama
server. Without it the deterministic classifier is used on its own.

Malformed files and fields of the wrong type raise :class:`ConfigError`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from commit_inference.analysis.diff_model import COMMIT_TYPES
from commit_inference.message.formatter import COMMIT_STYLES, STYLE_CONVENTIONAL


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


REPO_CONFIG_FILENAME = ".commit_inference.json"
USER_CONFIG_FILENAME = "config.json"

MIN_SUBJECT_LENGTH = 20
MAX_SUBJECT_LENGTH = 100
DEFAULT_SUBJECT_LENGTH = 72

DEFAULT_TEMPLATES = {
    "conventional": "{type}({scope}): {description}",
    "simple": "{type}: {description}",
    "detailed": "{type}({scope}): {description}\n\n{body}",
}


class ConfigError(Exception):
    """Raised when a configuration file is malformed or has invalid values."""

    pass


@dataclass
class UserPreferences:
    """User preferences controlling message generation."""

    commit_style: str = STYLE_CONVENTIONAL
    allowed_types: List[str] = field(default_factory=lambda: list(COMMIT_TYPES))
    include_body: bool = False
    max_subject_length: int = DEFAULT_SUBJECT_LENGTH
    enable_scope_inference: bool = True
    templates: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TEMPLATES))
    detect_renames: bool = True
    rename_literals: Optional[List[str]] = None


def _get_config_directory() -> Path:
    """Return the user-level configuration directory, ``~/.commit_inference``."""
    return Path.home() / ".commit_inference"


def find_config_file(repo_root: Optional[Path] = None) -> Optional[Path]:
    """Return the configuration file to use, or ``None`` if there is none."""
    candidates = []
    if repo_root is not None:
        candidates.append(Path(repo_root) / REPO_CONFIG_FILENAME)
    candidates.append(_get_config_directory() / USER_CONFIG_FILENAME)
    for path in candidates:
        if path.is_file():
            return path
    return None


def load_config(repo_root: Optional[Path] = None) -> Dict[str, Any]:
    """Read the raw configuration dictionary.

    Args:
        repo_root: Repository root to look for a project configuration in.

    Returns:
        The parsed JSON object, or an empty dictionary when no
        configuration file exists.

    Raises:
        ConfigError: If the file cannot be read, is not valid JSON, or
            does not contain a JSON object.
    """
    config_path = find_config_file(repo_root)
    if config_path is None:
        logger.debug("No configuration file found; using defaults")
        return {}

    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path} must contain a JSON object")

    logger.debug("Loaded configuration from: %s", config_path)
    return data


def _require(data: Dict[str, Any], key: str, kind, label: str) -> Any:
    value = data[key]
    # bool is an int subclass; reject it where a number is expected
    if kind is not bool and isinstance(value, bool):
        raise ConfigError(f"'{key}' must be {label}")
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' must be {label}")
    return value


def preferences_from_config(data: Dict[str, Any]) -> UserPreferences:
    """Build :class:`UserPreferences` from a configuration dictionary.

    Unknown keys are ignored. Unknown commit types in ``allowed_types``
    are dropped with a warning; an empty result falls back to all types.

    Raises:
        ConfigError: If a known key has a value of the wrong type or
            out of range.
    """
    prefs = UserPreferences()

    if "commit_style" in data:
        style = _require(data, "commit_style", str, "a string")
        if style not in COMMIT_STYLES:
            raise ConfigError(
                f"'commit_style' must be one of: {', '.join(COMMIT_STYLES)}"
            )
        prefs.commit_style = style

    if "allowed_types" in data:
        types = _require(data, "allowed_types", list, "a list of strings")
        if not all(isinstance(t, str) for t in types):
            raise ConfigError("'allowed_types' must be a list of strings")
        unknown = [t for t in types if t not in COMMIT_TYPES]
        if unknown:
            logger.warning("Ignoring unknown commit types: %s", ", ".join(unknown))
        known = [t for t in COMMIT_TYPES if t in types]
        prefs.allowed_types = known or list(COMMIT_TYPES)

    for key in ("include_body", "enable_scope_inference", "detect_renames"):
        if key in data:
            setattr(prefs, key, _require(data, key, bool, "a boolean"))

    if "max_subject_length" in data:
        length = _require(data, "max_subject_length", int, "an integer")
        if not MIN_SUBJECT_LENGTH <= length <= MAX_SUBJECT_LENGTH:
            raise ConfigError(
                f"'max_subject_length' must be between {MIN_SUBJECT_LENGTH} "
                f"and {MAX_SUBJECT_LENGTH}"
            )
        prefs.max_subject_length = length

    if "templates" in data:
        templates = _require(data, "templates", dict, "an object")
        if not all(isinstance(v, str) for v in templates.values()):
            raise ConfigError("'templates' values must be strings")
        prefs.templates.update(templates)

    if data.get("rename_literals") is not None:
        literals = _require(data, "rename_literals", list, "a list of two strings")
        if len(literals) != 2 or not all(isinstance(v, str) and v for v in literals):
            raise ConfigError("'rename_literals' must be a list of two non-empty strings")
        prefs.rename_literals = list(literals)

    return prefs


def ai_settings_from_config(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the validated ``ai`` section, or ``None`` when AI is not configured.

    Returns:
        A dictionary with keys:
        - base_url (str): The base URL of the Ollama server
        - port (int): The port number
        - model (str): The model name
        - request_timeout (int|float, optional): Request timeout in seconds
        - max_tokens (int, optional): Maximum tokens for generation

    Raises:
        ConfigError: If the section is not an object, misses required keys
            or has fields of the wrong type.
    """
    ai = data.get("ai")
    if ai is None:
        return None
    if not isinstance(ai, dict):
        raise ConfigError("'ai' must be an object")

    required_keys = ["base_url", "port", "model"]
    missing = [key for key in required_keys if key not in ai]
    if missing:
        logger.error("AI configuration missing required keys: %s", missing)
        raise ConfigError(
            f"Missing required AI configuration keys: {', '.join(missing)}"
        )

    _require(ai, "base_url", str, "a string")
    _require(ai, "port", int, "an integer")
    _require(ai, "model", str, "a string")
    if "request_timeout" in ai:
        _require(ai, "request_timeout", (int, float), "a number")
    if "max_tokens" in ai:
        _require(ai, "max_tokens", int, "an integer")

    logger.debug("AI configuration: %s", ai)
    return {key: ai[key] for key in required_keys + ["request_timeout", "max_tokens"] if key in ai}
