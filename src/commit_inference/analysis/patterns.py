"""
Static path rule tables used to classify changed files.

Two ordered tables live here:

* :data:`FILE_TYPE_PATTERNS` maps a path to a category, an implied
  Conventional Commit type and a weight. When several rules match the
  same path the heaviest one wins; ties go to the rule declared first.
* :data:`SCOPE_PATTERNS` maps a path to a scope name and a priority.
  Priorities are summed across all files of a change set by
  :func:`commit_inference.analysis.change_classifier.detect_scope`.

Selection is done with :func:`argmax` so the reduction can be tested
independently of the tables.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Pattern, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class FileTypePattern:
    regex: Pattern[str]
    category: str
    commit_type: str
    weight: float

    def matches(self, path: str) -> bool:
        return bool(self.regex.search(path))


@dataclass(frozen=True)
class ScopePattern:
    regex: Pattern[str]
    scope: str
    priority: float

    def matches(self, path: str) -> bool:
        return bool(self.regex.search(path))


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


FILE_TYPE_PATTERNS: List[FileTypePattern] = [
    # Documentation
    FileTypePattern(_rx(r"\.(md|txt|rst|adoc)$"), "docs", "docs", 10),
    FileTypePattern(_rx(r"(^|/)(README|CHANGELOG|LICENSE|CONTRIBUTING)[^/]*$"), "docs", "docs", 15),
    FileTypePattern(_rx(r"^docs?/"), "docs", "docs", 12),
    # Tests
    FileTypePattern(_rx(r"\.(test|spec)\.(js|ts|jsx|tsx|py|java|cs|rb|php)$"), "test", "test", 12),
    FileTypePattern(_rx(r"(^|/)test_[^/]*\.py$|_test\.(py|go)$"), "test", "test", 12),
    FileTypePattern(_rx(r"(^|/)(test|tests|spec|specs|__tests__)/"), "test", "test", 10),
    FileTypePattern(_rx(r"\.test\."), "test", "test", 8),
    # Configuration and package manifests
    FileTypePattern(_rx(r"\.(json|yaml|yml|toml|ini|cfg|conf)$"), "config", "chore", 8),
    FileTypePattern(
        _rx(
            r"(^|/)(package\.json|package-lock\.json|yarn\.lock|pnpm-lock\.yaml|Gemfile(\.lock)?"
            r"|requirements[\w.-]*\.txt|setup\.py|setup\.cfg|pyproject\.toml|Pipfile(\.lock)?"
            r"|poetry\.lock|pom\.xml|build\.gradle|Cargo\.(toml|lock)|go\.(mod|sum))$"
        ),
        "config",
        "chore",
        14,
    ),
    FileTypePattern(_rx(r"\.config(\.(js|ts|mjs|cjs))?$|(^|/)\.[\w.-]*rc$"), "config", "chore", 8),
    # Build and CI
    FileTypePattern(
        _rx(r"(^|/)(Dockerfile(\.[\w-]+)?|docker-compose(\.[\w-]+)?\.ya?ml|\.dockerignore|Makefile)$"),
        "build",
        "chore",
        8,
    ),
    FileTypePattern(_rx(r"^\.github/|(^|/)\.gitlab-ci\.yml$"), "ci", "chore", 9),
    FileTypePattern(_rx(r"\.(yml|yaml)$"), "ci", "chore", 6),
    # Styling
    FileTypePattern(_rx(r"\.(css|scss|sass|less|styl)$"), "style", "style", 10),
    FileTypePattern(_rx(r"\.(html|htm)$"), "markup", "style", 6),
    # Source code defaults to new functionality
    FileTypePattern(
        _rx(r"\.(js|ts|jsx|tsx|mjs|cjs|py|java|kt|cs|rb|php|go|rs|cpp|cc|c|h|hpp|swift|scala|vue|svelte)$"),
        "source",
        "feat",
        5,
    ),
    # Assets
    FileTypePattern(_rx(r"\.(png|jpg|jpeg|gif|svg|ico|webp|woff2?|ttf|eot)$"), "assets", "chore", 4),
]

# Used for paths no rule matches.
DEFAULT_FILE_TYPE = FileTypePattern(re.compile(r"(?!)"), "other", "feat", 3)


def _scope_rx(directory: str, src_prefix: bool = True) -> Pattern[str]:
    prefix = r"^(src/)?" if src_prefix else r"^"
    return _rx(prefix + directory + "/")


SCOPE_PATTERNS: List[ScopePattern] = [
    # Frontend
    ScopePattern(_scope_rx(r"components?"), "components", 10),
    ScopePattern(_scope_rx(r"ui"), "ui", 10),
    ScopePattern(_scope_rx(r"pages?"), "pages", 9),
    ScopePattern(_scope_rx(r"views?"), "views", 9),
    # Backend
    ScopePattern(_scope_rx(r"api"), "api", 10),
    ScopePattern(_scope_rx(r"services?"), "services", 9),
    ScopePattern(_scope_rx(r"controllers?"), "controllers", 9),
    ScopePattern(_scope_rx(r"models?"), "models", 8),
    ScopePattern(_scope_rx(r"routes?"), "routes", 8),
    # Core
    ScopePattern(_scope_rx(r"core"), "core", 8),
    ScopePattern(_scope_rx(r"lib"), "lib", 7),
    ScopePattern(_scope_rx(r"utils?"), "utils", 7),
    ScopePattern(_scope_rx(r"helpers?"), "helpers", 7),
    # Top-level project areas
    ScopePattern(_scope_rx(r"config", src_prefix=False), "config", 8),
    ScopePattern(_scope_rx(r"build", src_prefix=False), "build", 7),
    ScopePattern(_scope_rx(r"scripts?", src_prefix=False), "scripts", 6),
    ScopePattern(_scope_rx(r"docs?", src_prefix=False), "docs", 8),
    ScopePattern(_scope_rx(r"(test|tests|spec|specs|__tests__)", src_prefix=False), "tests", 8),
]

# Directories that conventionally hold production source code.
SOURCE_DIRECTORIES = ("src", "lib", "app", "pkg", "source")


def argmax(items: Iterable[T], key: Callable[[T], float]) -> Optional[T]:
    """Return the item with the largest key.

    Ties are resolved in favour of the item seen first. Returns ``None``
    for an empty iterable.
    """
    best: Optional[T] = None
    best_key: Optional[float] = None
    for item in items:
        value = key(item)
        if best_key is None or value > best_key:
            best, best_key = item, value
    return best


def normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def categorize(
    path: str,
    patterns: Optional[List[FileTypePattern]] = None,
    default: Optional[FileTypePattern] = None,
) -> Optional[FileTypePattern]:
    """Return the heaviest file type rule matching ``path``.

    Parameters
    ----------
    path : str
        Repository relative path.
    patterns : list of FileTypePattern, optional
        Rule table. Defaults to :data:`FILE_TYPE_PATTERNS`.
    default : FileTypePattern, optional
        Returned when no rule matches. Pass :data:`DEFAULT_FILE_TYPE`
        to get the low weight ``other``/``feat`` fallback.
    """
    table = FILE_TYPE_PATTERNS if patterns is None else patterns
    path = normalize_path(path)
    best = argmax((p for p in table if p.matches(path)), key=lambda p: p.weight)
    return best if best is not None else default
