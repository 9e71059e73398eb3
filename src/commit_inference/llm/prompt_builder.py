"""
Prompt construction for the AI commit message path.

The prompt embeds the deterministic analysis as a suggestion, the list
of changed files with short diff excerpts, a little project context and
the constraints from the user preferences.
"""

from __future__ import annotations

from textwrap import dedent
from typing import Dict, List, Optional, Sequence

from commit_inference.analysis.diff_model import ChangeAnalysis, ChangeSet
from commit_inference.analysis.patterns import argmax, normalize_path
from commit_inference.message.formatter import STYLE_CONVENTIONAL


# Diff lines shown per file.
DIFF_EXCERPT_LINES = 20

PROJECT_MARKERS = [
    ("nodejs", ("package.json",)),
    ("java", ("pom.xml", "build.gradle")),
    ("python", ("requirements.txt", "setup.py", "pyproject.toml")),
    ("rust", ("Cargo.toml",)),
    ("go", ("go.mod",)),
]

LANGUAGE_EXTENSIONS = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "java": "java",
    "rs": "rust",
    "go": "go",
    "cpp": "cpp",
    "c": "c",
    "cs": "csharp",
    "php": "php",
    "rb": "ruby",
}

FRAMEWORK_MARKERS = [
    ("angular", "angular.json"),
    ("nextjs", "next.config"),
    ("nuxtjs", "nuxt.config"),
    ("vue", "vue.config"),
    ("svelte", "svelte.config"),
    ("gatsby", "gatsby-config"),
]


def _basenames(paths: Sequence[str]) -> List[str]:
    return [normalize_path(p).rsplit("/", 1)[-1] for p in paths]


def detect_project_type(paths: Sequence[str]) -> str:
    """Guess the project type from well-known manifest files."""
    names = set(_basenames(paths))
    for project_type, markers in PROJECT_MARKERS:
        if names.intersection(markers):
            return project_type
    return "generic"


def detect_primary_language(paths: Sequence[str]) -> str:
    """Return the language most of the changed files are written in."""
    counts: Dict[str, int] = {}
    for name in _basenames(paths):
        if "." not in name:
            continue
        language = LANGUAGE_EXTENSIONS.get(name.rsplit(".", 1)[-1].lower())
        if language:
            counts[language] = counts.get(language, 0) + 1
    best = argmax(counts, key=lambda language: counts[language])
    return best or "unknown"


def detect_framework(paths: Sequence[str]) -> Optional[str]:
    for framework, marker in FRAMEWORK_MARKERS:
        if any(name.startswith(marker) for name in _basenames(paths)):
            return framework
    return None


def _diff_excerpt(diff: str) -> str:
    lines = [
        line
        for line in diff.splitlines()
        if line.startswith(("+", "-")) and not line.startswith(("+++", "---"))
    ]
    return "\n".join(lines[:DIFF_EXCERPT_LINES]) if lines else "(no diff available)"


def build_prompt(
    changeset: ChangeSet,
    analysis: ChangeAnalysis,
    allowed_types: Sequence[str],
    max_length: int,
    style: str = STYLE_CONVENTIONAL,
    include_scope: bool = True,
    commit_type: Optional[str] = None,
    template: Optional[str] = None,
) -> str:
    """Construct the prompt asking the model for a single subject line.

    Parameters
    ----------
    changeset : ChangeSet
        The changes to describe.
    analysis : ChangeAnalysis
        The deterministic analysis, offered to the model as a suggestion.
    allowed_types : sequence of str
        Commit types the model may choose from.
    max_length : int
        Maximum subject length.
    style : str, optional
        Commit style; only ``conventional`` asks for a type prefix.
    include_scope : bool, optional
        Whether a scope should be included.
    commit_type : str, optional
        A type the model must use.
    template : str, optional
        A custom template the model should follow.
    """
    paths = changeset.paths
    framework = detect_framework(paths)
    context = (
        f"{detect_project_type(paths)} project, primary language "
        f"{detect_primary_language(paths)}"
    )
    if framework:
        context += f", framework {framework}"

    file_lines = "\n".join(
        f"- {f.path} ({f.status}): +{f.additions} -{f.deletions}" for f in changeset.files
    )
    excerpts = "\n\n".join(
        f"File: {f.path}\n{_diff_excerpt(f.diff)}" for f in changeset.files
    )

    requirements = []
    if style == STYLE_CONVENTIONAL:
        requirements.append("- Use conventional commit format: type(scope): description")
        if commit_type:
            requirements.append(f"- Use commit type: {commit_type}")
        else:
            requirements.append(f"- Suggested commit type: {analysis.commit_type}")
            requirements.append(f"- Available types: {', '.join(allowed_types)}")
        if include_scope and analysis.scope:
            requirements.append(f"- Include scope: {analysis.scope}")
        elif not include_scope:
            requirements.append("- Do not include a scope")
    requirements.append(f"- Keep the subject line under {max_length} characters")
    requirements.append('- Use imperative mood (e.g., "add", "fix", "update")')
    requirements.append("- Be specific and descriptive")
    if template:
        requirements.append(f"- Follow this template: {template}")
    requirement_text = "\n".join(requirements)

    prompt = dedent(
        """
        You are an expert software engineer writing git commit messages.
        Write ONE commit subject line for the following changes.

        Output ONLY the subject line. Do NOT include any reasoning,
        explanations, quotes or text before or after it.

        Change analysis:
        - Suggested type: {commit_type}
        - Suggested scope: {scope}
        - Impact level: {impact}
        - File types: {categories}
        - Description: {description}

        Project context: {context}

        Changed files ({count}), +{additions} -{deletions}:
        {files}

        Requirements:
        {requirements}

        Changes:
        {excerpts}

        Subject line:
        """
    ).strip()
    return prompt.format(
        commit_type=analysis.commit_type,
        scope=analysis.scope or "none",
        impact=analysis.impact_level,
        categories=", ".join(analysis.file_categories) or "none",
        description=analysis.description,
        context=context,
        count=len(changeset.files),
        additions=changeset.total_additions,
        deletions=changeset.total_deletions,
        files=file_lines or "(none)",
        requirements=requirement_text,
        excerpts=excerpts or "(none)",
    )
