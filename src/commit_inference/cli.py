"""
Command line interface for the commit_inference tool.

This module defines the ``main`` function which is used as the entry
point when executing the ``commit-infer`` command. It collects the
changes (from git or from a diff file), loads the configuration, runs
the commit message generator and prints the message on stdout. Status
output, warnings and errors go to stderr so that the message can be
piped straight into ``git commit -F -``.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import click

from commit_inference import __version__
from commit_inference.analysis.change_classifier import score_commit_types
from commit_inference.analysis.diff_model import ChangeSet, GenerationOptions
from commit_inference.config.loader import (
    MAX_SUBJECT_LENGTH,
    MIN_SUBJECT_LENGTH,
    ConfigError,
    ai_settings_from_config,
    load_config,
    preferences_from_config,
)
from commit_inference.llm.commit_message_generator import CommitMessageGenerator
from commit_inference.llm.ollama_client import OllamaClient
from commit_inference.message.formatter import COMMIT_STYLES, CommitValidationError
from commit_inference.vcs.diff_parser import parse_diff_to_changeset
from commit_inference.vcs.git_client import (
    GitClient,
    GitError,
    RepositoryErrorKind,
    RepositoryStateError,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_VALIDATION_ERROR = 7
EXIT_MERGE_CONFLICTS = 8

REPOSITORY_EXIT_CODES = {
    RepositoryErrorKind.NOT_A_REPOSITORY: EXIT_NO_REPO,
    RepositoryErrorKind.NO_CHANGES: EXIT_NO_CHANGES,
    RepositoryErrorKind.MERGE_CONFLICTS: EXIT_MERGE_CONFLICTS,
}


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback, written to stderr."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...", err=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        click.echo(f"  ✓ Done ({elapsed:.1f}s)", err=True)
        return False


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=True)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}", err=True)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def read_changeset(cwd: Path, staged: bool, diff_file) -> ChangeSet:
    """Build the change set from a diff file or from the git repository.

    Raises
    ------
    RepositoryStateError
        When there is no repository, nothing changed, or merge conflicts
        are pending.
    GitError
        When a git command fails.
    """
    if diff_file is not None:
        changeset = parse_diff_to_changeset(diff_file.read())
        if not changeset.files:
            raise RepositoryStateError(
                RepositoryErrorKind.NO_CHANGES, "The diff does not contain any file changes"
            )
        return changeset
    client = GitClient.from_path(cwd)
    return client.get_changeset(staged=staged)


def print_explanation(generator: CommitMessageGenerator, changeset: ChangeSet, options: GenerationOptions) -> None:
    """Show how the rule-based classifier sees the change set."""
    analysis = generator.analyze(changeset, options)
    scores = score_commit_types(
        changeset.paths, [(f.additions, f.deletions) for f in changeset.files]
    )
    print_info(f"Files: {len(changeset.files)} (+{changeset.total_additions} -{changeset.total_deletions})")
    for changed in changeset.files:
        print_info(f"{changed.status} {changed.path} (+{changed.additions} -{changed.deletions})", indent=1)
    print_info("Type scores: " + ", ".join(f"{t}={s:g}" for t, s in scores.items()))
    print_info(f"Type: {analysis.commit_type}")
    print_info(f"Scope: {analysis.scope or 'none'}")
    print_info(f"Impact: {analysis.impact_level}")
    print_info(f"Categories: {', '.join(analysis.file_categories) or 'none'}")
    print_info(f"Description: {analysis.description}")


@click.command()
@click.option("--staged", is_flag=True, help="Describe only the changes in the index.")
@click.option(
    "--diff-file",
    type=click.File("r", encoding="utf-8"),
    help="Read a unified diff from FILE ('-' for stdin) instead of running git.",
)
@click.option("--no-ai", is_flag=True, help="Do not contact the language model.")
@click.option("--style", type=click.Choice(COMMIT_STYLES), help="Override the commit style.")
@click.option(
    "--max-length",
    type=click.IntRange(MIN_SUBJECT_LENGTH, MAX_SUBJECT_LENGTH),
    help="Maximum subject line length.",
)
@click.option("--no-scope", is_flag=True, help="Do not infer a scope.")
@click.option("--type", "commit_type", help="Force the commit type.")
@click.option("--template", help="Template name from the configuration, or a literal template.")
@click.option("--body/--no-body", default=None, help="Add a summary body to the message.")
@click.option("--explain", is_flag=True, help="Show the classification details on stderr.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="commit-infer")
def main(
    staged: bool,
    diff_file,
    no_ai: bool,
    style: Optional[str],
    max_length: Optional[int],
    no_scope: bool,
    commit_type: Optional[str],
    template: Optional[str],
    body: Optional[bool],
    explain: bool,
    verbose: bool,
) -> None:
    """Infer a Conventional Commit message from the current changes.

    The message is printed on stdout, e.g. ``commit-infer | git commit -F -``.
    """
    # force=True so that handlers are reconfigured on every invocation (tests)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )

    try:
        cwd = Path.cwd()
        repo_root = GitClient.find_repo_root(cwd)

        try:
            config = load_config(repo_root)
            preferences = preferences_from_config(config)
            ai_settings = ai_settings_from_config(config)
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

        if style is not None:
            preferences.commit_style = style
        if body is not None:
            preferences.include_body = body

        try:
            changeset = read_changeset(cwd, staged, diff_file)
        except RepositoryStateError as exc:
            print_error(str(exc))
            for path in exc.files:
                print_info(path, indent=1)
            raise click.exceptions.Exit(REPOSITORY_EXIT_CODES[exc.kind])
        except GitError as exc:
            print_error(f"VCS error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        ai_client = None
        if not no_ai and ai_settings is not None:
            ai_client = OllamaClient.from_settings(ai_settings)
        generator = CommitMessageGenerator(ai_client, preferences)
        options = GenerationOptions(
            include_scope=False if no_scope else None,
            commit_type=commit_type,
            template=template,
            max_length=max_length,
        )

        try:
            if explain:
                print_explanation(generator, changeset, options)
            if ai_client is not None:
                with ProgressIndicator(f"Asking {ai_settings['model']} for a commit message"):
                    message = generator.generate(changeset, options)
            else:
                message = generator.generate(changeset, options)
        except CommitValidationError as exc:
            print_error(exc.user_message)
            raise click.exceptions.Exit(EXIT_VALIDATION_ERROR)

        for warning in message.warnings:
            print_warning(warning)
        click.echo(message.full_text())
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
