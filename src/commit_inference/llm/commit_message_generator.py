"""
Commit message generation with an optional language model.

The :class:`CommitMessageGenerator` classifies a change set with the
deterministic heuristics of :mod:`commit_inference.analysis`. When an AI
client is injected it first asks the model for a subject line, using
the analysis as a suggestion, and runs the answer through the same
validator as a synthesised message. Any failure on that path (server
unreachable, unusable reply, a reply that fails validation) is logged,
recorded as a warning on the result and answered with the deterministic
message instead. Failures on the deterministic path propagate.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from commit_inference.analysis.change_classifier import analyze_changes
from commit_inference.analysis.diff_model import (
    ChangeAnalysis,
    ChangeSet,
    CommitMessage,
    GenerationOptions,
)
from commit_inference.analysis.rename_rules import build_rename_rules
from commit_inference.config.loader import UserPreferences
from commit_inference.llm.ollama_client import AIInvalidResponseError, LLMError
from commit_inference.llm.prompt_builder import build_prompt
from commit_inference.message.formatter import (
    STYLE_CONVENTIONAL,
    STYLE_CUSTOM,
    CommitValidationError,
    ValidationErrorKind,
    build_body,
    fix_commit_type,
    format_subject,
    resolve_template,
    split_message,
    validate_message,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class CommitMessageGenerator:
    """Generate a commit message for a change set.

    Parameters
    ----------
    ai_client : object, optional
        Anything with a ``generate_subject(prompt) -> str`` method, such
        as :class:`~commit_inference.llm.ollama_client.OllamaClient`.
        Without it only the deterministic classifier is used.
    preferences : UserPreferences, optional
        Formatting preferences. Defaults to :class:`UserPreferences()`.
    """

    def __init__(
        self,
        ai_client=None,
        preferences: Optional[UserPreferences] = None,
    ) -> None:
        self.ai_client = ai_client
        self.preferences = preferences or UserPreferences()
        self.rename_rules = build_rename_rules(
            self.preferences.detect_renames, self.preferences.rename_literals
        )

    @property
    def conventional(self) -> bool:
        return self.preferences.commit_style == STYLE_CONVENTIONAL

    def _include_scope(self, options: GenerationOptions) -> bool:
        if options.include_scope is not None:
            return options.include_scope
        return self.preferences.enable_scope_inference

    def _max_length(self, options: GenerationOptions) -> int:
        return options.max_length or self.preferences.max_subject_length

    def _template(self, options: GenerationOptions) -> Optional[str]:
        template = resolve_template(options.template, self.preferences.templates)
        if template is None and self.preferences.commit_style == STYLE_CUSTOM:
            template = self.preferences.templates.get(STYLE_CUSTOM)
        return template

    def _forced_type(self, options: GenerationOptions) -> Optional[str]:
        if not options.commit_type:
            return None
        forced = fix_commit_type(options.commit_type, self.preferences.allowed_types)
        if forced is None:
            raise CommitValidationError(
                ValidationErrorKind.INVALID_COMMIT_FORMAT,
                invalid_type=options.commit_type,
                allowed_types=self.preferences.allowed_types,
            )
        return forced

    def analyze(self, changeset: ChangeSet, options: Optional[GenerationOptions] = None) -> ChangeAnalysis:
        """Run the deterministic classifier with the effective options."""
        options = options or GenerationOptions()
        forced = self._forced_type(options)
        allowed = [forced] if forced else self.preferences.allowed_types
        return analyze_changes(
            changeset,
            include_scope=self._include_scope(options),
            allowed_types=allowed,
            rename_rules=self.rename_rules,
        )

    def _body(self, changeset: ChangeSet, analysis: ChangeAnalysis) -> Optional[str]:
        if not self.preferences.include_body:
            return None
        return build_body(changeset, analysis)

    def _generate_with_ai(
        self,
        changeset: ChangeSet,
        analysis: ChangeAnalysis,
        options: GenerationOptions,
    ) -> CommitMessage:
        forced = self._forced_type(options)
        include_scope = self._include_scope(options)
        prompt = build_prompt(
            changeset,
            analysis,
            allowed_types=self.preferences.allowed_types,
            max_length=self._max_length(options),
            style=self.preferences.commit_style,
            include_scope=include_scope,
            commit_type=forced,
            template=self._template(options),
        )
        candidate = self.ai_client.generate_subject(prompt)
        message = CommitMessage(
            subject=candidate,
            type=analysis.commit_type,
            scope=analysis.scope if include_scope else None,
            body=self._body(changeset, analysis),
        )
        validate_message(
            message,
            self.preferences.allowed_types,
            self._max_length(options),
            conventional=self.conventional,
        )
        if forced and message.type != forced:
            raise AIInvalidResponseError(
                f"LLM used type '{message.type}' instead of '{forced}'"
            )
        return message

    def _generate_deterministic(
        self,
        changeset: ChangeSet,
        analysis: ChangeAnalysis,
        options: GenerationOptions,
    ) -> CommitMessage:
        template = self._template(options)
        body = self._body(changeset, analysis)
        text = format_subject(
            analysis.commit_type,
            analysis.scope,
            analysis.description,
            style=self.preferences.commit_style,
            template=template,
            body=body,
        )
        subject, template_body = split_message(text)
        if template is not None and ("{body}" in template or "{Body}" in template):
            body = template_body
        message = CommitMessage(
            subject=subject,
            type=analysis.commit_type,
            scope=analysis.scope,
            body=body,
        )
        return validate_message(
            message,
            self.preferences.allowed_types,
            self._max_length(options),
            conventional=self.conventional,
        )

    def generate(
        self,
        changeset: ChangeSet,
        options: Optional[GenerationOptions] = None,
    ) -> CommitMessage:
        """Generate a commit message for ``changeset``.

        Parameters
        ----------
        changeset : ChangeSet
            The changes to describe.
        options : GenerationOptions, optional
            Per-request overrides of the preferences.

        Returns
        -------
        CommitMessage
            The validated message. ``warnings`` lists truncations and AI
            fallbacks.

        Raises
        ------
        CommitValidationError
            If the deterministic message cannot be validated, or a forced
            commit type is not allowed.
        """
        options = options or GenerationOptions()
        analysis = self.analyze(changeset, options)
        logger.debug("Analysis: %s", analysis)

        notices: List[str] = []
        if self.ai_client is not None and changeset.files:
            try:
                return self._generate_with_ai(changeset, analysis, options)
            except (LLMError, Exception) as exc:
                logger.warning("LLM failed to generate commit message: %s; using fallback.", exc)
                notices.append(f"AI generation failed ({exc}); used rule-based message")

        message = self._generate_deterministic(changeset, analysis, options)
        message.warnings[:0] = notices
        return message
