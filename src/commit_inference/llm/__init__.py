"""
Language model integration for commit_inference.

This package contains the :class:`OllamaClient` for communicating with
an Ollama LLM server and the :class:`CommitMessageGenerator`, which asks
the model for a subject line and falls back to the rule-based analysis.
"""

from .ollama_client import AIInvalidResponseError, AIUnavailableError, LLMError, OllamaClient  # noqa: F401
from .commit_message_generator import CommitMessageGenerator  # noqa: F401
