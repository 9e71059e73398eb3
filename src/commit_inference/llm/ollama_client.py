"""
Client for interacting with an Ollama LLM server.

This client wraps HTTP requests to the Ollama REST API ``/api/generate``
endpoint. Connection problems, timeouts and non-200 responses raise
:class:`AIUnavailableError`; replies that cannot be used raise
:class:`AIInvalidResponseError`. Both derive from :class:`LLMError`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


class AIUnavailableError(LLMError):
    """The server could not be reached, timed out or returned an error status."""

    pass


class AIInvalidResponseError(LLMError):
    """The server replied, but the reply is unparseable or empty."""

    pass


THINKING_TAG_PATTERNS = [
    r"<think>.*?</think>",
    r"<thinking>.*?</thinking>",
    r"<thought>.*?</thought>",
    r"<reasoning>.*?</reasoning>",
]

_CODE_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*$")
_COMMIT_LINE_RE = re.compile(r"^\w+(\([^)]+\))?!?:\s+\S")
_LEAD_IN_RE = re.compile(r"^(commit message|subject)\s*:\s*", re.IGNORECASE)


def strip_thinking_tags(text: str) -> str:
    """Remove thinking process tags from LLM responses.

    Many modern LLMs with reasoning capabilities output their thinking
    process in XML-like tags such as <think>, <thinking>, <thought>,
    or <reasoning>. This function strips these tags and their contents
    from the response, leaving only the actual output.

    Parameters
    ----------
    text : str
        The raw LLM response text.

    Returns
    -------
    str
        The text with all thinking tags removed.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    >>> strip_thinking_tags("<thinking>thoughts</thinking>\\n\\nReal answer")
    'Real answer'
    """
    result = text
    for pattern in THINKING_TAG_PATTERNS:
        result = re.sub(pattern, "", result, flags=re.DOTALL | re.IGNORECASE)
    return result.strip()


def clean_response(text: str) -> str:
    """Reduce a raw model reply to a single candidate subject line.

    Thinking tags, markdown code fences and inline code markers are
    removed. The first line shaped like ``type(scope): description`` is
    preferred; otherwise the first non-empty line is used. Runs of
    whitespace are collapsed and surrounding quotes dropped.

    Raises
    ------
    AIInvalidResponseError
        If nothing usable is left.
    """
    text = strip_thinking_tags(text)
    lines = []
    for line in text.splitlines():
        if _CODE_FENCE_RE.match(line):
            continue
        line = line.replace("`", "").strip()
        line = _LEAD_IN_RE.sub("", line)
        if line:
            lines.append(" ".join(line.split()).strip("\"'"))
    lines = [line for line in lines if line]
    if not lines:
        raise AIInvalidResponseError("LLM returned an empty response")
    for line in lines:
        if _COMMIT_LINE_RE.match(line):
            return line
    return lines[0]


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    model : str
        Name of the model to use for generation, e.g. ``"llama3"``.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 60 seconds.
    max_tokens : int, optional
        Maximum number of tokens to generate. If provided, passed via
        the ``options`` payload.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Dict[str, Any]) -> "OllamaClient":
        """Create a client from a validated ``ai`` configuration section."""
        return cls(
            base_url=settings["base_url"],
            port=settings["port"],
            model=settings["model"],
            request_timeout=settings.get("request_timeout", 60.0),
            max_tokens=settings.get("max_tokens"),
        )

    def _endpoint(self) -> str:
        return f"{self.base_url}:{self.port}/api/generate"

    def generate(self, prompt: str) -> str:
        """Generate a completion from the model.

        Parameters
        ----------
        prompt : str
            The prompt to send to the model.

        Returns
        -------
        str
            The generated response text with thinking tags removed.

        Raises
        ------
        AIUnavailableError
            If the request fails or the server returns an error status.
        AIInvalidResponseError
            If the response body cannot be interpreted.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        options: Dict[str, Any] = {}
        if self.max_tokens is not None:
            options["num_predict"] = self.max_tokens
        if options:
            payload["options"] = options
        url = self._endpoint()
        logger.debug("Sending request to LLM at %s with payload: %s", url, payload)
        try:
            response = requests.post(
                url,
                json=payload,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise AIUnavailableError(str(exc)) from exc
        if response.status_code != 200:
            logger.error(
                "LLM returned non-200 status %s: %s", response.status_code, response.text
            )
            raise AIUnavailableError(f"LLM returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise AIInvalidResponseError("Failed to parse LLM response") from exc
        if not isinstance(data, dict):
            raise AIInvalidResponseError("Unexpected response structure from LLM")
        # /api/generate answers in 'response'; /api/chat style replies in 'message'
        if "response" in data:
            return strip_thinking_tags(str(data.get("response") or ""))
        if "message" in data and isinstance(data["message"], dict):
            return strip_thinking_tags(str(data["message"].get("content") or ""))
        raise AIInvalidResponseError("Unexpected response structure from LLM")

    def generate_subject(self, prompt: str) -> str:
        """Generate a completion and reduce it to one subject line."""
        return clean_response(self.generate(prompt))
