import json
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from commit_inference.llm.ollama_client import (
    AIInvalidResponseError,
    AIUnavailableError,
    LLMError,
    OllamaClient,
    clean_response,
    strip_thinking_tags,
)


class DummyResponse(SimpleNamespace):
    def json(self):
        return json.loads(self.text)


class TestOllamaClient(unittest.TestCase):
    def test_generate_success(self) -> None:
        calls = []

        def fake_post(url, *_args, **kwargs):
            calls.append((url, kwargs))
            return DummyResponse(status_code=200, text=json.dumps({"response": "Hello"}))

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model", request_timeout=5)
            self.assertEqual(client.generate("prompt"), "Hello")
        url, kwargs = calls[0]
        self.assertEqual(url, "http://localhost:11434/api/generate")
        self.assertEqual(kwargs["json"], {"model": "model", "prompt": "prompt", "stream": False})
        self.assertEqual(kwargs["timeout"], 5)

    def test_max_tokens_sent_as_option(self) -> None:
        payloads = []

        def fake_post(url, *_args, **kwargs):
            payloads.append(kwargs["json"])
            return DummyResponse(status_code=200, text=json.dumps({"response": "ok"}))

        with patch("requests.post", fake_post):
            OllamaClient("http://localhost", 11434, "model", max_tokens=40).generate("prompt")
        self.assertEqual(payloads[0]["options"], {"num_predict": 40})

    def test_chat_style_reply(self) -> None:
        def fake_post(url, *_args, **kwargs):
            body = {"message": {"role": "assistant", "content": "<think>hm</think>feat: add x"}}
            return DummyResponse(status_code=200, text=json.dumps(body))

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model")
            self.assertEqual(client.generate("prompt"), "feat: add x")

    def test_generate_error_status(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=500, text="Internal error")

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model")
            with self.assertRaises(AIUnavailableError):
                client.generate("prompt")

    def test_connection_failure(self) -> None:
        def fake_post(url, *_args, **kwargs):
            raise requests.ConnectionError("refused")

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model")
            with self.assertRaises(AIUnavailableError):
                client.generate("prompt")

    def test_timeout(self) -> None:
        def fake_post(url, *_args, **kwargs):
            raise requests.Timeout("too slow")

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model")
            with self.assertRaises(LLMError):
                client.generate("prompt")

    def test_generate_invalid_json(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text="not json")

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model")
            with self.assertRaises(AIInvalidResponseError):
                client.generate("prompt")

    def test_unexpected_structure(self) -> None:
        for body in ([1, 2], {"other": "x"}):
            with self.subTest(body=body):
                def fake_post(url, *_args, **kwargs):
                    return DummyResponse(status_code=200, text=json.dumps(body))

                with patch("requests.post", fake_post):
                    client = OllamaClient("http://localhost", 11434, "model")
                    with self.assertRaises(AIInvalidResponseError):
                        client.generate("prompt")

    def test_generate_subject_cleans_reply(self) -> None:
        reply = "Sure! Here it is:\n```\nfeat(api): add users endpoint\n```"

        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=json.dumps({"response": reply}))

        with patch("requests.post", fake_post):
            client = OllamaClient("http://localhost", 11434, "model")
            self.assertEqual(client.generate_subject("prompt"), "feat(api): add users endpoint")

    def test_from_settings(self) -> None:
        client = OllamaClient.from_settings(
            {"base_url": "http://ollama", "port": 8080, "model": "llama3", "max_tokens": 64}
        )
        self.assertEqual(client.base_url, "http://ollama")
        self.assertEqual(client.port, 8080)
        self.assertEqual(client.model, "llama3")
        self.assertEqual(client.request_timeout, 60.0)
        self.assertEqual(client.max_tokens, 64)


class TestCleanResponse(unittest.TestCase):
    def test_cases(self) -> None:
        cases = [
            ("feat: add x", "feat: add x"),
            ('"fix(ui): align button"', "fix(ui): align button"),
            ("`docs: update readme`", "docs: update readme"),
            ("Commit message: chore: bump deps", "chore: bump deps"),
            ("<thinking>\nlong\n</thinking>\nrefactor: split   module", "refactor: split module"),
            ("Add login page\nMore text", "Add login page"),
        ]
        for raw, expected in cases:
            with self.subTest(raw=raw):
                self.assertEqual(clean_response(raw), expected)

    def test_empty_reply(self) -> None:
        for raw in ("", "   ", "<think>only thoughts</think>", "```\n```"):
            with self.subTest(raw=raw):
                with self.assertRaises(AIInvalidResponseError):
                    clean_response(raw)

    def test_strip_thinking_tags(self) -> None:
        self.assertEqual(strip_thinking_tags("<think>reasoning...</think>Answer"), "Answer")
        self.assertEqual(strip_thinking_tags("<REASONING>x</REASONING>\n\nReal"), "Real")


if __name__ == "__main__":
    unittest.main()
