"""Tests for the streaming LLM providers with a mocked HTTP session."""

import json
import unittest
from unittest.mock import MagicMock, patch

import requests

from plan_orchestrator.config import LLMConfig
from plan_orchestrator.errors import LLMProviderError
from plan_orchestrator.llm import (
    DummyLLMProvider,
    GeminiProvider,
    OpenAICompatibleProvider,
    create_llm_provider,
)


def _sse_response(events, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.text = ""
    lines = []
    for event in events:
        lines.append(event if isinstance(event, str) else f"data: {json.dumps(event)}")
        lines.append("")
    response.iter_lines.return_value = iter(lines)
    if status_code >= 400 and status_code != 429:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} Error")
        response.text = "server exploded"
    return response


def _openai_delta(text):
    return {"choices": [{"delta": {"content": text}}]}


def _gemini_chunk(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class OpenAICompatibleProviderTests(unittest.TestCase):
    def setUp(self) -> None:
        config = LLMConfig(provider="openai", model="gpt-test", api_key="sk-test",
                           endpoint="https://api.example.com/v1/")
        self.provider = OpenAICompatibleProvider(config)
        self.provider.retry_backoff = 0
        self.provider.session = MagicMock()

    def test_streams_delta_content_in_order(self) -> None:
        self.provider.session.post.return_value = _sse_response([
            {"choices": [{"delta": {"role": "assistant"}}]},
            _openai_delta("Hello"),
            _openai_delta(", world"),
            "data: [DONE]",
            _openai_delta("ignored"),
        ])

        chunks = list(self.provider.stream_response("prompt", system_prompt="system"))

        self.assertEqual(chunks, ["Hello", ", world"])
        args, kwargs = self.provider.session.post.call_args
        self.assertEqual(args[0], "https://api.example.com/v1/chat/completions")
        self.assertTrue(kwargs["stream"])
        self.assertTrue(kwargs["json"]["stream"])
        self.assertEqual(kwargs["json"]["messages"][0], {"role": "system", "content": "system"})
        self.assertEqual(kwargs["headers"]["Authorization"], "Bearer sk-test")

    def test_retries_on_rate_limit(self) -> None:
        self.provider.session.post.side_effect = [
            _sse_response([], status_code=429),
            _sse_response([_openai_delta("ok")]),
        ]
        with patch("plan_orchestrator.llm.base.time.sleep") as sleep:
            self.assertEqual(list(self.provider.stream_response("p")), ["ok"])
        self.assertEqual(self.provider.session.post.call_count, 2)
        sleep.assert_called_once_with(0)

    def test_rate_limit_exhausted(self) -> None:
        self.provider.session.post.side_effect = [_sse_response([], status_code=429) for _ in range(2)]
        with patch("plan_orchestrator.llm.base.time.sleep"):
            with self.assertRaises(LLMProviderError):
                list(self.provider.stream_response("p", max_retries=2))

    def test_http_error(self) -> None:
        self.provider.session.post.return_value = _sse_response([], status_code=500)
        with self.assertRaisesRegex(LLMProviderError, "server exploded"):
            list(self.provider.stream_response("p"))

    def test_connection_error(self) -> None:
        self.provider.session.post.side_effect = requests.exceptions.ConnectionError("refused")
        with self.assertRaisesRegex(LLMProviderError, "request failed"):
            list(self.provider.stream_response("p"))

    def test_empty_stream(self) -> None:
        self.provider.session.post.return_value = _sse_response(["data: not-json", "data: [DONE]"])
        with self.assertRaisesRegex(LLMProviderError, "No text"):
            list(self.provider.stream_response("p"))

    def test_skips_non_object_payloads(self) -> None:
        self.provider.session.post.return_value = _sse_response([
            "data: [1, 2]",
            'data: "keep-alive"',
            _openai_delta("ok"),
        ])
        self.assertEqual(list(self.provider.stream_response("p")), ["ok"])

    def test_malformed_event_shape_raises_provider_error(self) -> None:
        response = _sse_response([{"choices": "x"}])
        self.provider.session.post.return_value = response
        with self.assertRaisesRegex(LLMProviderError, "unexpected event"):
            list(self.provider.stream_response("p"))
        response.close.assert_called()

    def test_requires_endpoint(self) -> None:
        with self.assertRaises(ValueError):
            OpenAICompatibleProvider(LLMConfig(provider="openai-compatible", endpoint=None))


class GeminiProviderTests(unittest.TestCase):
    def test_streams_candidate_text(self) -> None:
        provider = GeminiProvider(LLMConfig(provider="gemini", model="gemini-test", api_key="k"))
        provider.session = MagicMock()
        provider.session.post.return_value = _sse_response([
            _gemini_chunk("Part one. "),
            {"candidates": []},
            _gemini_chunk("Part two."),
        ])

        chunks = list(provider.stream_response("prompt", system_prompt="sys"))

        self.assertEqual(chunks, ["Part one. ", "Part two."])
        args, kwargs = provider.session.post.call_args
        self.assertIn("models/gemini-test:streamGenerateContent?alt=sse&key=k", args[0])
        text = kwargs["json"]["contents"][0]["parts"][0]["text"]
        self.assertTrue(text.startswith("sys"))
        self.assertTrue(text.endswith("prompt"))

    def test_requires_api_key(self) -> None:
        with self.assertRaises(ValueError):
            GeminiProvider(LLMConfig(provider="gemini", api_key=None))


class ProviderFactoryTests(unittest.TestCase):
    def test_dummy_provider(self) -> None:
        provider = create_llm_provider(LLMConfig(provider="dummy"))
        self.assertIsInstance(provider, DummyLLMProvider)
        self.assertIn("===PLAN===", provider.generate_response("p"))

    def test_openai_family(self) -> None:
        for name in ("openai", "deepseek", "openrouter"):
            config = LLMConfig(provider=name, endpoint="https://example.com/v1")
            self.assertIsInstance(create_llm_provider(config), OpenAICompatibleProvider)

    def test_unknown_provider(self) -> None:
        with self.assertRaises(ValueError):
            create_llm_provider(LLMConfig(provider="carrier-pigeon"))


if __name__ == "__main__":
    unittest.main()
