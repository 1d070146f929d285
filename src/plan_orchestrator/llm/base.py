"""Base class and factory for streaming LLM providers."""

from __future__ import annotations

import json
import logging
import os
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

import requests

from ..errors import LLMProviderError

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def stream_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
    ) -> Iterator[str]:
        """
        Stream a response from the LLM as text chunks, in arrival order.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries on rate limit

        Raises:
            LLMProviderError: If the request fails or yields no text
        """
        raise NotImplementedError

    def generate_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
    ) -> str:
        """Collect :meth:`stream_response` into a single string."""
        return "".join(self.stream_response(prompt, system_prompt, timeout, max_retries))


class HTTPStreamingProvider(BaseLLMProvider):
    """Shared plumbing for providers that stream Server-Sent Events over HTTP."""

    name = "http"
    # 429 重试等待基数（秒）
    retry_backoff = 30

    def __init__(self, config: "LLMConfig") -> None:
        self.config = config
        self.session = requests.Session()
        self.model = config.model
        self.temperature = config.temperature

        # Set up proxy if configured
        proxy = config.proxy or os.environ.get("HTTPS_PROXY") or os.environ.get("HTTP_PROXY")
        if proxy:
            self.session.proxies = {"http": proxy, "https": proxy}
            logger.info("%s provider using proxy: %s", self.name, proxy)

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        """Return the text carried by one decoded SSE event, if any."""
        raise NotImplementedError

    def _stream_events(
        self,
        url: str,
        body: Dict[str, Any],
        headers: Dict[str, str],
        timeout: int,
        max_retries: int,
    ) -> Iterator[str]:
        for attempt in range(max_retries):
            try:
                response = self.session.post(
                    url, json=body, headers=headers, timeout=timeout, stream=True
                )
            except requests.exceptions.RequestException as exc:
                raise LLMProviderError(f"{self.name} request failed: {exc}") from exc

            # Handle rate limiting before any text has been produced
            if response.status_code == 429:
                response.close()
                if attempt < max_retries - 1:
                    wait_time = self.retry_backoff * (attempt + 1)
                    logger.warning("Rate limited by %s. Waiting %ss before retry...", self.name, wait_time)
                    time.sleep(wait_time)
                    continue
                break

            try:
                response.raise_for_status()
            except requests.exceptions.HTTPError as exc:
                detail = response.text[:500] if response.text else ""
                response.close()
                raise LLMProviderError(f"{self.name} API call failed: {exc} {detail}".strip()) from exc

            produced = False
            try:
                for event in iter_sse_events(response):
                    try:
                        text = self._extract_text(event)
                    except (AttributeError, TypeError, KeyError, IndexError) as exc:
                        raise LLMProviderError(
                            f"{self.name} returned an unexpected event: {exc}"
                        ) from exc
                    if text:
                        produced = True
                        yield text
            except requests.exceptions.RequestException as exc:
                raise LLMProviderError(f"{self.name} stream interrupted: {exc}") from exc
            finally:
                response.close()

            if not produced:
                raise LLMProviderError(f"No text found in {self.name} response")
            return

        raise LLMProviderError(f"Rate limited by {self.name} after {max_retries} attempts")


def iter_sse_events(response: requests.Response) -> Iterator[Dict[str, Any]]:
    """Decode ``data:`` lines of a Server-Sent Events response into JSON objects."""
    for line in response.iter_lines(decode_unicode=True):
        if not line or not line.startswith("data:"):
            continue
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            return
        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            logger.debug("Skipping malformed SSE payload: %s", data[:200])
            continue
        if not isinstance(event, dict):
            logger.debug("Skipping non-object SSE payload: %s", data[:200])
            continue
        yield event


def create_llm_provider(config: "LLMConfig") -> BaseLLMProvider:
    """
    Factory function to create the appropriate LLM provider based on config.

    Args:
        config: LLM configuration

    Returns:
        An instance of the appropriate LLM provider

    Raises:
        ValueError: If provider is not supported
    """
    provider = config.provider.lower()

    if provider in {"dummy", "local"}:
        from .dummy import DummyLLMProvider
        return DummyLLMProvider(config)
    elif provider == "gemini":
        from .gemini import GeminiProvider
        return GeminiProvider(config)
    elif provider in {"openai", "deepseek", "openrouter", "openai-compatible", "custom"}:
        from .openai_compatible import OpenAICompatibleProvider
        return OpenAICompatibleProvider(config)
    else:
        raise ValueError(
            f"Unsupported LLM provider: {provider}. "
            f"Supported providers: dummy, gemini, openai, deepseek, openrouter, openai-compatible"
        )
