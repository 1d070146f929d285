"""OpenAI-compatible streaming provider (OpenAI, DeepSeek, OpenRouter, custom)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from .base import HTTPStreamingProvider

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider(HTTPStreamingProvider):
    """
    Generic provider for any service implementing the Chat Completions API
    with ``stream: true``, including:
    - OpenAI (https://api.openai.com/v1)
    - DeepSeek (https://api.deepseek.com/v1)
    - OpenRouter (https://openrouter.ai/api/v1)
    - Ollama, LM Studio, vLLM and other local endpoints
    """

    name = "OpenAI-compatible"

    def __init__(self, config: "LLMConfig"):
        if not config.endpoint:
            raise ValueError("Endpoint is required for OpenAI-compatible provider")
        super().__init__(config)

        self.base_url = config.endpoint.rstrip("/")
        self.api_key = config.api_key  # Optional for local endpoints
        self.model = config.model or "default"

    def stream_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
    ) -> Iterator[str]:
        url = f"{self.base_url}/chat/completions"

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        body = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "stream": True,
        }

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        return self._stream_events(url, body, headers, timeout, max_retries)

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        choices = event.get("choices") or []
        if not choices:
            return None
        return (choices[0].get("delta") or {}).get("content")
