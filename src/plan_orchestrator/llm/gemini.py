"""Google Gemini streaming provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from .base import HTTPStreamingProvider

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)


class GeminiProvider(HTTPStreamingProvider):
    """Google Gemini provider using the ``streamGenerateContent`` SSE endpoint."""

    name = "Gemini"

    def __init__(self, config: "LLMConfig"):
        if not config.api_key:
            raise ValueError("Gemini API key is required")
        super().__init__(config)

        self.api_key = config.api_key
        self.model = config.model or "gemini-2.5-flash"

        if config.endpoint:
            self.base_endpoint = config.endpoint
        else:
            self.base_endpoint = (
                "https://generativelanguage.googleapis.com/v1beta/models/"
                f"{self.model}:streamGenerateContent"
            )

    def stream_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
    ) -> Iterator[str]:
        url = f"{self.base_endpoint}?alt=sse&key={self.api_key}"

        # Gemini 没有独立的 system prompt，这里与用户提示拼接
        combined_prompt = prompt
        if system_prompt:
            combined_prompt = f"{system_prompt}\n\n---\n\n{prompt}"

        body = {
            "contents": [{"role": "user", "parts": [{"text": combined_prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
            },
        }
        headers = {"Content-Type": "application/json"}
        return self._stream_events(url, body, headers, timeout, max_retries)

    def _extract_text(self, event: Dict[str, Any]) -> Optional[str]:
        texts = []
        for candidate in event.get("candidates") or []:
            for part in candidate.get("content", {}).get("parts", []):
                text = part.get("text")
                if text:
                    texts.append(text)
        return "".join(texts) or None
