"""Offline provider that streams a canned analysis."""

from __future__ import annotations

import json
import time
from typing import TYPE_CHECKING, Iterator, Optional

from ..prompts.analysis import PLAN_MARKER
from .base import BaseLLMProvider

if TYPE_CHECKING:
    from ..config import LLMConfig

_DEFAULT_PLAN = {
    "actions": ["build_artifact", "run_tests", "deploy_service", "verify_health"],
    "confidence": 0.85,
    "steps": [
        {"id": "1", "title": "Build artifact", "command": "echo 'build artifact'"},
        {"id": "2", "title": "Run tests", "command": "echo 'run tests'"},
        {"id": "3", "title": "Deploy service", "command": "echo 'deploy service'"},
        {"id": "4", "title": "Verify health", "command": "echo 'verify health'"},
    ],
}

_DEFAULT_EXPLANATION = (
    "The change touches application code only. "
    "First build_artifact packages the new version, then run_tests executes the test suite "
    "against it. If the suite passes, deploy_service rolls the artifact out to the target, "
    "and verify_health checks the service endpoint afterwards. "
    "No schema or data changes were detected.\n"
)


class DummyLLMProvider(BaseLLMProvider):
    """Fallback provider that streams a static response in fixed-size chunks."""

    def __init__(
        self,
        config: Optional["LLMConfig"] = None,
        response: Optional[str] = None,
        chunk_size: int = 24,
        delay: float = 0.0,
    ) -> None:
        self.config = config
        self.response = response or (
            f"{_DEFAULT_EXPLANATION}{PLAN_MARKER}\n{json.dumps(_DEFAULT_PLAN, indent=2)}"
        )
        self.chunk_size = max(1, chunk_size)
        self.delay = delay

    def stream_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        timeout: int = 120,
        max_retries: int = 3,
    ) -> Iterator[str]:
        for start in range(0, len(self.response), self.chunk_size):
            if self.delay:
                time.sleep(self.delay)
            yield self.response[start:start + self.chunk_size]
