"""LLM provider package."""

from .analyst import AnalysisStream, ChangeAnalyst, ChangeRequest, PlanDraft
from .base import BaseLLMProvider, HTTPStreamingProvider, create_llm_provider
from .dummy import DummyLLMProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider

__all__ = [
    # Analysis
    "ChangeAnalyst",
    "ChangeRequest",
    "AnalysisStream",
    "PlanDraft",
    # Provider factory
    "create_llm_provider",
    # Provider base classes
    "BaseLLMProvider",
    "HTTPStreamingProvider",
    # Individual providers
    "DummyLLMProvider",
    "GeminiProvider",
    "OpenAICompatibleProvider",
]
