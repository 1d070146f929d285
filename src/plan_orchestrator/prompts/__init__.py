"""Prompt templates used by the change analyst."""

from .analysis import ANALYSIS_SYSTEM_PROMPT, PLAN_MARKER, build_analysis_prompt

__all__ = [
    "ANALYSIS_SYSTEM_PROMPT",
    "PLAN_MARKER",
    "build_analysis_prompt",
]
