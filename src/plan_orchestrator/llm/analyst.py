"""Change analyst: turns a streamed LLM response into explanation chunks and a plan.

The analyst asks the model for prose followed by a marker line and a JSON plan
(see :mod:`plan_orchestrator.prompts.analysis`). :class:`AnalysisStream` yields
only the prose while it arrives, then parses the JSON part in ``finalize``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import GenerationError
from ..orchestrator.models import Analysis, DeploymentStep
from ..prompts.analysis import ANALYSIS_SYSTEM_PROMPT, PLAN_MARKER, build_analysis_prompt
from .base import BaseLLMProvider, create_llm_provider

if TYPE_CHECKING:
    from ..config import LLMConfig

logger = logging.getLogger(__name__)


@dataclass
class ChangeRequest:
    """A proposed code change to analyze."""
    summary: str
    target: str = "production"
    diff: Optional[str] = None


@dataclass(frozen=True)
class PlanDraft:
    """Finalized analysis plus its ordered steps, before the safety and policy checks."""
    analysis: Analysis
    steps: Tuple[DeploymentStep, ...]


class AnalysisStream:
    """Single-use iterator over the explanation part of a raw model stream."""

    def __init__(self, raw_chunks: Iterable[str], model: str, marker: str = PLAN_MARKER) -> None:
        self._raw = raw_chunks
        self.model = model
        self.marker = marker
        self._explanations: List[str] = []
        self._plan_parts: List[str] = []
        self._marker_seen = False
        self._started = False
        self._exhausted = False

    @property
    def explanations(self) -> str:
        return "".join(self._explanations)

    def __iter__(self) -> Iterator[str]:
        if self._started:
            raise GenerationError("Analysis stream can only be consumed once")
        self._started = True
        pending = ""

        for chunk in self._raw:
            if self._marker_seen:
                self._plan_parts.append(chunk)
                continue

            pending += chunk
            index = pending.find(self.marker)
            if index != -1:
                self._marker_seen = True
                head = pending[:index]
                self._plan_parts.append(pending[index + len(self.marker):])
                pending = ""
                if head:
                    self._explanations.append(head)
                    yield head
                continue

            # 标记可能被拆分到两个块之间，保留可能是标记前缀的尾部
            keep = self._marker_prefix_length(pending)
            emit, pending = pending[:len(pending) - keep], pending[len(pending) - keep:]
            if emit:
                self._explanations.append(emit)
                yield emit

        if pending:
            self._explanations.append(pending)
            yield pending
        self._exhausted = True

    def _marker_prefix_length(self, text: str) -> int:
        for size in range(min(len(text), len(self.marker) - 1), 0, -1):
            if self.marker.startswith(text[-size:]):
                return size
        return 0

    def finalize(self) -> PlanDraft:
        """Parse the plan section. Drains the stream first if needed.

        Raises:
            GenerationError: If the response has no plan section or the plan is invalid
        """
        if not self._started:
            for _ in self:
                pass
        elif not self._exhausted:
            raise GenerationError("Analysis stream was not fully consumed")

        if not self._marker_seen:
            raise GenerationError("Model response did not contain a plan section")

        data = parse_plan_json("".join(self._plan_parts))
        return build_plan_draft(data, explanations=self.explanations.strip(), default_model=self.model)


def parse_plan_json(text: str) -> Dict[str, Any]:
    """Extract the JSON object from the plan section."""
    start_idx = text.find("{")
    end_idx = text.rfind("}") + 1
    if start_idx == -1 or end_idx == 0:
        raise GenerationError("No JSON found in plan section")

    try:
        data = json.loads(text[start_idx:end_idx])
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Plan JSON parse error: {exc}") from exc

    if not isinstance(data, dict):
        raise GenerationError("Plan section must be a JSON object")
    # 有些模型会返回 {"plan": {...}} 的嵌套结构
    if isinstance(data.get("plan"), dict):
        data = data["plan"]
    return data


def build_plan_draft(data: Dict[str, Any], explanations: str, default_model: str) -> PlanDraft:
    """Validate a decoded plan object and build the draft."""
    actions = data.get("actions", [])
    if not isinstance(actions, list) or not all(isinstance(a, str) for a in actions):
        raise GenerationError("Plan field 'actions' must be a list of strings")

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise GenerationError("Plan field 'confidence' must be a number")
    if not 0.0 <= confidence <= 1.0:
        raise GenerationError(f"Plan confidence {confidence} is outside [0, 1]")

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        raise GenerationError("Missing required field 'steps' in plan")

    steps: List[DeploymentStep] = []
    seen_ids = set()
    for position, step_data in enumerate(raw_steps, 1):
        if not isinstance(step_data, dict) or not step_data.get("title"):
            raise GenerationError(f"Step #{position} is missing a title")
        step_id = str(step_data.get("id", position))
        if step_id in seen_ids:
            raise GenerationError(f"Duplicate step id: {step_id}")
        seen_ids.add(step_id)
        steps.append(DeploymentStep(
            id=step_id,
            title=step_data["title"],
            command=step_data.get("command") or None,
        ))

    if not steps:
        logger.warning("Plan contains no deployment steps")

    analysis = Analysis(
        model=data.get("model") or default_model,
        actions=tuple(actions),
        explanations=explanations,
        confidence=float(confidence),
    )
    return PlanDraft(analysis=analysis, steps=tuple(steps))


class ChangeAnalyst:
    """
    LLM-powered change analyst.

    Builds the analysis prompt and wraps the provider stream in an
    :class:`AnalysisStream`.
    """

    def __init__(self, provider: BaseLLMProvider, model: str, timeout: int = 120) -> None:
        self.provider = provider
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: "LLMConfig") -> "ChangeAnalyst":
        provider = create_llm_provider(config)
        logger.info("Analyst using LLM: %s (model: %s)", config.provider, config.model)
        return cls(provider, model=config.model, timeout=config.timeout)

    def stream(self, request: ChangeRequest) -> AnalysisStream:
        prompt = build_analysis_prompt(
            change_summary=request.summary,
            target=request.target,
            diff=request.diff,
        )
        raw_chunks = self.provider.stream_response(
            prompt=prompt,
            system_prompt=ANALYSIS_SYSTEM_PROMPT,
            timeout=self.timeout,
        )
        return AnalysisStream(raw_chunks, model=self.model)
