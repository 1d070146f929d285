"""Data models for the orchestrator module.

Every model is a frozen dataclass. Plan states are one class per variant,
keyed by a class-level ``status``, so a state can only carry the fields that
belong to its variant.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union


class StepStatus(str, Enum):
    """步骤执行状态"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StepStatus.COMPLETED, StepStatus.FAILED)


# 步骤状态只能前进，不能回退
_STEP_TRANSITIONS = {
    StepStatus.PENDING: {StepStatus.RUNNING, StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.RUNNING: {StepStatus.COMPLETED, StepStatus.FAILED},
    StepStatus.COMPLETED: set(),
    StepStatus.FAILED: set(),
}


def can_transition(current: StepStatus, new: StepStatus) -> bool:
    """Return True when a step may move from ``current`` to ``new``."""
    return new in _STEP_TRANSITIONS[current]


class PlanStatus(str, Enum):
    """编排器状态"""
    IDLE = "idle"
    GENERATING = "generating"
    FAILED = "failed"
    AWAITING_APPROVAL = "awaiting_approval"
    RUNNING = "running"
    EXECUTION_FAILED = "execution_failed"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Analysis:
    """Finalized output of one analysis cycle."""

    model: str
    actions: Tuple[str, ...] = ()
    explanations: str = ""
    confidence: float = 0.0  # 0..1

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", tuple(self.actions))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "actions": list(self.actions),
            "explanations": self.explanations,
            "confidence": self.confidence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Analysis":
        return cls(
            model=data.get("model", ""),
            actions=tuple(data.get("actions", [])),
            explanations=data.get("explanations", ""),
            confidence=float(data.get("confidence", 0.0)),
        )


@dataclass(frozen=True)
class DeploymentStep:
    """单个部署步骤"""

    id: str
    title: str
    status: StepStatus = StepStatus.PENDING
    duration: Optional[float] = None  # 秒，仅在 completed/failed 时设置
    command: Optional[str] = None

    def with_status(self, status: StepStatus, duration: Optional[float] = None) -> "DeploymentStep":
        return replace(self, status=status, duration=duration if status.is_terminal else None)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "status": self.status.value,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        if self.command is not None:
            data["command"] = self.command
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentStep":
        return cls(
            id=str(data["id"]),
            title=data.get("title", ""),
            status=StepStatus(data.get("status", StepStatus.PENDING.value)),
            duration=data.get("duration"),
            command=data.get("command"),
        )


# --- Safety ---

@dataclass(frozen=True)
class ToxicityIssue:
    score: float
    threshold: float
    details: Optional[str] = None

    kind: ClassVar[str] = "toxicity"


@dataclass(frozen=True)
class BiasIssue:
    score: float
    threshold: float
    dimension: Optional[str] = None
    details: Optional[str] = None

    kind: ClassVar[str] = "bias"


@dataclass(frozen=True)
class FactualityIssue:
    consistency: float
    threshold: float
    missing_evidence: Tuple[str, ...] = ()
    details: Optional[str] = None

    kind: ClassVar[str] = "factuality"

    def __post_init__(self) -> None:
        object.__setattr__(self, "missing_evidence", tuple(self.missing_evidence))


SafetyIssue = Union[ToxicityIssue, BiasIssue, FactualityIssue]

_ISSUE_TYPES = {cls.kind: cls for cls in (ToxicityIssue, BiasIssue, FactualityIssue)}


def issue_to_dict(issue: SafetyIssue) -> Dict[str, Any]:
    data: Dict[str, Any] = {"kind": issue.kind}
    if isinstance(issue, FactualityIssue):
        data["consistency"] = issue.consistency
        data["threshold"] = issue.threshold
        if issue.missing_evidence:
            data["missing_evidence"] = list(issue.missing_evidence)
    else:
        data["score"] = issue.score
        data["threshold"] = issue.threshold
        if isinstance(issue, BiasIssue) and issue.dimension:
            data["dimension"] = issue.dimension
    if issue.details:
        data["details"] = issue.details
    return data


def issue_from_dict(data: Dict[str, Any]) -> SafetyIssue:
    kind = data.get("kind")
    if kind not in _ISSUE_TYPES:
        raise ValueError(f"Unknown safety issue kind: {kind!r}")
    fields = {k: v for k, v in data.items() if k != "kind"}
    if "missing_evidence" in fields:
        fields["missing_evidence"] = tuple(fields["missing_evidence"])
    return _ISSUE_TYPES[kind](**fields)


@dataclass(frozen=True)
class SafetyScores:
    """Measured values per dimension."""

    toxicity: float = 0.0
    bias: float = 0.0
    factuality: float = 1.0  # consistency, higher is better

    def to_dict(self) -> Dict[str, float]:
        return {"toxicity": self.toxicity, "bias": self.bias, "factuality": self.factuality}


@dataclass(frozen=True)
class SafetyThresholds:
    """Configured limits per dimension; ``None`` means not configured."""

    toxicity: Optional[float] = None
    bias: Optional[float] = None
    factuality: Optional[float] = None

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {"toxicity": self.toxicity, "bias": self.bias, "factuality": self.factuality}


@dataclass(frozen=True)
class SafetyReport:
    ok: bool
    issues: Tuple[SafetyIssue, ...] = ()
    notes: Tuple[str, ...] = ()
    scores: SafetyScores = field(default_factory=SafetyScores)
    thresholds: SafetyThresholds = field(default_factory=SafetyThresholds)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "issues": [issue_to_dict(issue) for issue in self.issues],
            "notes": list(self.notes),
            "scores": self.scores.to_dict(),
            "thresholds": self.thresholds.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SafetyReport":
        return cls(
            ok=bool(data.get("ok", False)),
            issues=tuple(issue_from_dict(item) for item in data.get("issues", [])),
            notes=tuple(data.get("notes", [])),
            scores=SafetyScores(**data.get("scores", {})),
            thresholds=SafetyThresholds(**data.get("thresholds", {})),
        )


@dataclass(frozen=True)
class PolicyResult:
    """Policy gate verdict, carried by GENERATE_PLAN_SUCCESS."""

    requires_approval: bool
    notes: Tuple[str, ...]
    safety_report: SafetyReport

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requires_approval": self.requires_approval,
            "notes": list(self.notes),
            "safety_report": self.safety_report.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PolicyResult":
        return cls(
            requires_approval=bool(data.get("requires_approval", True)),
            notes=tuple(data.get("notes", [])),
            safety_report=SafetyReport.from_dict(data.get("safety_report", {})),
        )


# --- Plan states ---

@dataclass(frozen=True)
class IdleState:
    status: ClassVar[PlanStatus] = PlanStatus.IDLE


@dataclass(frozen=True)
class PartialAnalysis:
    explanations: str = ""


@dataclass(frozen=True)
class GeneratingState:
    partial_analysis: Optional[PartialAnalysis] = None

    status: ClassVar[PlanStatus] = PlanStatus.GENERATING


@dataclass(frozen=True)
class FailedState:
    error: str

    status: ClassVar[PlanStatus] = PlanStatus.FAILED


@dataclass(frozen=True)
class PlanState:
    """Payload shared by every state that holds a generated plan."""

    analysis: Analysis
    steps: Tuple[DeploymentStep, ...]
    safety_report: SafetyReport


@dataclass(frozen=True)
class AwaitingApprovalState(PlanState):
    policy_notes: Tuple[str, ...] = ()
    requires_approval: bool = True

    status: ClassVar[PlanStatus] = PlanStatus.AWAITING_APPROVAL


@dataclass(frozen=True)
class RunningState(PlanState):
    current_step_index: int = 0

    status: ClassVar[PlanStatus] = PlanStatus.RUNNING


@dataclass(frozen=True)
class ExecutionFailedState(PlanState):
    current_step_index: int = 0
    error: str = ""

    status: ClassVar[PlanStatus] = PlanStatus.EXECUTION_FAILED


@dataclass(frozen=True)
class CompletedState(PlanState):
    current_step_index: int = 0

    status: ClassVar[PlanStatus] = PlanStatus.COMPLETED


DeploymentPlanState = Union[
    IdleState,
    GeneratingState,
    FailedState,
    AwaitingApprovalState,
    RunningState,
    ExecutionFailedState,
    CompletedState,
]

IDLE = IdleState()


def state_to_dict(state: DeploymentPlanState) -> Dict[str, Any]:
    """Render a state as a JSON-friendly snapshot."""
    data: Dict[str, Any] = {"status": state.status.value}
    if isinstance(state, GeneratingState):
        if state.partial_analysis is not None:
            data["partial_analysis"] = {"explanations": state.partial_analysis.explanations}
    elif isinstance(state, FailedState):
        data["error"] = state.error
    elif isinstance(state, PlanState):
        data["analysis"] = state.analysis.to_dict()
        data["steps"] = [step.to_dict() for step in state.steps]
        data["safety_report"] = state.safety_report.to_dict()
        if isinstance(state, AwaitingApprovalState):
            data["policy_notes"] = list(state.policy_notes)
            data["requires_approval"] = state.requires_approval
        else:
            data["current_step_index"] = state.current_step_index
        if isinstance(state, ExecutionFailedState):
            data["error"] = state.error
    return data
