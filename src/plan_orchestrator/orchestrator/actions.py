"""Actions accepted by the plan reducer.

Each action is a frozen dataclass tagged with its wire name. ``action_to_dict``
and ``action_from_dict`` give the JSON form used by the action journal, so any
recorded run can be replayed through the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

from .models import Analysis, DeploymentStep, PolicyResult, StepStatus


class ActionType(str, Enum):
    GENERATE_PLAN_START = "GENERATE_PLAN_START"
    GENERATE_PLAN_STREAM = "GENERATE_PLAN_STREAM"
    GENERATE_PLAN_SUCCESS = "GENERATE_PLAN_SUCCESS"
    GENERATE_PLAN_FAILURE = "GENERATE_PLAN_FAILURE"
    APPROVE_AND_EXECUTE = "APPROVE_AND_EXECUTE"
    SET_CURRENT_STEP = "SET_CURRENT_STEP"
    UPDATE_STEP = "UPDATE_STEP"
    EXECUTION_FAILURE = "EXECUTION_FAILURE"
    COMPLETE_EXECUTION = "COMPLETE_EXECUTION"
    RESET = "RESET"


@dataclass(frozen=True)
class GeneratePlanStart:
    type: ClassVar[ActionType] = ActionType.GENERATE_PLAN_START


@dataclass(frozen=True)
class GeneratePlanStream:
    explanations_chunk: str

    type: ClassVar[ActionType] = ActionType.GENERATE_PLAN_STREAM


@dataclass(frozen=True)
class GeneratePlanSuccess:
    analysis: Analysis
    steps: Tuple[DeploymentStep, ...]
    policy_result: PolicyResult

    type: ClassVar[ActionType] = ActionType.GENERATE_PLAN_SUCCESS

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))


@dataclass(frozen=True)
class GeneratePlanFailure:
    error: str

    type: ClassVar[ActionType] = ActionType.GENERATE_PLAN_FAILURE


@dataclass(frozen=True)
class ApproveAndExecute:
    type: ClassVar[ActionType] = ActionType.APPROVE_AND_EXECUTE


@dataclass(frozen=True)
class SetCurrentStep:
    step_index: int

    type: ClassVar[ActionType] = ActionType.SET_CURRENT_STEP


@dataclass(frozen=True)
class UpdateStep:
    step_index: int
    new_status: StepStatus
    duration: Optional[float] = None

    type: ClassVar[ActionType] = ActionType.UPDATE_STEP


@dataclass(frozen=True)
class ExecutionFailure:
    error: str

    type: ClassVar[ActionType] = ActionType.EXECUTION_FAILURE


@dataclass(frozen=True)
class CompleteExecution:
    type: ClassVar[ActionType] = ActionType.COMPLETE_EXECUTION


@dataclass(frozen=True)
class Reset:
    type: ClassVar[ActionType] = ActionType.RESET


DeploymentPlanAction = Union[
    GeneratePlanStart,
    GeneratePlanStream,
    GeneratePlanSuccess,
    GeneratePlanFailure,
    ApproveAndExecute,
    SetCurrentStep,
    UpdateStep,
    ExecutionFailure,
    CompleteExecution,
    Reset,
]


def action_to_dict(action: DeploymentPlanAction) -> Dict[str, Any]:
    """Serialize an action to ``{"type": ..., "payload": {...}}``."""
    payload: Dict[str, Any] = {}
    if isinstance(action, GeneratePlanStream):
        payload = {"explanations_chunk": action.explanations_chunk}
    elif isinstance(action, GeneratePlanSuccess):
        payload = {
            "analysis": action.analysis.to_dict(),
            "steps": [step.to_dict() for step in action.steps],
            "policy_result": action.policy_result.to_dict(),
        }
    elif isinstance(action, (GeneratePlanFailure, ExecutionFailure)):
        payload = {"error": action.error}
    elif isinstance(action, SetCurrentStep):
        payload = {"step_index": action.step_index}
    elif isinstance(action, UpdateStep):
        payload = {"step_index": action.step_index, "new_status": action.new_status.value}
        if action.duration is not None:
            payload["duration"] = action.duration

    data: Dict[str, Any] = {"type": action.type.value}
    if payload:
        data["payload"] = payload
    return data


def action_from_dict(data: Dict[str, Any]) -> DeploymentPlanAction:
    """Inverse of :func:`action_to_dict`.

    Raises:
        ValueError: If the action type is unknown or its payload is malformed
    """
    try:
        action_type = ActionType(data.get("type"))
    except ValueError:
        raise ValueError(f"Unknown action type: {data.get('type')!r}") from None

    payload = data.get("payload") or {}
    try:
        if action_type == ActionType.GENERATE_PLAN_START:
            return GeneratePlanStart()
        if action_type == ActionType.GENERATE_PLAN_STREAM:
            return GeneratePlanStream(explanations_chunk=payload["explanations_chunk"])
        if action_type == ActionType.GENERATE_PLAN_SUCCESS:
            return GeneratePlanSuccess(
                analysis=Analysis.from_dict(payload["analysis"]),
                steps=tuple(DeploymentStep.from_dict(s) for s in payload["steps"]),
                policy_result=PolicyResult.from_dict(payload["policy_result"]),
            )
        if action_type == ActionType.GENERATE_PLAN_FAILURE:
            return GeneratePlanFailure(error=payload["error"])
        if action_type == ActionType.APPROVE_AND_EXECUTE:
            return ApproveAndExecute()
        if action_type == ActionType.SET_CURRENT_STEP:
            return SetCurrentStep(step_index=int(payload["step_index"]))
        if action_type == ActionType.UPDATE_STEP:
            return UpdateStep(
                step_index=int(payload["step_index"]),
                new_status=StepStatus(payload["new_status"]),
                duration=payload.get("duration"),
            )
        if action_type == ActionType.EXECUTION_FAILURE:
            return ExecutionFailure(error=payload["error"])
        if action_type == ActionType.COMPLETE_EXECUTION:
            return CompleteExecution()
        return Reset()
    except KeyError as exc:
        raise ValueError(f"Missing field {exc} in {action_type.value} payload") from None
