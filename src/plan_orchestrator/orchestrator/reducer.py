"""Plan reducer: the single transition function of the orchestrator.

``reduce(state, action)`` is pure and total. Any state/action pair that is not
a legal transition returns the input state object itself, so callers can test
for a no-op with ``is``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .actions import (
    ApproveAndExecute,
    CompleteExecution,
    DeploymentPlanAction,
    ExecutionFailure,
    GeneratePlanFailure,
    GeneratePlanStart,
    GeneratePlanStream,
    GeneratePlanSuccess,
    Reset,
    SetCurrentStep,
    UpdateStep,
)
from .models import (
    IDLE,
    AwaitingApprovalState,
    CompletedState,
    DeploymentPlanState,
    ExecutionFailedState,
    FailedState,
    GeneratingState,
    IdleState,
    PartialAnalysis,
    RunningState,
    StepStatus,
    can_transition,
)

# 可以重新开始生成的状态
_RESTARTABLE = (IdleState, FailedState, CompletedState, ExecutionFailedState)


def reduce(state: DeploymentPlanState, action: DeploymentPlanAction) -> DeploymentPlanState:
    """Apply ``action`` to ``state`` and return the next state."""
    if isinstance(action, Reset):
        return IDLE

    if isinstance(state, _RESTARTABLE):
        if isinstance(action, GeneratePlanStart):
            return GeneratingState()
        return state

    if isinstance(state, GeneratingState):
        return _reduce_generating(state, action)

    if isinstance(state, AwaitingApprovalState):
        if isinstance(action, ApproveAndExecute):
            return RunningState(
                analysis=state.analysis,
                steps=state.steps,
                safety_report=state.safety_report,
                current_step_index=0,
            )
        return state

    if isinstance(state, RunningState):
        return _reduce_running(state, action)

    return state


def _reduce_generating(state: GeneratingState, action: DeploymentPlanAction) -> DeploymentPlanState:
    if isinstance(action, GeneratePlanStream):
        previous = state.partial_analysis.explanations if state.partial_analysis else ""
        return GeneratingState(
            partial_analysis=PartialAnalysis(explanations=previous + action.explanations_chunk)
        )

    if isinstance(action, GeneratePlanSuccess):
        policy = action.policy_result
        # 新生成的计划中所有步骤都从 pending 开始
        steps = tuple(
            step if step.status == StepStatus.PENDING and step.duration is None
            else step.with_status(StepStatus.PENDING)
            for step in action.steps
        )
        return AwaitingApprovalState(
            analysis=action.analysis,
            steps=steps,
            safety_report=policy.safety_report,
            policy_notes=tuple(policy.notes),
            requires_approval=policy.requires_approval,
        )

    if isinstance(action, GeneratePlanFailure):
        return FailedState(error=action.error)

    return state


def _reduce_running(state: RunningState, action: DeploymentPlanAction) -> DeploymentPlanState:
    if isinstance(action, SetCurrentStep):
        if not _in_range(state, action.step_index):
            return state
        return RunningState(
            analysis=state.analysis,
            steps=state.steps,
            safety_report=state.safety_report,
            current_step_index=action.step_index,
        )

    if isinstance(action, UpdateStep):
        if not _in_range(state, action.step_index):
            return state
        current = state.steps[action.step_index]
        if not can_transition(current.status, action.new_status):
            return state
        steps = list(state.steps)
        steps[action.step_index] = current.with_status(action.new_status, action.duration)
        return RunningState(
            analysis=state.analysis,
            steps=tuple(steps),
            safety_report=state.safety_report,
            current_step_index=state.current_step_index,
        )

    if isinstance(action, ExecutionFailure):
        return ExecutionFailedState(
            analysis=state.analysis,
            steps=state.steps,
            safety_report=state.safety_report,
            current_step_index=state.current_step_index,
            error=action.error,
        )

    if isinstance(action, CompleteExecution):
        return CompletedState(
            analysis=state.analysis,
            steps=state.steps,
            safety_report=state.safety_report,
            current_step_index=state.current_step_index,
        )

    return state


def _in_range(state: RunningState, index: int) -> bool:
    return 0 <= index < len(state.steps)


def replay(
    actions: Iterable[DeploymentPlanAction],
    initial: Optional[DeploymentPlanState] = None,
) -> DeploymentPlanState:
    """Fold ``actions`` through :func:`reduce`, starting from ``initial`` (idle by default)."""
    state: DeploymentPlanState = IDLE if initial is None else initial
    for action in actions:
        state = reduce(state, action)
    return state
