"""Tests for the plan reducer."""

import pytest

from plan_orchestrator.orchestrator import (
    IDLE,
    Analysis,
    ApproveAndExecute,
    AwaitingApprovalState,
    CompleteExecution,
    CompletedState,
    DeploymentStep,
    ExecutionFailedState,
    ExecutionFailure,
    FailedState,
    GeneratePlanFailure,
    GeneratePlanStart,
    GeneratePlanStream,
    GeneratePlanSuccess,
    GeneratingState,
    IdleState,
    PartialAnalysis,
    PlanStatus,
    PolicyResult,
    Reset,
    RunningState,
    SafetyReport,
    SetCurrentStep,
    StepStatus,
    UpdateStep,
    reduce,
    replay,
)

ANALYSIS = Analysis(
    model="analysis-v0",
    actions=("build_artifact", "deploy_service"),
    explanations="build_artifact then deploy_service",
    confidence=0.9,
)
REPORT = SafetyReport(ok=True)
STEPS = (
    DeploymentStep(id="1", title="Build"),
    DeploymentStep(id="2", title="Deploy"),
)


def _plan_fields(steps=STEPS):
    return {"analysis": ANALYSIS, "steps": steps, "safety_report": REPORT}


def _success(steps=STEPS, requires_approval=False, notes=()):
    return GeneratePlanSuccess(
        analysis=ANALYSIS,
        steps=steps,
        policy_result=PolicyResult(requires_approval=requires_approval, notes=notes, safety_report=REPORT),
    )


ALL_STATES = [
    IDLE,
    GeneratingState(),
    GeneratingState(partial_analysis=PartialAnalysis("partial")),
    FailedState(error="boom"),
    AwaitingApprovalState(**_plan_fields()),
    RunningState(**_plan_fields(), current_step_index=1),
    ExecutionFailedState(**_plan_fields(), current_step_index=0, error="timeout"),
    CompletedState(**_plan_fields(), current_step_index=1),
]


class TestGeneration:
    def test_start_from_idle(self):
        state = reduce(IDLE, GeneratePlanStart())
        assert isinstance(state, GeneratingState)
        assert state.partial_analysis is None

    @pytest.mark.parametrize("state", [
        FailedState(error="boom"),
        CompletedState(**_plan_fields()),
        ExecutionFailedState(**_plan_fields(), error="x"),
    ])
    def test_start_from_terminal_states(self, state):
        assert isinstance(reduce(state, GeneratePlanStart()), GeneratingState)

    def test_stream_chunks_concatenate_in_order(self):
        state = reduce(IDLE, GeneratePlanStart())
        state = reduce(state, GeneratePlanStream("Analyzing "))
        state = reduce(state, GeneratePlanStream("risk..."))
        assert state.status == PlanStatus.GENERATING
        assert state.partial_analysis.explanations == "Analyzing risk..."

    def test_repeated_chunks_are_not_deduplicated(self):
        state = replay([GeneratePlanStart(), GeneratePlanStream("ab"), GeneratePlanStream("ab")])
        assert state.partial_analysis.explanations == "abab"

    def test_success_moves_to_awaiting_approval(self):
        state = reduce(GeneratingState(), _success(requires_approval=True, notes=("low confidence",)))
        assert isinstance(state, AwaitingApprovalState)
        assert state.analysis == ANALYSIS
        assert state.steps == STEPS
        assert state.requires_approval is True
        assert state.policy_notes == ("low confidence",)
        assert state.safety_report is REPORT

    def test_success_resets_step_status_to_pending(self):
        steps = (
            DeploymentStep(id="1", title="Build", status=StepStatus.COMPLETED, duration=1.5),
            DeploymentStep(id="2", title="Deploy"),
        )
        state = reduce(GeneratingState(), _success(steps=steps))
        assert [s.status for s in state.steps] == [StepStatus.PENDING, StepStatus.PENDING]
        assert state.steps[0].duration is None

    def test_failure_moves_to_failed(self):
        state = reduce(GeneratingState(), GeneratePlanFailure(error="provider down"))
        assert isinstance(state, FailedState)
        assert state.error == "provider down"

    def test_stream_after_terminal_action_is_ignored(self):
        state = replay([GeneratePlanStart(), GeneratePlanFailure(error="x")])
        assert reduce(state, GeneratePlanStream("late")) is state

    def test_start_while_generating_is_noop(self):
        state = GeneratingState(partial_analysis=PartialAnalysis("keep"))
        assert reduce(state, GeneratePlanStart()) is state


class TestApprovalAndExecution:
    def test_approve_starts_running_with_pending_steps(self):
        state = reduce(AwaitingApprovalState(**_plan_fields()), ApproveAndExecute())
        assert isinstance(state, RunningState)
        assert state.current_step_index == 0
        assert [s.status for s in state.steps] == [StepStatus.PENDING, StepStatus.PENDING]

    def test_set_current_step(self):
        state = reduce(RunningState(**_plan_fields()), SetCurrentStep(step_index=1))
        assert state.current_step_index == 1

    @pytest.mark.parametrize("index", [-1, 2, 99])
    def test_out_of_range_index_is_noop(self, index):
        state = RunningState(**_plan_fields())
        assert reduce(state, SetCurrentStep(step_index=index)) is state
        assert reduce(state, UpdateStep(step_index=index, new_status=StepStatus.RUNNING)) is state

    def test_update_step_records_duration_on_terminal_status(self):
        state = RunningState(**_plan_fields())
        state = reduce(state, UpdateStep(0, StepStatus.RUNNING, duration=3.0))
        assert state.steps[0].status == StepStatus.RUNNING
        assert state.steps[0].duration is None

        state = reduce(state, UpdateStep(0, StepStatus.COMPLETED, duration=3.0))
        assert state.steps[0].status == StepStatus.COMPLETED
        assert state.steps[0].duration == 3.0
        assert state.steps[1].status == StepStatus.PENDING

    def test_status_never_moves_backwards(self):
        steps = (DeploymentStep(id="1", title="Build", status=StepStatus.COMPLETED, duration=1.0),)
        state = RunningState(**_plan_fields(steps))
        assert reduce(state, UpdateStep(0, StepStatus.RUNNING)) is state
        assert reduce(state, UpdateStep(0, StepStatus.PENDING)) is state
        assert reduce(state, UpdateStep(0, StepStatus.FAILED)) is state

    def test_step_failure_then_execution_failure(self):
        steps = (
            DeploymentStep(id="1", title="Build", status=StepStatus.RUNNING),
            DeploymentStep(id="2", title="Deploy"),
        )
        state = RunningState(**_plan_fields(steps))
        state = reduce(state, UpdateStep(0, StepStatus.FAILED))
        state = reduce(state, ExecutionFailure(error="timeout"))

        assert isinstance(state, ExecutionFailedState)
        assert state.steps[0].status == StepStatus.FAILED
        assert state.steps[1].status == StepStatus.PENDING
        assert state.error == "timeout"

    def test_completing_every_step(self):
        state = RunningState(**_plan_fields())
        for index in range(len(STEPS)):
            state = reduce(state, UpdateStep(index, StepStatus.COMPLETED, duration=0.1))
        state = reduce(state, CompleteExecution())

        assert isinstance(state, CompletedState)
        assert all(step.status == StepStatus.COMPLETED for step in state.steps)


class TestTotality:
    @pytest.mark.parametrize("state", ALL_STATES)
    def test_reset_returns_idle_from_any_state(self, state):
        result = reduce(state, Reset())
        assert isinstance(result, IdleState)
        assert result.status == PlanStatus.IDLE

    @pytest.mark.parametrize("action", [
        GeneratePlanStream("x"),
        _success(),
        GeneratePlanFailure(error="x"),
        ApproveAndExecute(),
        SetCurrentStep(0),
        UpdateStep(0, StepStatus.RUNNING),
        ExecutionFailure(error="x"),
        CompleteExecution(),
    ])
    def test_illegal_actions_from_idle_are_noops(self, action):
        assert reduce(IDLE, action) is IDLE

    @pytest.mark.parametrize("state", [s for s in ALL_STATES if not isinstance(s, RunningState)])
    def test_execution_actions_outside_running_are_noops(self, state):
        for action in (SetCurrentStep(0), UpdateStep(0, StepStatus.COMPLETED), CompleteExecution()):
            assert reduce(state, action) is state

    def test_approve_outside_awaiting_is_noop(self):
        for state in ALL_STATES:
            if isinstance(state, AwaitingApprovalState):
                continue
            assert reduce(state, ApproveAndExecute()) is state


def test_replay_full_run():
    actions = [
        GeneratePlanStart(),
        GeneratePlanStream("Analyzing "),
        _success(),
        ApproveAndExecute(),
        SetCurrentStep(0),
        UpdateStep(0, StepStatus.RUNNING),
        UpdateStep(0, StepStatus.COMPLETED, duration=0.5),
        SetCurrentStep(1),
        UpdateStep(1, StepStatus.RUNNING),
        UpdateStep(1, StepStatus.COMPLETED, duration=0.7),
        CompleteExecution(),
    ]
    state = replay(actions)
    assert isinstance(state, CompletedState)
    assert state.current_step_index == 1
    assert [s.duration for s in state.steps] == [0.5, 0.7]


def test_replay_from_custom_initial_state():
    initial = AwaitingApprovalState(**_plan_fields())
    state = replay([ApproveAndExecute(), ExecutionFailure(error="x")], initial=initial)
    assert isinstance(state, ExecutionFailedState)
