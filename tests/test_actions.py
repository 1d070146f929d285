"""Tests for action and model serialization used by the journal."""

import pytest

from plan_orchestrator.orchestrator import (
    Analysis,
    BiasIssue,
    DeploymentStep,
    FactualityIssue,
    GeneratePlanStart,
    GeneratePlanSuccess,
    PolicyResult,
    Reset,
    SafetyReport,
    SafetyScores,
    SafetyThresholds,
    StepStatus,
    ToxicityIssue,
    UpdateStep,
    action_from_dict,
    action_to_dict,
)
from plan_orchestrator.orchestrator.models import issue_from_dict


def _success_action():
    report = SafetyReport(
        ok=False,
        issues=(
            ToxicityIssue(score=0.6, threshold=0.5, details="too rude"),
            BiasIssue(score=0.7, threshold=0.5, dimension="certainty"),
            FactualityIssue(consistency=0.5, threshold=0.6, missing_evidence=["drop_table"]),
        ),
        notes=("toxicity: 0.60 > 0.50 (violation)",),
        scores=SafetyScores(toxicity=0.6, bias=0.7, factuality=0.5),
        thresholds=SafetyThresholds(toxicity=0.5, bias=0.5, factuality=None),
    )
    return GeneratePlanSuccess(
        analysis=Analysis(model="m", actions=["deploy", "drop_table"], explanations="deploy", confidence=0.4),
        steps=[DeploymentStep(id="1", title="Deploy", command="make deploy")],
        policy_result=PolicyResult(requires_approval=True, notes=("a", "b"), safety_report=report),
    )


def test_success_action_survives_a_dict_round_trip():
    action = _success_action()
    data = action_to_dict(action)

    assert data["type"] == "GENERATE_PLAN_SUCCESS"
    assert data["payload"]["steps"] == [
        {"id": "1", "title": "Deploy", "status": "pending", "command": "make deploy"}
    ]
    assert data["payload"]["policy_result"]["safety_report"]["issues"][2] == {
        "kind": "factuality",
        "consistency": 0.5,
        "threshold": 0.6,
        "missing_evidence": ["drop_table"],
    }
    assert action_from_dict(data) == action


def test_payloadless_actions_have_no_payload_key():
    assert action_to_dict(GeneratePlanStart()) == {"type": "GENERATE_PLAN_START"}
    assert action_to_dict(Reset()) == {"type": "RESET"}


def test_update_step_omits_missing_duration():
    assert action_to_dict(UpdateStep(1, StepStatus.RUNNING)) == {
        "type": "UPDATE_STEP",
        "payload": {"step_index": 1, "new_status": "running"},
    }
    decoded = action_from_dict({
        "type": "UPDATE_STEP",
        "payload": {"step_index": "2", "new_status": "completed", "duration": 1.25},
    })
    assert decoded == UpdateStep(2, StepStatus.COMPLETED, 1.25)


def test_unknown_action_type():
    with pytest.raises(ValueError, match="Unknown action type"):
        action_from_dict({"type": "LAUNCH_ROCKET"})


def test_missing_payload_field():
    with pytest.raises(ValueError, match="Missing field"):
        action_from_dict({"type": "EXECUTION_FAILURE", "payload": {}})


def test_unknown_issue_kind():
    with pytest.raises(ValueError):
        issue_from_dict({"kind": "profanity", "score": 1.0, "threshold": 0.1})


def test_step_with_status_drops_duration_for_non_terminal():
    step = DeploymentStep(id="1", title="Build")
    assert step.with_status(StepStatus.RUNNING, 5.0).duration is None
    assert step.with_status(StepStatus.FAILED, 5.0).duration == 5.0
