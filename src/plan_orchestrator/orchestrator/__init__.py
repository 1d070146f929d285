"""Orchestrator module for the deployment plan state machine.

This module provides:
- reduce/replay: The pure transition function and its fold over an action log
- PlanStore: Single writer of the plan state, with ordered dispatch
- PlanGenerator: Streams an analysis and runs the safety/policy checks once
- StepExecutor: Executes the steps of an approved plan sequentially
- DeploymentPlanOrchestrator: Wires the pieces together, with an action journal
"""

from .actions import (
    ActionType,
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
    action_from_dict,
    action_to_dict,
)
from .generator import PlanGenerator
from .journal import ActionJournal, load_actions, load_journal
from .models import (
    IDLE,
    Analysis,
    AwaitingApprovalState,
    BiasIssue,
    CompletedState,
    DeploymentPlanState,
    DeploymentStep,
    ExecutionFailedState,
    FactualityIssue,
    FailedState,
    GeneratingState,
    IdleState,
    PartialAnalysis,
    PlanStatus,
    PolicyResult,
    RunningState,
    SafetyIssue,
    SafetyReport,
    SafetyScores,
    SafetyThresholds,
    StepStatus,
    ToxicityIssue,
    state_to_dict,
)
from .orchestrator import DeploymentPlanOrchestrator
from .policy import PolicyDecision, PolicyGate
from .reducer import reduce, replay
from .safety import HeuristicSafetyScorer, SafetyMeasurement, evaluate, thresholds_from_config
from .step_executor import StepExecutor
from .store import PlanStore

__all__ = [
    # Actions
    "ActionType",
    "ApproveAndExecute",
    "CompleteExecution",
    "DeploymentPlanAction",
    "ExecutionFailure",
    "GeneratePlanFailure",
    "GeneratePlanStart",
    "GeneratePlanStream",
    "GeneratePlanSuccess",
    "Reset",
    "SetCurrentStep",
    "UpdateStep",
    "action_from_dict",
    "action_to_dict",
    # Models
    "IDLE",
    "Analysis",
    "AwaitingApprovalState",
    "BiasIssue",
    "CompletedState",
    "DeploymentPlanState",
    "DeploymentStep",
    "ExecutionFailedState",
    "FactualityIssue",
    "FailedState",
    "GeneratingState",
    "IdleState",
    "PartialAnalysis",
    "PlanStatus",
    "PolicyResult",
    "RunningState",
    "SafetyIssue",
    "SafetyReport",
    "SafetyScores",
    "SafetyThresholds",
    "StepStatus",
    "ToxicityIssue",
    "state_to_dict",
    # Components
    "reduce",
    "replay",
    "PlanStore",
    "PlanGenerator",
    "StepExecutor",
    "PolicyGate",
    "PolicyDecision",
    "evaluate",
    "HeuristicSafetyScorer",
    "thresholds_from_config",
    "SafetyMeasurement",
    "ActionJournal",
    "load_actions",
    "load_journal",
    "DeploymentPlanOrchestrator",
]
