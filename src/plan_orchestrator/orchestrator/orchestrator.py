"""Deployment plan orchestrator: wires generation, approval and execution together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

from ..config import AppConfig
from ..paths import JOURNAL_DIR
from .actions import ApproveAndExecute, DeploymentPlanAction, Reset
from .generator import PlanGenerator
from .journal import ActionJournal
from .models import AwaitingApprovalState, DeploymentPlanState, RunningState
from .policy import PolicyGate
from .safety import SafetyScorer, thresholds_from_config
from .step_executor import StepExecutor
from .store import Listener, PlanStore

if TYPE_CHECKING:
    from ..interaction import ApprovalHandler
    from ..llm.analyst import ChangeAnalyst, ChangeRequest
    from ..runners import StepRunner

logger = logging.getLogger(__name__)


class DeploymentPlanOrchestrator:
    """
    部署计划编排器

    持有唯一的 PlanStore；生成器、执行器和审批处理器都只通过派发动作与之交互。
    """

    def __init__(
        self,
        config: AppConfig,
        analyst: Optional["ChangeAnalyst"] = None,
        runner: Optional["StepRunner"] = None,
        approval_handler: Optional["ApprovalHandler"] = None,
        store: Optional[PlanStore] = None,
        scorer: Optional[SafetyScorer] = None,
        journal_dir: Optional[str] = None,
        journal_enabled: bool = True,
    ) -> None:
        self.config = config
        self.store = store or PlanStore()

        if analyst is None:
            from ..llm.analyst import ChangeAnalyst
            analyst = ChangeAnalyst.from_config(config.llm)
        if runner is None:
            from ..runners import create_step_runner
            runner = create_step_runner(config.execution)
        if approval_handler is None:
            from ..interaction import create_approval_handler
            approval_handler = create_approval_handler(
                config.interaction.mode, config.interaction.auto_response
            )

        self.approval_handler = approval_handler
        self.policy_gate = PolicyGate.from_config(config.policy)
        self.generator = PlanGenerator(
            store=self.store,
            analyst=analyst,
            thresholds=thresholds_from_config(config.safety),
            policy_gate=self.policy_gate,
            scorer=scorer,
        )
        self.executor = StepExecutor(self.store, runner)

        self.journal_enabled = journal_enabled
        self.journal_dir = Path(journal_dir or config.execution.journal_dir or JOURNAL_DIR)
        self.journal: Optional[ActionJournal] = None

    @property
    def state(self) -> DeploymentPlanState:
        return self.store.state

    def dispatch(self, action: DeploymentPlanAction) -> DeploymentPlanState:
        return self.store.dispatch(action)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    def generate_plan(self, request: "ChangeRequest") -> DeploymentPlanState:
        self.generator.generate(request)
        return self.state

    def approve_and_execute(self) -> DeploymentPlanState:
        self.store.dispatch(ApproveAndExecute())
        if isinstance(self.state, RunningState):
            self.executor.execute()
        else:
            logger.warning("Nothing to approve in state %s", self.state.status.value)
        return self.state

    def reset(self) -> DeploymentPlanState:
        return self.store.dispatch(Reset())

    def run(self, request: "ChangeRequest") -> DeploymentPlanState:
        """
        Generate a plan, obtain approval and execute it.

        Returns:
            The final plan state
        """
        if self.journal_enabled:
            self.journal = ActionJournal.create(
                self.journal_dir,
                metadata={"change": request.summary, "target": request.target},
            )
            self.journal.attach(self.store)

        try:
            logger.info("")
            logger.info("=" * 60)
            logger.info("🚀 DEPLOYMENT PLAN ORCHESTRATION")
            logger.info("=" * 60)

            state = self.generate_plan(request)
            if not isinstance(state, AwaitingApprovalState):
                return state

            if not state.requires_approval and self.config.policy.auto_approve:
                # 自动审批仍然派发显式的 APPROVE_AND_EXECUTE，保证可审计
                logger.info("✅ Policy gate cleared the plan; auto-approving")
                self._annotate(decision="auto_approved")
                return self.approve_and_execute()

            response = self.approval_handler.request_approval(state)
            if response.approved:
                logger.info("👍 Plan approved")
                self._annotate(decision="approved", comment=response.comment)
                return self.approve_and_execute()

            decision = "cancelled" if response.cancelled else "rejected"
            logger.info("🛑 Plan %s; leaving it awaiting approval", decision)
            self._annotate(decision=decision, comment=response.comment)
            return self.state
        finally:
            if self.journal:
                self.journal.finalize()

    def _annotate(self, **metadata) -> None:
        if self.journal:
            self.journal.annotate(**metadata)
