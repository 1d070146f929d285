"""Plan generator: drives a streamed analysis into store dispatches."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from ..errors import GenerationError
from .actions import GeneratePlanFailure, GeneratePlanStart, GeneratePlanStream, GeneratePlanSuccess
from .models import GeneratingState, SafetyThresholds
from .policy import PolicyGate
from .safety import SafetyScorer, evaluate
from .store import PlanStore

if TYPE_CHECKING:
    from ..llm.analyst import ChangeAnalyst, ChangeRequest

logger = logging.getLogger(__name__)


class PlanGenerator:
    """
    计划生成器

    1. 派发 GENERATE_PLAN_START
    2. 每收到一段说明文本就派发一次 GENERATE_PLAN_STREAM（保持到达顺序）
    3. 流结束后运行一次安全评估和策略门，派发 SUCCESS 或 FAILURE
    """

    def __init__(
        self,
        store: PlanStore,
        analyst: "ChangeAnalyst",
        thresholds: SafetyThresholds,
        policy_gate: PolicyGate,
        scorer: Optional[SafetyScorer] = None,
    ) -> None:
        self.store = store
        self.analyst = analyst
        self.thresholds = thresholds
        self.policy_gate = policy_gate
        self.scorer = scorer

    def generate(self, request: "ChangeRequest") -> bool:
        """
        Generate a plan for ``request``.

        Returns:
            bool: True if GENERATE_PLAN_SUCCESS was applied
        """
        self.store.dispatch(GeneratePlanStart())
        if not isinstance(self.store.state, GeneratingState):
            logger.warning(
                "Cannot start generation while %s; reset first", self.store.state.status.value
            )
            return False
        epoch = self.store.epoch

        logger.info("🧠 Generating analysis for: %s", request.summary)
        try:
            stream = self.analyst.stream(request)
            for chunk in stream:
                if self._cancelled(epoch):
                    logger.info("Generation cancelled; dropping remaining stream")
                    return False
                self.store.dispatch(GeneratePlanStream(explanations_chunk=chunk))
            draft = stream.finalize()
            if self._cancelled(epoch):
                logger.info("Generation cancelled before completion")
                return False

            report = evaluate(draft.analysis, self.thresholds, self.scorer)
            policy_result = self.policy_gate.evaluate(draft.analysis, report)
        except GenerationError as exc:
            return self._fail(epoch, str(exc))
        except Exception as exc:
            # 分析器、评分器或策略门的意外异常同样结束本次生成
            if not self._cancelled(epoch):
                logger.exception("Unexpected error while generating plan")
            return self._fail(epoch, f"{type(exc).__name__}: {exc}")

        if not report.ok:
            logger.warning(
                "⚠️ Safety issues: %s", ", ".join(issue.kind for issue in report.issues)
            )

        self.store.dispatch(GeneratePlanSuccess(
            analysis=draft.analysis,
            steps=draft.steps,
            policy_result=policy_result,
        ))
        logger.info(
            "✅ Plan ready: %d steps, confidence %.2f, approval %s",
            len(draft.steps),
            draft.analysis.confidence,
            "required" if policy_result.requires_approval else "not required",
        )
        return True

    def _fail(self, epoch: int, error: str) -> bool:
        if self._cancelled(epoch):
            return False
        logger.error("❌ Plan generation failed: %s", error)
        self.store.dispatch(GeneratePlanFailure(error=error))
        return False

    def _cancelled(self, epoch: int) -> bool:
        return self.store.epoch != epoch or not isinstance(self.store.state, GeneratingState)
