"""Step executor: runs the steps of an approved plan one at a time."""

from __future__ import annotations

import logging
import time

from ..errors import ExecutionError
from ..runners.base import StepOutcome, StepRunner
from .actions import CompleteExecution, ExecutionFailure, SetCurrentStep, UpdateStep
from .models import RunningState, StepStatus
from .store import PlanStore

logger = logging.getLogger(__name__)


class StepExecutor:
    """
    步骤执行器

    只在 running 状态下工作。严格顺序执行：第 i 步结束前不会开始第 i+1 步；
    任意一步失败即派发 EXECUTION_FAILURE，后续步骤不再尝试。
    """

    def __init__(self, store: PlanStore, runner: StepRunner) -> None:
        self.store = store
        self.runner = runner

    def execute(self) -> bool:
        """
        Execute every step of the running plan.

        Returns:
            bool: True if COMPLETE_EXECUTION was applied
        """
        state = self.store.state
        if not isinstance(state, RunningState):
            logger.warning("Step executor called while %s; nothing to do", state.status.value)
            return False
        epoch = self.store.epoch
        total = len(state.steps)

        for index in range(state.current_step_index, total):
            if self._cancelled(epoch):
                logger.info("Execution cancelled before step %d", index + 1)
                return False

            step = self.store.state.steps[index]
            if step.status == StepStatus.COMPLETED:
                continue

            self.store.dispatch(SetCurrentStep(step_index=index))
            self.store.dispatch(UpdateStep(step_index=index, new_status=StepStatus.RUNNING))
            logger.info("📍 Step %d/%d: %s", index + 1, total, step.title)

            started = time.monotonic()
            try:
                outcome = self.runner.run(step)
            except ExecutionError as exc:
                outcome = StepOutcome.failed(error=str(exc))
            except Exception as exc:
                # 任何运行器异常都必须落为 execution_failed，不能让计划停在 running
                logger.exception("Step runner raised an unexpected error on step %d", index + 1)
                outcome = StepOutcome.failed(error=f"{type(exc).__name__}: {exc}")
            duration = outcome.duration if outcome.duration is not None else time.monotonic() - started

            if self._cancelled(epoch):
                logger.info("Execution cancelled while step %d was running", index + 1)
                return False

            if outcome.success:
                self.store.dispatch(UpdateStep(
                    step_index=index, new_status=StepStatus.COMPLETED, duration=duration
                ))
                logger.info("   ✅ Completed in %.2fs", duration)
                continue

            error = outcome.error or f"Step '{step.title}' failed"
            self.store.dispatch(UpdateStep(
                step_index=index, new_status=StepStatus.FAILED, duration=duration
            ))
            logger.error("   ❌ Step failed: %s", error)
            self.store.dispatch(ExecutionFailure(error=error))
            return False

        if self._cancelled(epoch):
            return False
        self.store.dispatch(CompleteExecution())
        logger.info("🎉 All %d steps completed", total)
        return True

    def _cancelled(self, epoch: int) -> bool:
        return self.store.epoch != epoch or not isinstance(self.store.state, RunningState)
