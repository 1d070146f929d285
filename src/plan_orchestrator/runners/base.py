"""Step runner interface and factory."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..config import ExecutionConfig
    from ..orchestrator.models import DeploymentStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepOutcome:
    """Result reported by a step runner."""
    success: bool
    error: Optional[str] = None
    duration: Optional[float] = None  # 秒；为空时由执行器自行计时
    output: str = ""

    @classmethod
    def succeeded(cls, output: str = "", duration: Optional[float] = None) -> "StepOutcome":
        return cls(success=True, output=output, duration=duration)

    @classmethod
    def failed(cls, error: str, output: str = "", duration: Optional[float] = None) -> "StepOutcome":
        return cls(success=False, error=error, output=output, duration=duration)


class StepRunner(Protocol):
    """Performs the actual deployment action for one step."""

    def run(self, step: "DeploymentStep") -> StepOutcome:
        ...


class DryRunStepRunner:
    """Simulates every step as successful without side effects."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay

    def run(self, step: "DeploymentStep") -> StepOutcome:
        logger.info("   (dry-run) %s%s", step.title, f" -> {step.command}" if step.command else "")
        if self.delay:
            time.sleep(self.delay)
        return StepOutcome.succeeded(output="dry-run")


def create_step_runner(config: "ExecutionConfig") -> StepRunner:
    """
    Factory function to create the step runner for the configured mode.

    Raises:
        ValueError: If the mode is not supported or SSH settings are incomplete
    """
    mode = config.mode.lower()
    if mode == "dry-run":
        return DryRunStepRunner(delay=config.dry_run_delay)
    if mode == "local":
        from ..local import LocalSession
        from .command import CommandStepRunner
        return CommandStepRunner(LocalSession(working_dir=config.working_dir), timeout=config.step_timeout)
    if mode == "ssh":
        from ..ssh import SSHCredentials, SSHSession
        from .command import CommandStepRunner
        session = SSHSession(SSHCredentials.from_config(config))
        return CommandStepRunner(session, timeout=config.step_timeout)
    raise ValueError(f"Unsupported execution mode: {config.mode}. Supported modes: dry-run, local, ssh")
