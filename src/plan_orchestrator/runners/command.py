"""Step runner that executes each step's shell command through a session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Union

import paramiko

from ..errors import ExecutionError
from .base import StepOutcome

if TYPE_CHECKING:
    from ..local import LocalSession
    from ..orchestrator.models import DeploymentStep
    from ..ssh import SSHSession

logger = logging.getLogger(__name__)

_STDERR_EXCERPT = 500


class CommandStepRunner:
    """
    命令步骤执行器

    通过 LocalSession 或 SSHSession 执行 ``step.command``；
    没有命令的步骤视为人工/占位步骤，直接成功。
    """

    def __init__(self, session: Union["LocalSession", "SSHSession"], timeout: int = 600) -> None:
        self.session = session
        self.timeout = timeout

    def run(self, step: "DeploymentStep") -> StepOutcome:
        if not step.command:
            logger.info("   No command for step '%s'; marking as done", step.title)
            return StepOutcome.succeeded(output="no command")

        logger.info("   🔧 %s", step.command)
        try:
            result = self.session.run(step.command, timeout=self.timeout)
        except (OSError, EOFError, paramiko.SSHException) as exc:
            raise ExecutionError(f"Could not run '{step.command}': {exc}") from exc

        status = "✓" if result.ok else "✗"
        logger.info("      %s Exit code: %s", status, result.exit_status)
        if result.ok:
            return StepOutcome.succeeded(output=result.stdout)

        stderr = result.stderr[:_STDERR_EXCERPT] if result.stderr else ""
        error = f"Step '{step.title}' exited with status {result.exit_status}"
        if stderr:
            error = f"{error}: {stderr}"
        return StepOutcome.failed(error=error, output=result.stdout)
