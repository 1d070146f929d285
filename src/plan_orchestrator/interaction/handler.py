"""Human approval handlers for plans awaiting approval."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from ..orchestrator.models import AwaitingApprovalState

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResponse:
    """A reviewer's decision on a plan."""

    approved: bool
    comment: Optional[str] = None
    cancelled: bool = False

    @classmethod
    def cancelled_response(cls) -> "ApprovalResponse":
        return cls(approved=False, cancelled=True)


def format_plan_for_review(state: AwaitingApprovalState) -> str:
    """Format a plan awaiting approval as a readable review prompt."""
    report = state.safety_report
    lines = [
        "",
        "=" * 60,
        "📋 DEPLOYMENT PLAN REVIEW",
        "=" * 60,
        f"Model:      {state.analysis.model}",
        f"Confidence: {state.analysis.confidence:.2f}",
        f"Actions:    {', '.join(state.analysis.actions) or '(none)'}",
        f"Safety:     {'✅ passed' if report.ok else '⚠️ issues found'}",
    ]

    for issue in report.issues:
        lines.append(f"   - [{issue.kind}] {issue.details or ''}".rstrip())

    if state.policy_notes:
        lines.append("")
        lines.append("⚠️  Policy notes:")
        for note in state.policy_notes:
            lines.append(f"   - {note}")

    lines.append("")
    lines.append("📍 Steps:")
    for i, step in enumerate(state.steps, 1):
        suffix = f"  $ {step.command}" if step.command else ""
        lines.append(f"   {i}. {step.title}{suffix}")

    if state.analysis.explanations:
        lines.append("")
        lines.append("💭 Analysis:")
        for line in state.analysis.explanations.splitlines():
            lines.append(f"   {line}")

    lines.append("=" * 60)
    return "\n".join(lines)


class ApprovalHandler(ABC):
    """Abstract base class for approval handlers."""

    @abstractmethod
    def request_approval(self, state: AwaitingApprovalState) -> ApprovalResponse:
        """
        Present a plan to the reviewer and get their decision.

        Args:
            state: The plan awaiting approval

        Returns:
            The reviewer's response
        """
        pass


class CLIApprovalHandler(ApprovalHandler):
    """Command-line approval prompt."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output_func: Callable[[str], None] = print,
    ) -> None:
        self.input_func = input_func
        self.output_func = output_func

    def request_approval(self, state: AwaitingApprovalState) -> ApprovalResponse:
        self.output_func(format_plan_for_review(state))
        default = "n" if state.requires_approval else "y"

        try:
            while True:
                answer = self.input_func(f"\n   Approve and execute? [y/n] (默认: {default}): ").strip().lower()
                if not answer:
                    answer = default
                if answer in ("y", "yes", "是"):
                    return ApprovalResponse(approved=True)
                if answer in ("n", "no", "否"):
                    comment = self.input_func("   Reason (optional): ").strip() or None
                    return ApprovalResponse(approved=False, comment=comment)
                self.output_func("   ❌ 请输入 y 或 n")
        except (KeyboardInterrupt, EOFError):
            self.output_func("\n   (已取消)")
            return ApprovalResponse.cancelled_response()


class CallbackApprovalHandler(ApprovalHandler):
    """
    Approval handler that delegates to a callback.
    Useful for GUI or web interfaces.
    """

    def __init__(self, callback: Callable[[AwaitingApprovalState], ApprovalResponse]) -> None:
        self.callback = callback

    def request_approval(self, state: AwaitingApprovalState) -> ApprovalResponse:
        return self.callback(state)


class AutoApprovalHandler(ApprovalHandler):
    """
    Non-interactive handler with a fixed decision, for CI and tests.
    """

    def __init__(self, approve: bool = False) -> None:
        self.approve = approve

    def request_approval(self, state: AwaitingApprovalState) -> ApprovalResponse:
        logger.info(
            "[AUTO MODE] %s plan with %d steps",
            "Approving" if self.approve else "Rejecting",
            len(state.steps),
        )
        return ApprovalResponse(approved=self.approve, comment="auto")


def create_approval_handler(mode: str, auto_response: str = "reject") -> ApprovalHandler:
    """Create the approval handler for an ``interaction.mode`` setting."""
    mode = mode.lower()
    if mode == "cli":
        return CLIApprovalHandler()
    if mode == "auto":
        return AutoApprovalHandler(approve=auto_response.lower() == "approve")
    raise ValueError(f"Unsupported interaction mode: {mode}. Supported modes: cli, auto")
