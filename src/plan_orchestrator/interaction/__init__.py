"""Human approval module."""

from .handler import (
    ApprovalHandler,
    ApprovalResponse,
    AutoApprovalHandler,
    CallbackApprovalHandler,
    CLIApprovalHandler,
    create_approval_handler,
    format_plan_for_review,
)

__all__ = [
    "ApprovalHandler",
    "ApprovalResponse",
    "AutoApprovalHandler",
    "CallbackApprovalHandler",
    "CLIApprovalHandler",
    "create_approval_handler",
    "format_plan_for_review",
]
