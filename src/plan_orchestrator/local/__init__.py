"""Local execution module for running deployment steps on the current machine."""

from .session import CommandResult, LocalSession

__all__ = ["CommandResult", "LocalSession"]
