"""Exception hierarchy for the plan orchestrator.

Exceptions are raised by providers and runners only. The generator and the
step executor turn them into actions, so none of them ever reaches the reducer.
"""

from __future__ import annotations


class PlanOrchestratorError(RuntimeError):
    """Base class for all orchestrator errors."""

    pass


class GenerationError(PlanOrchestratorError):
    """Raised when an analysis could not be generated or parsed."""

    pass


class LLMProviderError(GenerationError):
    """Raised when the LLM endpoint fails or returns nothing usable."""

    pass


class ExecutionError(PlanOrchestratorError):
    """Raised by a step runner when a deployment step cannot be carried out."""

    pass


class SSHConnectionError(ExecutionError):
    """Raised when an SSH connection cannot be established."""

    pass
