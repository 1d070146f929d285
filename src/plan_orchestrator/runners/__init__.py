"""Step runners: the providers that carry out deployment steps."""

from .base import DryRunStepRunner, StepOutcome, StepRunner, create_step_runner
from .command import CommandStepRunner

__all__ = [
    "StepOutcome",
    "StepRunner",
    "DryRunStepRunner",
    "CommandStepRunner",
    "create_step_runner",
]
