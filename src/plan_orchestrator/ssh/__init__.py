"""SSH utilities for remote step execution."""

from .credentials import SSHCredentials
from .session import SSHSession

__all__ = [
    "SSHCredentials",
    "SSHSession",
]
