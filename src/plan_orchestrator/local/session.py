"""Local command execution session for step runners."""

from __future__ import annotations

import os
import platform
import subprocess
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass
class CommandResult:
    """Result of executing a step command."""
    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class LocalSession:
    """
    Local command execution session.

    Provides the same interface as SSHSession but executes commands locally
    with bash (or PowerShell on Windows).
    """

    def __init__(self, working_dir: Optional[str] = None, env: Optional[Dict[str, str]] = None) -> None:
        """
        Initialize local session.

        Args:
            working_dir: Working directory for commands. Defaults to home directory.
            env: Extra environment variables for every command
        """
        self.working_dir = working_dir or os.path.expanduser("~")
        self.extra_env = env or {}
        self.is_windows = platform.system() == "Windows"
        self._connected = False

    def connect(self) -> None:
        """No-op for local session (for API compatibility with SSHSession)."""
        self._connected = True

    def close(self) -> None:
        """No-op for local session (for API compatibility with SSHSession)."""
        self._connected = False

    def __enter__(self) -> "LocalSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_env(self) -> Dict[str, str]:
        env = os.environ.copy()
        env.update(self.extra_env)
        return env

    def run(self, command: str, *, timeout: Optional[int] = None) -> CommandResult:
        """
        Execute a command and wait for completion.

        Args:
            command: The command to execute
            timeout: Total timeout in seconds (default: 600)

        Returns:
            CommandResult with stdout, stderr and exit status. Timeouts and
            launch failures are reported with a negative exit status.
        """
        if timeout is None:
            timeout = 600  # 默认10分钟总超时

        if self.is_windows:
            args = ["powershell", "-Command", command]
            shell_kwargs = {}
        else:
            args = command
            shell_kwargs = {"shell": True, "executable": "/bin/bash"}

        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=self.working_dir,
                env=self._get_env(),
                **shell_kwargs,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=command,
                stdout="",
                stderr=f"Command timed out after {timeout} seconds",
                exit_status=-1,
            )
        except OSError as exc:
            return CommandResult(command=command, stdout="", stderr=str(exc), exit_status=-1)

        return CommandResult(
            command=command,
            stdout=result.stdout.strip(),
            stderr=result.stderr.strip(),
            exit_status=result.returncode,
        )
