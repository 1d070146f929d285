"""SSH session management built on Paramiko."""

from __future__ import annotations

import socket
from typing import Callable, Optional

import paramiko

from ..errors import ExecutionError, SSHConnectionError
from ..local.session import CommandResult
from .credentials import SSHCredentials


class SSHSession:
    """High-level wrapper around paramiko.SSHClient."""

    def __init__(
        self,
        credentials: SSHCredentials,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
    ) -> None:
        self.credentials = credentials
        self._client_factory = client_factory or paramiko.SSHClient
        self._client: Optional[paramiko.SSHClient] = None

    def __enter__(self) -> "SSHSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[override]
        self.close()

    def connect(self) -> None:
        if self._client:
            return
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            connect_kwargs = {
                "hostname": self.credentials.host,
                "port": self.credentials.port,
                "username": self.credentials.username,
                "timeout": self.credentials.timeout,
                "look_for_keys": False,
                "allow_agent": False,
            }
            if self.credentials.auth_method == "password":
                connect_kwargs["password"] = self.credentials.password
            else:
                connect_kwargs["key_filename"] = self.credentials.key_path
                if self.credentials.passphrase:
                    connect_kwargs["passphrase"] = self.credentials.passphrase
            client.connect(**connect_kwargs)
        except (paramiko.SSHException, OSError) as exc:  # pragma: no cover - network errors hard to simulate
            client.close()
            raise SSHConnectionError(str(exc)) from exc
        self._client = client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def run(self, command: str, *, timeout: Optional[int] = None) -> CommandResult:
        """
        Execute a command on the remote server and wait for it to finish.

        Args:
            command: The command to execute
            timeout: Total timeout in seconds (default: 600)

        Returns:
            CommandResult with command output and exit status
        """
        if not self._client:
            self.connect()
        assert self._client is not None

        if timeout is None:
            timeout = 600  # 默认10分钟总超时

        try:
            _stdin, stdout, stderr = self._client.exec_command(command, timeout=timeout)
        except paramiko.SSHException as exc:
            raise ExecutionError(f"Could not start remote command: {exc}") from exc
        stdout.channel.settimeout(float(timeout))
        try:
            exit_status = stdout.channel.recv_exit_status()
            stdout_text = stdout.read().decode("utf-8", errors="replace")
            stderr_text = stderr.read().decode("utf-8", errors="replace")
        except socket.timeout:
            stdout.channel.close()
            return CommandResult(
                command=command,
                stdout="",
                stderr=f"TIMEOUT: Command did not complete within {timeout} seconds.",
                exit_status=-1,
            )
        except (paramiko.SSHException, EOFError, OSError) as exc:
            # 通道在命令执行中断开
            raise ExecutionError(f"Remote command '{command}' was interrupted: {exc}") from exc

        return CommandResult(
            command=command,
            stdout=stdout_text.strip(),
            stderr=stderr_text.strip(),
            exit_status=exit_status,
        )
