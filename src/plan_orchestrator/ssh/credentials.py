"""SSH credential helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..config import ExecutionConfig


@dataclass
class SSHCredentials:
    """Normalized credential payload from CLI/config."""

    host: str
    username: str
    port: int = 22
    auth_method: str = "password"
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None
    timeout: int = 20

    @classmethod
    def from_config(cls, config: "ExecutionConfig") -> "SSHCredentials":
        if not config.host or not config.username:
            raise ValueError("SSH execution requires execution.host and execution.username")
        auth_method = config.auth_method or ("key" if config.key_path else "password")
        credentials = cls(
            host=config.host,
            username=config.username,
            port=config.port,
            auth_method=auth_method,
            password=config.password,
            key_path=config.key_path,
        )
        credentials.validate()
        return credentials

    def validate(self) -> None:
        if self.auth_method == "password" and not self.password:
            raise ValueError("Password authentication selected but no password provided")
        if self.auth_method == "key" and not self.key_path:
            raise ValueError("Key authentication selected but no key_path provided")
