"""Configuration loading utilities for the plan orchestrator."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")
_ENV_PREFIX = "PLAN_ORCHESTRATOR"

# 提供商默认配置：当用户未指定 model 或 endpoint 时使用
PROVIDER_DEFAULTS = {
    "gemini": {
        "model": "gemini-2.5-flash",
        "endpoint": None  # 自动生成 endpoint
    },
    "openai": {
        "model": "gpt-4o",
        "endpoint": "https://api.openai.com/v1"
    },
    "deepseek": {
        "model": "deepseek-chat",
        "endpoint": "https://api.deepseek.com/v1"
    },
    "openrouter": {
        "model": "anthropic/claude-3.5-sonnet",
        "endpoint": "https://openrouter.ai/api/v1"
    },
    "openai-compatible": {
        "model": None,  # 依赖用户配置
        "endpoint": None  # 必须由用户指定
    },
}


@dataclass
class LLMConfig:
    """Configuration for the analysis model."""

    provider: str = "dummy"
    model: str = "analysis-v0"
    api_key: Optional[str] = None
    endpoint: Optional[str] = None
    temperature: float = 0.0
    proxy: Optional[str] = None  # 代理设置，如 "http://127.0.0.1:7890"
    timeout: int = 120


@dataclass
class SafetyConfig:
    """Per-dimension limits. ``None`` leaves a dimension unchecked."""

    toxicity_threshold: Optional[float] = 0.3
    bias_threshold: Optional[float] = 0.5
    factuality_threshold: Optional[float] = 0.6


@dataclass
class PolicyConfig:
    """Rules applied by the policy gate."""

    confidence_floor: float = 0.8
    high_risk_actions: List[str] = field(default_factory=lambda: [
        "drop_*",
        "*delete*",
        "*destroy*",
        "truncate_*",
        "force_push",
        "migrate_down",
        "rollback_*",
    ])
    # 为 True 时，若策略门判定无需审批，则由编排器自动派发 APPROVE_AND_EXECUTE
    auto_approve: bool = False


@dataclass
class ExecutionConfig:
    """Settings related to step execution."""

    mode: str = "dry-run"  # "dry-run" | "local" | "ssh"
    step_timeout: int = 600
    working_dir: Optional[str] = None
    dry_run_delay: float = 0.0
    journal_dir: Optional[str] = None
    host: Optional[str] = None
    port: int = 22
    username: Optional[str] = None
    auth_method: Optional[str] = None
    password: Optional[str] = None
    key_path: Optional[str] = None


@dataclass
class InteractionConfig:
    """Configuration for the human approval step."""

    mode: str = "cli"  # "cli" | "auto"
    auto_response: str = "reject"  # 仅在 auto 模式下使用: "approve" | "reject"


@dataclass
class AppConfig:
    """Top-level configuration."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    safety: SafetyConfig = field(default_factory=SafetyConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    interaction: InteractionConfig = field(default_factory=InteractionConfig)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        def _section(name: str) -> Dict[str, Any]:
            section = payload.get(name, {}) or {}
            # 过滤掉以下划线开头的注释字段
            return {k: v for k, v in section.items() if not k.startswith("_")}

        return cls(
            llm=LLMConfig(**{**LLMConfig().__dict__, **_section("llm")}),
            safety=SafetyConfig(**{**SafetyConfig().__dict__, **_section("safety")}),
            policy=PolicyConfig(**{**PolicyConfig().__dict__, **_section("policy")}),
            execution=ExecutionConfig(**{**ExecutionConfig().__dict__, **_section("execution")}),
            interaction=InteractionConfig(
                **{**InteractionConfig().__dict__, **_section("interaction")}
            ),
        )


def _env(name: str) -> Optional[str]:
    return os.getenv(f"{_ENV_PREFIX}_{name}")


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Apply ``PLAN_ORCHESTRATOR_*`` environment variables on top of ``config``."""
    if not config.llm.api_key:
        provider_key = config.llm.provider.upper().replace("-", "_")
        config.llm.api_key = _env(f"{provider_key}_API_KEY") or _env("LLM_API_KEY")

    env_proxy = _env("LLM_PROXY")
    if env_proxy:
        config.llm.proxy = env_proxy

    env_host = _env("SSH_HOST")
    if env_host:
        config.execution.host = env_host

    env_port = _env("SSH_PORT")
    if env_port:
        config.execution.port = int(env_port)

    env_username = _env("SSH_USERNAME")
    if env_username:
        config.execution.username = env_username

    env_password = _env("SSH_PASSWORD")
    if env_password:
        config.execution.password = env_password
        config.execution.auth_method = "password"

    env_key_path = _env("SSH_KEY_PATH")
    if env_key_path:
        config.execution.key_path = env_key_path
        config.execution.auth_method = "key"

    env_auto_approve = _env("AUTO_APPROVE")
    if env_auto_approve:
        config.policy.auto_approve = env_auto_approve.lower() in ("1", "true", "yes", "on")

    # 如果用户未指定 model 或 endpoint，使用提供商默认值
    provider = config.llm.provider.lower()
    if provider in PROVIDER_DEFAULTS:
        defaults = PROVIDER_DEFAULTS[provider]
        if not config.llm.model or config.llm.model == "analysis-v0":
            if defaults["model"]:
                config.llm.model = defaults["model"]
        if not config.llm.endpoint:
            config.llm.endpoint = defaults["endpoint"]

    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location.

    Environment variables (higher priority than config file):
    - PLAN_ORCHESTRATOR_LLM_API_KEY or PLAN_ORCHESTRATOR_<PROVIDER>_API_KEY: LLM API key
    - PLAN_ORCHESTRATOR_LLM_PROXY: HTTP proxy for LLM requests
    - PLAN_ORCHESTRATOR_SSH_HOST / _SSH_PORT / _SSH_USERNAME: SSH target
    - PLAN_ORCHESTRATOR_SSH_PASSWORD / _SSH_KEY_PATH: SSH credentials
    - PLAN_ORCHESTRATOR_AUTO_APPROVE: auto-approve plans the policy gate clears
    """

    candidate_paths = []
    if path:
        candidate_paths.append(Path(path))
    candidate_paths.append(_DEFAULT_CONFIG_PATH)

    for candidate in candidate_paths:
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            return apply_env_overrides(AppConfig.from_dict(data))

    raise FileNotFoundError(
        f"Could not find configuration file. Looked in: {', '.join(str(p) for p in candidate_paths)}"
    )
