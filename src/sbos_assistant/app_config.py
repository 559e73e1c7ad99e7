from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

from sbos_assistant.provider import PROVIDERS

_API_KEY_ENV_VARS = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

_DEFAULT_MODELS = {
    "openrouter": "openai/gpt-4o-mini",
    "openai": "gpt-4o-mini",
    "anthropic": "claude-sonnet-4-5-20250929",
}


@dataclass
class RuntimeEnv:
    provider_api_key: str
    provider_env_var: str
    provider_base_url: str | None


@dataclass
class AppConfig:
    provider_name: str
    model: str
    temperature: float
    max_tokens: int
    min_tokens: int
    max_tokens_ceiling: int
    max_tool_rounds: int
    history_limit: int
    round_timeout_seconds: float
    brief_timeout_seconds: float
    provider_timeout_seconds: float
    provider_max_retries: int
    rate_limit_max_requests: int
    rate_limit_window_seconds: float
    max_tool_result_chars: int
    disabled_tool_groups: list[str]
    db_path: str
    user_id: str
    user_email: str | None
    log_level: str
    log_consumers: list | None


def load_json_config(path: Path | None = None) -> dict:
    config_path = path or Path.cwd() / "config.json"
    if config_path.exists():
        with open(config_path) as f:
            return json.load(f)
    return {}


def _to_list(value: object) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def parse_app_config(config: dict) -> AppConfig:
    provider_name = str(config.get("Provider", "openrouter")).strip().lower()
    if provider_name not in PROVIDERS:
        raise ValueError(f"Unknown Provider {provider_name!r} in config. Supported: {', '.join(PROVIDERS)}")

    user_email = str(config.get("UserEmail", "")).strip() or None
    return AppConfig(
        provider_name=provider_name,
        model=config.get("Model", _DEFAULT_MODELS[provider_name]),
        temperature=float(config.get("Temperature", 0.7)),
        max_tokens=int(config.get("MaxTokens", 2048)),
        min_tokens=int(config.get("MinTokens", 256)),
        max_tokens_ceiling=int(config.get("MaxTokensCeiling", 4096)),
        max_tool_rounds=int(config.get("MaxToolRounds", 5)),
        history_limit=int(config.get("HistoryLimit", 20)),
        round_timeout_seconds=float(config.get("RoundTimeoutSeconds", 60)),
        brief_timeout_seconds=float(config.get("BriefTimeoutSeconds", 5)),
        provider_timeout_seconds=float(config.get("ProviderTimeoutSeconds", 60)),
        provider_max_retries=int(config.get("ProviderMaxRetries", 3)),
        rate_limit_max_requests=int(config.get("RateLimitMaxRequests", 20)),
        rate_limit_window_seconds=float(config.get("RateLimitWindowSeconds", 60)),
        max_tool_result_chars=int(config.get("MaxToolResultChars", 40_000)),
        disabled_tool_groups=_to_list(config.get("DisabledToolGroups")),
        db_path=str(config.get("DbPath", ".sbos/assistant.db")),
        user_id=str(config.get("UserId", "default-user")).strip() or "default-user",
        user_email=user_email,
        log_level=config.get("LogLevel", "INFO"),
        log_consumers=config.get("LogConsumers"),
    )


def resolve_runtime_env(provider_name: str) -> RuntimeEnv:
    env_var = _API_KEY_ENV_VARS.get(provider_name, "OPENROUTER_API_KEY")
    base_url = None
    if provider_name in ("openai", "openrouter"):
        base_url = os.environ.get("OPENAI_BASE_URL") or None
    return RuntimeEnv(
        provider_api_key=os.environ.get(env_var, "").strip(),
        provider_env_var=env_var,
        provider_base_url=base_url,
    )
