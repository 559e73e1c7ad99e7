from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from sbos_assistant.app_config import AppConfig, RuntimeEnv
from sbos_assistant.assistant import Assistant
from sbos_assistant.briefs import DecisionStyleBrief, SystemStatusBrief
from sbos_assistant.chat_service import ChatService
from sbos_assistant.logging_config import setup_logging
from sbos_assistant.models import UserPreferences
from sbos_assistant.provider import CompletionProvider, create_provider
from sbos_assistant.rate_limiter import SlidingWindowRateLimiter
from sbos_assistant.storage import ConversationStore, Database, PreferenceStore, RecordStore
from sbos_assistant.system_prompt import ContextAssembler
from sbos_assistant.tool_registry import build_registry


@dataclass
class AppRuntime:
    assistant: Assistant
    service: ChatService
    database: Database
    tool_names: list[str]
    log_descriptions: list[str]

    def close(self) -> None:
        self.database.close()


def _resolve_db_path(db_path: str) -> str:
    if db_path == ":memory:":
        return db_path
    path = Path(db_path)
    if not path.is_absolute():
        path = Path.cwd() / path
    return str(path)


def bootstrap_runtime(app: AppConfig, env: RuntimeEnv, *, provider: CompletionProvider | None = None) -> AppRuntime:
    log_descriptions = setup_logging(level=app.log_level, consumers=app.log_consumers)

    database = Database(_resolve_db_path(app.db_path))
    conversations = ConversationStore(database)
    records = RecordStore(database)
    preferences = PreferenceStore(
        database,
        UserPreferences(model=app.model, temperature=app.temperature, max_tokens=app.max_tokens),
    )

    if provider is None and env.provider_api_key:
        provider = create_provider(
            app.provider_name,
            env.provider_api_key,
            base_url=env.provider_base_url,
            max_attempts=app.provider_max_retries,
            request_timeout_seconds=app.provider_timeout_seconds,
        )
    if provider is None:
        logger.warning(f"{env.provider_env_var} is not set; chat turns will be rejected")

    registry = build_registry(
        records,
        disabled_groups=app.disabled_tool_groups,
        max_tool_result_chars=app.max_tool_result_chars,
    )
    assembler = ContextAssembler(
        preferences,
        [DecisionStyleBrief(records), SystemStatusBrief(records)],
        brief_timeout_seconds=app.brief_timeout_seconds,
    )
    service = ChatService(
        provider=provider,
        registry=registry,
        conversations=conversations,
        preferences=preferences,
        assembler=assembler,
        rate_limiter=SlidingWindowRateLimiter(app.rate_limit_max_requests, app.rate_limit_window_seconds),
        max_tool_rounds=app.max_tool_rounds,
        history_limit=app.history_limit,
        round_timeout_seconds=app.round_timeout_seconds,
        min_tokens=app.min_tokens,
        max_tokens_ceiling=app.max_tokens_ceiling,
    )
    service.ensure_user(app.user_id, app.user_email)
    logger.info(f"Runtime ready: provider={app.provider_name}, model={app.model}, tools={len(registry)}, db={database.path}")

    return AppRuntime(
        assistant=Assistant(service, user_id=app.user_id),
        service=service,
        database=database,
        tool_names=registry.names,
        log_descriptions=log_descriptions,
    )
