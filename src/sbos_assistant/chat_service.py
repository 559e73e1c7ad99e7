from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Callable

from loguru import logger

from sbos_assistant.errors import ConfigurationError, InvalidMessageError
from sbos_assistant.models import ChatResult, Message, Session, UserPreferences
from sbos_assistant.provider import CompletionProvider
from sbos_assistant.rate_limiter import SlidingWindowRateLimiter
from sbos_assistant.storage.conversations import ConversationStore, replayable
from sbos_assistant.storage.preferences import PreferenceStore
from sbos_assistant.system_prompt import ContextAssembler
from sbos_assistant.tool import ToolContext
from sbos_assistant.tool_registry import ToolRegistry
from sbos_assistant.turn_engine import TurnEngine


def clamp_max_tokens(requested: int | None, *, minimum: int, ceiling: int) -> int:
    if requested is None:
        return ceiling
    return max(minimum, min(ceiling, int(requested)))


class ChatService:
    """Entry point for conversations: admission, validation, context, then one orchestrated turn."""

    def __init__(
        self,
        *,
        provider: CompletionProvider | None,
        registry: ToolRegistry,
        conversations: ConversationStore,
        preferences: PreferenceStore,
        assembler: ContextAssembler,
        rate_limiter: SlidingWindowRateLimiter,
        max_tool_rounds: int = 5,
        history_limit: int = 20,
        round_timeout_seconds: float = 60.0,
        min_tokens: int = 256,
        max_tokens_ceiling: int = 4096,
        clock: Callable[[], date] = date.today,
    ):
        self._provider = provider
        self._conversations = conversations
        self._preferences = preferences
        self._assembler = assembler
        self._rate_limiter = rate_limiter
        self._history_limit = history_limit
        self._min_tokens = min_tokens
        self._max_tokens_ceiling = max(min_tokens, max_tokens_ceiling)
        self._clock = clock
        self._engine = (
            TurnEngine(
                provider=provider,
                registry=registry,
                on_append_message=conversations.append,
                max_tool_rounds=max_tool_rounds,
                round_timeout_seconds=round_timeout_seconds,
            )
            if provider is not None
            else None
        )

    @property
    def available(self) -> bool:
        return self._engine is not None

    def ensure_user(self, user_id: str, email: str | None = None) -> None:
        self._conversations.ensure_user(user_id, email)

    async def send_message(self, user_id: str, text: str, session_id: str | None = None) -> ChatResult:
        if self._engine is None:
            raise ConfigurationError()
        if not isinstance(text, str) or not text.strip():
            raise InvalidMessageError()
        self._rate_limiter.check(user_id)
        self._conversations.ensure_user(user_id)
        if session_id is not None:
            self._conversations.get_session(user_id, session_id)

        preferences = self._effective_preferences(user_id)
        history = replayable(self._conversations.history(user_id, session_id, limit=self._history_limit))
        system_prompt = await self._assembler.build(
            user_id,
            session_id,
            user_message=text,
            preferences=preferences,
        )

        logger.info(f"Turn started for {user_id} (session={session_id or 'default'}, history={len(history)})")
        return await self._engine.run(
            context=ToolContext(user_id=user_id, today=self._clock()),
            session_id=session_id,
            user_text=text,
            history=history,
            system_prompt=system_prompt,
            preferences=preferences,
        )

    def get_history(self, user_id: str, session_id: str | None = None, limit: int | None = None) -> list[Message]:
        if session_id is not None:
            self._conversations.get_session(user_id, session_id)
        if limit is None:
            limit = self._history_limit
        return self._conversations.history(user_id, session_id, limit=limit)

    def clear_history(self, user_id: str, session_id: str | None = None) -> int:
        if session_id is not None:
            self._conversations.get_session(user_id, session_id)
        return self._conversations.clear(user_id, session_id)

    def list_sessions(self, user_id: str) -> list[Session]:
        return self._conversations.list_sessions(user_id)

    def create_session(self, user_id: str, title: str | None = None) -> Session:
        return self._conversations.create_session(user_id, title)

    def rename_session(self, user_id: str, session_id: str, title: str) -> Session:
        return self._conversations.rename_session(user_id, session_id, title)

    def delete_session(self, user_id: str, session_id: str) -> None:
        self._conversations.delete_session(user_id, session_id)

    def _effective_preferences(self, user_id: str) -> UserPreferences:
        prefs = self._preferences.get(user_id)
        max_tokens = clamp_max_tokens(prefs.max_tokens, minimum=self._min_tokens, ceiling=self._max_tokens_ceiling)
        if max_tokens != prefs.max_tokens:
            logger.debug(f"Clamped max_tokens for {user_id}: {prefs.max_tokens} -> {max_tokens}")
            prefs = replace(prefs, max_tokens=max_tokens)
        return prefs
