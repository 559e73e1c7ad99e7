from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from sbos_assistant.errors import ProviderError
from sbos_assistant.models import (
    ChatResult,
    CompletionRequest,
    CompletionResponse,
    Message,
    NewMessage,
    ToolInvocation,
    ToolResult,
    UserPreferences,
)
from sbos_assistant.provider import CompletionProvider
from sbos_assistant.tool import ToolContext
from sbos_assistant.tool_registry import ToolRegistry

FALLBACK_ANSWER = (
    "I wasn't able to finish that request in time. "
    "Please try again, or break it into smaller steps."
)
EMPTY_RESPONSE_ANSWER = "I'm sorry, I couldn't generate a response."
TOOL_TIMEOUT_ERROR = "Tool execution timed out"

T = TypeVar("T")


class TurnEngine:
    """Drives one turn: model call, then zero or more rounds of tool dispatch, then a final answer.

    Every message produced along the way is persisted through ``on_append_message``
    as soon as it exists, so an aborted turn leaves a well-formed transcript behind.
    """

    def __init__(
        self,
        *,
        provider: CompletionProvider,
        registry: ToolRegistry,
        on_append_message: Callable[[NewMessage], Message],
        max_tool_rounds: int = 5,
        round_timeout_seconds: float = 60.0,
    ) -> None:
        self._provider = provider
        self._registry = registry
        self._on_append_message = on_append_message
        self._max_tool_rounds = max(0, max_tool_rounds)
        self._round_timeout = round_timeout_seconds

    async def run(
        self,
        *,
        context: ToolContext,
        session_id: str | None,
        user_text: str,
        history: list[Message],
        system_prompt: str,
        preferences: UserPreferences,
    ) -> ChatResult:
        user_id = context.user_id
        user_message = self._on_append_message(
            NewMessage(user_id=user_id, role="user", content=user_text, session_id=session_id)
        )

        transcript = [*history, user_message]
        tool_definitions = self._registry.describe()
        tool_messages: list[Message] = []
        tokens_used: int | None = None
        model_used = preferences.model
        rounds = 0
        hit_ceiling = False
        timed_out = False
        final_text = FALLBACK_ANSWER

        while True:
            request = CompletionRequest(
                model=preferences.model,
                temperature=preferences.temperature,
                max_tokens=preferences.max_tokens,
                system_prompt=system_prompt,
                messages=list(transcript),
                tools=tool_definitions,
            )
            logger.debug(f"Turn for {user_id}: model call {rounds + 1} with {len(request.messages)} message(s)")
            try:
                response = await self._within_round_budget(self._complete(request))
            except asyncio.TimeoutError:
                logger.warning(f"Model call timed out after {self._round_timeout}s (round {rounds + 1})")
                timed_out = True
                break

            tokens_used = _add_tokens(tokens_used, response.tokens_used)
            model_used = response.model or model_used

            if not response.tool_calls:
                final_text = response.text.strip() or EMPTY_RESPONSE_ANSWER
                break

            if rounds >= self._max_tool_rounds:
                logger.warning(f"Tool round ceiling ({self._max_tool_rounds}) reached for {user_id}; using fallback answer")
                hit_ceiling = True
                break

            rounds += 1
            call_message = self._on_append_message(
                NewMessage(
                    user_id=user_id,
                    role="assistant",
                    content=response.text,
                    session_id=session_id,
                    tool_calls=list(response.tool_calls),
                    metadata={"model": model_used},
                )
            )
            transcript.append(call_message)

            results, round_timed_out = await self.execute_tools(response.tool_calls, context)
            for call, result in zip(response.tool_calls, results):
                tool_message = self._on_append_message(
                    NewMessage(
                        user_id=user_id,
                        role="tool",
                        content=result.content,
                        session_id=session_id,
                        tool_call_id=call.id,
                        metadata={"tool_name": call.name, "is_error": result.is_error},
                    )
                )
                transcript.append(tool_message)
                tool_messages.append(tool_message)

            if round_timed_out:
                timed_out = True
                break

        assistant_message = self._on_append_message(
            NewMessage(
                user_id=user_id,
                role="assistant",
                content=final_text,
                session_id=session_id,
                metadata={"model": model_used, "tokens_used": tokens_used},
            )
        )
        logger.info(
            f"Turn for {user_id} finished: rounds={rounds}, tokens={tokens_used}, "
            f"ceiling={hit_ceiling}, timed_out={timed_out}"
        )
        return ChatResult(
            user_message=user_message,
            assistant_message=assistant_message,
            tool_messages=tool_messages,
            rounds=rounds,
            hit_ceiling=hit_ceiling,
            timed_out=timed_out,
        )

    async def execute_tools(
        self,
        calls: list[ToolInvocation],
        context: ToolContext,
    ) -> tuple[list[ToolResult], bool]:
        """Run one round's invocations concurrently; results come back in request order."""
        names = ", ".join(c.name for c in calls)
        started = time.monotonic()
        logger.debug(f"Dispatching {len(calls)} tool call(s): {names}")
        try:
            results = await self._within_round_budget(
                asyncio.gather(*(self._registry.invoke(call, context) for call in calls))
            )
        except asyncio.TimeoutError:
            logger.warning(f"Tool dispatch timed out after {self._round_timeout}s: {names}")
            timeout_payload = json.dumps({"error": TOOL_TIMEOUT_ERROR})
            return [
                ToolResult(invocation_id=c.id, tool_name=c.name, content=timeout_payload, is_error=True)
                for c in calls
            ], True
        logger.debug(f"Tool round finished in {(time.monotonic() - started) * 1000:.0f}ms")
        return list(results), False

    async def _complete(self, request: CompletionRequest) -> CompletionResponse:
        try:
            return await self._provider.complete(request)
        except ProviderError:
            raise
        except Exception as ex:
            raise ProviderError.from_exception(ex) from ex

    async def _within_round_budget(self, awaitable: Awaitable[T]) -> T:
        if self._round_timeout and self._round_timeout > 0:
            return await asyncio.wait_for(awaitable, timeout=self._round_timeout)
        return await awaitable


def _add_tokens(total: int | None, used: int | None) -> int | None:
    if used is None:
        return total
    return used if total is None else total + used
