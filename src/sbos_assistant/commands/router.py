from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    """Dispatches REPL slash commands; anything else is a chat message."""

    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_session: Callable[[str], Awaitable[None]],
        on_history: Callable[[str], Awaitable[None]],
        on_clear: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_session = on_session
        self._on_history = on_history
        self._on_clear = on_clear
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command = trimmed.split(maxsplit=1)[0]
        if command == "/help":
            await self._on_help()
            return True
        if command == "/session":
            await self._on_session(trimmed)
            return True
        if command == "/history":
            await self._on_history(trimmed)
            return True
        if command == "/clear":
            await self._on_clear(trimmed)
            return True

        self._on_unknown(trimmed)
        return True
