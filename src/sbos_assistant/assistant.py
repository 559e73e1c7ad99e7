from __future__ import annotations

import asyncio

from loguru import logger

from sbos_assistant.chat_service import ChatService
from sbos_assistant.commands.router import CommandRouter
from sbos_assistant.errors import AssistantError
from sbos_assistant.models import ChatResult, Session
from sbos_assistant.services.session_controller import SessionController


class Assistant:
    """Interactive front end over ``ChatService`` for a single identity."""

    _LINE_PREFIX = "assistant> "
    _USER_PROMPT = "you> "

    def __init__(self, service: ChatService, *, user_id: str, session_id: str | None = None):
        self._service = service
        self._user_id = user_id
        self._active_session: Session | None = None
        if session_id is not None:
            self._active_session = next(
                (s for s in service.list_sessions(user_id) if s.id == session_id),
                None,
            )
        self._run_lock = asyncio.Lock()
        self._session_controller = SessionController(line_prefix=self._LINE_PREFIX)
        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_session=self._handle_session_command,
            on_history=self._handle_history_command,
            on_clear=self._handle_clear_command,
            on_unknown=self._on_unknown_command,
        )

    @property
    def active_session_id(self) -> str | None:
        return self._active_session.id if self._active_session else None

    async def run(self, user_message: str) -> ChatResult | None:
        async with self._run_lock:
            if await self._command_router.try_handle(user_message):
                return None
            try:
                result = await self._service.send_message(self._user_id, user_message, self.active_session_id)
            except AssistantError as ex:
                logger.warning(f"Turn rejected: {ex}")
                print(f"{self._LINE_PREFIX}{ex.user_message}")
                return None
            print(f"{self._LINE_PREFIX}{result.assistant_message.content}")
            if result.tool_messages:
                names = ", ".join(m.metadata.get("tool_name", "tool") for m in result.tool_messages)
                print(f"{self._LINE_PREFIX}(used: {names})")
            return result

    async def _on_help(self) -> None:
        print(f"{self._LINE_PREFIX}Available commands:")
        print(f"{self._LINE_PREFIX}- /help")
        print(f"{self._LINE_PREFIX}- /session")
        print(f"{self._LINE_PREFIX}- /session new [title]")
        print(f"{self._LINE_PREFIX}- /session list [limit]")
        print(f"{self._LINE_PREFIX}- /session name <title>")
        print(f"{self._LINE_PREFIX}- /session resume <id-or-title>")
        print(f"{self._LINE_PREFIX}- /session delete <id-or-title>")
        print(f"{self._LINE_PREFIX}- /session default")
        print(f"{self._LINE_PREFIX}- /history [limit]")
        print(f"{self._LINE_PREFIX}- /clear")
        print(f"{self._LINE_PREFIX}Type 'exit' to quit.")

    def _on_unknown_command(self, trimmed: str) -> None:
        print(f"{self._LINE_PREFIX}Unknown local command: {trimmed}")

    async def _handle_session_command(self, command: str) -> None:
        parts = command.split()
        if len(parts) == 1:
            label = self._session_controller.format_session_label(self._active_session)
            print(f"{self._LINE_PREFIX}Current session: {label}")
            return

        action = parts[1]
        argument = command.partition(action)[2].strip()

        if action == "list":
            limit = 20
            if argument:
                try:
                    limit = int(argument)
                except ValueError:
                    print(f"{self._LINE_PREFIX}Usage: /session list [limit]")
                    return
            sessions = self._service.list_sessions(self._user_id)[:limit]
            if not sessions:
                print(f"{self._LINE_PREFIX}No sessions found.")
                return
            print(f"{self._LINE_PREFIX}Recent sessions:")
            for s in sessions:
                print(self._session_controller.format_session_list_entry(s, active_session_id=self.active_session_id))
            return

        if action == "new":
            self._active_session = self._service.create_session(self._user_id, argument or None)
            label = self._session_controller.format_session_label(self._active_session)
            print(f"{self._LINE_PREFIX}Started new session: {label}")
            return

        if action == "default":
            self._active_session = None
            print(f"{self._LINE_PREFIX}Switched to default history")
            return

        if action == "name":
            if self._active_session is None:
                print(f"{self._LINE_PREFIX}No active session to name")
                return
            if not argument:
                print(f"{self._LINE_PREFIX}Usage: /session name <title>")
                return
            self._active_session = self._service.rename_session(self._user_id, self._active_session.id, argument)
            print(f"{self._LINE_PREFIX}Session named: {self._active_session.title}")
            return

        if action in ("resume", "delete"):
            if not argument:
                print(f"{self._LINE_PREFIX}Usage: /session {action} <id-or-title>")
                return
            try:
                session = self._session_controller.resolve(self._service.list_sessions(self._user_id), argument)
            except ValueError as ex:
                print(f"{self._LINE_PREFIX}{ex}")
                return
            if session is None:
                print(f"{self._LINE_PREFIX}Session not found: {argument}")
                return
            if action == "resume":
                self._active_session = session
                count = len(self._service.get_history(self._user_id, session.id))
                print(
                    f"{self._LINE_PREFIX}Resumed session "
                    f"{self._session_controller.format_session_label(session)} ({count} recent messages)"
                )
            else:
                self._service.delete_session(self._user_id, session.id)
                if self.active_session_id == session.id:
                    self._active_session = None
                print(f"{self._LINE_PREFIX}Deleted session {self._session_controller.format_session_label(session)}")
            return

        print(
            f"{self._LINE_PREFIX}Usage: /session | /session new [title] | /session list [limit] | "
            "/session name <title> | /session resume <id-or-title> | /session delete <id-or-title> | /session default"
        )

    async def _handle_history_command(self, command: str) -> None:
        parts = command.split()
        limit = None
        if len(parts) >= 2:
            try:
                limit = int(parts[1])
            except ValueError:
                print(f"{self._LINE_PREFIX}Usage: /history [limit]")
                return
        messages = self._service.get_history(self._user_id, self.active_session_id, limit=limit)
        if not messages:
            print(f"{self._LINE_PREFIX}No messages yet.")
            return
        for line in self._session_controller.format_history_lines(messages):
            print(line)

    async def _handle_clear_command(self, command: str) -> None:
        deleted = self._service.clear_history(self._user_id, self.active_session_id)
        label = self._session_controller.format_session_label(self._active_session)
        print(f"{self._LINE_PREFIX}Cleared {deleted} message(s) from {label}")
