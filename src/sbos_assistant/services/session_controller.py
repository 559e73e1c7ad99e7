from __future__ import annotations

from sbos_assistant.models import Message, Session


class SessionController:
    """Formats sessions and transcript lines for the REPL."""

    def __init__(self, *, line_prefix: str, short_id_len: int = 8, preview_chars: int = 120):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len
        self._preview_chars = preview_chars

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    def format_session_list_entry(self, session: Session, *, active_session_id: str | None) -> str:
        marker = "*" if session.id == active_session_id else " "
        return (
            f"{self._line_prefix}{marker} {session.title} [{self.short_id(session.id)}] "
            f"(created={session.created_at}, updated={session.updated_at})"
        )

    def format_session_label(self, session: Session | None) -> str:
        if session is None:
            return "default history"
        return f"{session.title} [{self.short_id(session.id)}]"

    def resolve(self, sessions: list[Session], target: str) -> Session | None:
        """Find a session by full id, unique id prefix, or exact title."""
        target = target.strip()
        if not target:
            return None
        for s in sessions:
            if s.id == target:
                return s
        by_prefix = [s for s in sessions if s.id.startswith(target)]
        if len(by_prefix) == 1:
            return by_prefix[0]
        if len(by_prefix) > 1:
            raise ValueError(f"Ambiguous session id prefix: {target}")
        by_title = [s for s in sessions if s.title == target]
        if len(by_title) == 1:
            return by_title[0]
        if len(by_title) > 1:
            raise ValueError(f"More than one session is titled {target!r}; use the id")
        return None

    def format_history_lines(self, messages: list[Message]) -> list[str]:
        lines: list[str] = []
        for msg in messages:
            if msg.role == "tool":
                name = msg.metadata.get("tool_name", "tool")
                status = "error" if msg.metadata.get("is_error") else "ok"
                lines.append(f"{self._line_prefix}  [{name}: {status}]")
            elif msg.role == "assistant" and msg.tool_calls:
                names = ", ".join(c.name for c in msg.tool_calls)
                lines.append(f"{self._line_prefix}  [calling {names}]")
            else:
                lines.append(f"{self._line_prefix}{msg.role}: {self._preview(msg.content)}")
        return lines

    def _preview(self, text: str) -> str:
        flat = " ".join(text.split())
        if len(flat) <= self._preview_chars:
            return flat
        return flat[: self._preview_chars - 3] + "..."
