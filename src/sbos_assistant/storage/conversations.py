from __future__ import annotations

import json
import sqlite3
from uuid import uuid4

from loguru import logger

from sbos_assistant.errors import SessionNotFoundError
from sbos_assistant.models import ROLES, Message, NewMessage, Session, ToolInvocation
from sbos_assistant.storage.database import Database, utc_now

DEFAULT_SESSION_TITLE = "New Chat"


class ConversationStore:
    """Persists chat messages per user, optionally grouped into sessions.

    A ``session_id`` of ``None`` addresses the user's default (global) history.
    """

    def __init__(self, db: Database):
        self._db = db

    def ensure_user(self, user_id: str, email: str | None = None) -> None:
        self._db.execute(
            "INSERT OR IGNORE INTO users (id, email, created_at) VALUES (?, ?, ?)",
            (user_id, email, utc_now()),
        )

    # Sessions

    def create_session(self, user_id: str, title: str | None = None) -> Session:
        session_id = str(uuid4())
        now = utc_now()
        clean_title = (title or "").strip() or DEFAULT_SESSION_TITLE
        self._db.execute(
            """
            INSERT INTO chat_sessions (id, user_id, title, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (session_id, user_id, clean_title, now, now),
        )
        logger.debug(f"Created chat session {session_id} for user {user_id}")
        return Session(id=session_id, user_id=user_id, title=clean_title, created_at=now, updated_at=now)

    def get_session(self, user_id: str, session_id: str) -> Session:
        row = self._db.query_one(
            "SELECT * FROM chat_sessions WHERE id = ? AND user_id = ? LIMIT 1",
            (session_id, user_id),
        )
        if row is None:
            raise SessionNotFoundError(session_id)
        return _row_to_session(row)

    def list_sessions(self, user_id: str, *, limit: int = 50) -> list[Session]:
        rows = self._db.query(
            """
            SELECT * FROM chat_sessions
            WHERE user_id = ?
            ORDER BY updated_at DESC, created_at DESC
            LIMIT ?
            """,
            (user_id, max(1, limit)),
        )
        return [_row_to_session(row) for row in rows]

    def rename_session(self, user_id: str, session_id: str, title: str) -> Session:
        clean_title = title.strip()
        if not clean_title:
            raise ValueError("Session title must not be empty")
        updated = self._db.execute(
            "UPDATE chat_sessions SET title = ?, updated_at = ? WHERE id = ? AND user_id = ?",
            (clean_title, utc_now(), session_id, user_id),
        )
        if updated == 0:
            raise SessionNotFoundError(session_id)
        return self.get_session(user_id, session_id)

    def delete_session(self, user_id: str, session_id: str) -> None:
        deleted = self._db.execute(
            "DELETE FROM chat_sessions WHERE id = ? AND user_id = ?",
            (session_id, user_id),
        )
        if deleted == 0:
            raise SessionNotFoundError(session_id)
        logger.info(f"Deleted chat session {session_id} and its messages")

    # Messages

    def append(self, message: NewMessage) -> Message:
        if message.role not in ROLES:
            raise ValueError(f"Invalid message role: {message.role!r}")
        message_id = str(uuid4())
        now = utc_now()
        tool_calls_json = (
            json.dumps([c.to_dict() for c in message.tool_calls], ensure_ascii=True)
            if message.tool_calls
            else None
        )
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO chat_messages
                    (id, user_id, session_id, role, content, tool_call_id, tool_calls_json, metadata_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message_id,
                    message.user_id,
                    message.session_id,
                    message.role,
                    message.content,
                    message.tool_call_id,
                    tool_calls_json,
                    json.dumps(message.metadata or {}, ensure_ascii=True, default=str),
                    now,
                ),
            )
            if message.session_id is not None:
                conn.execute(
                    "UPDATE chat_sessions SET updated_at = ? WHERE id = ?",
                    (now, message.session_id),
                )
        return Message(
            id=message_id,
            session_id=message.session_id,
            user_id=message.user_id,
            role=message.role,
            content=message.content,
            created_at=now,
            tool_call_id=message.tool_call_id,
            tool_calls=list(message.tool_calls) if message.tool_calls else None,
            metadata=dict(message.metadata or {}),
        )

    def history(self, user_id: str, session_id: str | None = None, limit: int = 20) -> list[Message]:
        """Return the most recent ``limit`` messages, oldest first."""
        if limit <= 0:
            return []
        if session_id is None:
            rows = self._db.query(
                """
                SELECT * FROM chat_messages
                WHERE user_id = ? AND session_id IS NULL
                ORDER BY created_at DESC, seq DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
        else:
            rows = self._db.query(
                """
                SELECT * FROM chat_messages
                WHERE user_id = ? AND session_id = ?
                ORDER BY created_at DESC, seq DESC
                LIMIT ?
                """,
                (user_id, session_id, limit),
            )
        messages = [_row_to_message(row) for row in rows]
        messages.reverse()
        return messages

    def clear(self, user_id: str, session_id: str | None = None) -> int:
        if session_id is None:
            deleted = self._db.execute(
                "DELETE FROM chat_messages WHERE user_id = ? AND session_id IS NULL",
                (user_id,),
            )
        else:
            deleted = self._db.execute(
                "DELETE FROM chat_messages WHERE user_id = ? AND session_id = ?",
                (user_id, session_id),
            )
        logger.info(f"Cleared {deleted} message(s) for user {user_id} (session={session_id or 'default'})")
        return deleted


def replayable(messages: list[Message]) -> list[Message]:
    """Drop tool-call/tool-result messages that lost their counterpart.

    History truncation can cut an assistant tool-call message away from its
    results (or the other way round); providers reject such transcripts.
    """
    out: list[Message] = []
    i = 0
    while i < len(messages):
        msg = messages[i]
        if msg.role == "tool":
            i += 1
            continue
        if msg.role == "assistant" and msg.tool_calls:
            expected = {c.id for c in msg.tool_calls}
            j = i + 1
            answers: list[Message] = []
            while j < len(messages) and messages[j].role == "tool":
                answers.append(messages[j])
                j += 1
            answered = {a.tool_call_id for a in answers}
            if expected and expected <= answered:
                out.append(msg)
                out.extend(a for a in answers if a.tool_call_id in expected)
            i = j
            continue
        out.append(msg)
        i += 1
    return out


def _row_to_session(row: sqlite3.Row) -> Session:
    return Session(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_message(row: sqlite3.Row) -> Message:
    tool_calls = None
    if row["tool_calls_json"]:
        tool_calls = [ToolInvocation.from_dict(c) for c in json.loads(row["tool_calls_json"])]
    try:
        metadata = json.loads(row["metadata_json"] or "{}")
    except json.JSONDecodeError:
        metadata = {}
    return Message(
        id=row["id"],
        session_id=row["session_id"],
        user_id=row["user_id"],
        role=row["role"],
        content=row["content"],
        created_at=row["created_at"],
        tool_call_id=row["tool_call_id"],
        tool_calls=tool_calls,
        metadata=metadata if isinstance(metadata, dict) else {},
    )
