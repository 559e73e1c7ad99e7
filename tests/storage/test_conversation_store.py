import unittest

from sbos_assistant.errors import SessionNotFoundError
from sbos_assistant.models import NewMessage, ToolInvocation
from sbos_assistant.storage import replayable
from tests.storage.base import OTHER_USER_ID, USER_ID, StoreTestCase


class ConversationStoreTests(StoreTestCase):
    def _say(self, role: str, content: str, session_id: str | None = None, **kwargs):
        return self._conversations.append(
            NewMessage(user_id=USER_ID, role=role, content=content, session_id=session_id, **kwargs)
        )

    def test_ensure_user_is_idempotent(self) -> None:
        self._conversations.ensure_user(USER_ID, "me@example.com")
        self._conversations.ensure_user(USER_ID, "me@example.com")
        rows = self._db.query("SELECT * FROM users WHERE id = ?", (USER_ID,))
        self.assertEqual(1, len(rows))

    def test_history_returns_latest_messages_oldest_first(self) -> None:
        for i in range(5):
            self._say("user", f"m{i}")

        history = self._conversations.history(USER_ID, limit=3)

        self.assertEqual(["m2", "m3", "m4"], [m.content for m in history])

    def test_default_history_excludes_session_messages(self) -> None:
        session = self._conversations.create_session(USER_ID)
        self._say("user", "global")
        self._say("user", "in session", session.id)

        self.assertEqual(["global"], [m.content for m in self._conversations.history(USER_ID)])
        self.assertEqual(["in session"], [m.content for m in self._conversations.history(USER_ID, session.id)])

    def test_append_round_trips_tool_calls_and_metadata(self) -> None:
        call = ToolInvocation(id="call_1", name="get_tasks", arguments={"status": "next"})
        self._say("assistant", "", tool_calls=[call], metadata={"model": "m"})
        self._say("tool", "[]", tool_call_id="call_1", metadata={"tool_name": "get_tasks", "is_error": False})

        history = self._conversations.history(USER_ID)

        self.assertEqual([call], history[0].tool_calls)
        self.assertEqual({"model": "m"}, history[0].metadata)
        self.assertEqual("call_1", history[1].tool_call_id)

    def test_append_rejects_unknown_role(self) -> None:
        with self.assertRaises(ValueError):
            self._say("narrator", "hi")

    def test_session_defaults_title(self) -> None:
        session = self._conversations.create_session(USER_ID, "  ")
        self.assertEqual("New Chat", session.title)

    def test_sessions_are_scoped_to_their_owner(self) -> None:
        session = self._conversations.create_session(USER_ID, "Planning")

        with self.assertRaises(SessionNotFoundError):
            self._conversations.get_session(OTHER_USER_ID, session.id)
        with self.assertRaises(SessionNotFoundError):
            self._conversations.rename_session(OTHER_USER_ID, session.id, "Mine now")
        with self.assertRaises(SessionNotFoundError):
            self._conversations.delete_session(OTHER_USER_ID, session.id)
        self.assertEqual([], self._conversations.list_sessions(OTHER_USER_ID))

    def test_rename_session(self) -> None:
        session = self._conversations.create_session(USER_ID)
        renamed = self._conversations.rename_session(USER_ID, session.id, "Weekly review")
        self.assertEqual("Weekly review", renamed.title)
        with self.assertRaises(ValueError):
            self._conversations.rename_session(USER_ID, session.id, " ")

    def test_delete_session_cascades_to_messages(self) -> None:
        session = self._conversations.create_session(USER_ID)
        self._say("user", "hello", session.id)

        self._conversations.delete_session(USER_ID, session.id)

        rows = self._db.query("SELECT * FROM chat_messages WHERE session_id = ?", (session.id,))
        self.assertEqual([], rows)

    def test_clear_only_touches_requested_history(self) -> None:
        session = self._conversations.create_session(USER_ID)
        self._say("user", "global")
        self._say("user", "kept", session.id)

        deleted = self._conversations.clear(USER_ID)

        self.assertEqual(1, deleted)
        self.assertEqual([], self._conversations.history(USER_ID))
        self.assertEqual(1, len(self._conversations.history(USER_ID, session.id)))

    def test_list_sessions_most_recently_updated_first(self) -> None:
        first = self._conversations.create_session(USER_ID, "first")
        second = self._conversations.create_session(USER_ID, "second")
        self._say("user", "bump", first.id)

        titles = [s.title for s in self._conversations.list_sessions(USER_ID)]

        self.assertEqual(["first", "second"], titles)
        self.assertNotEqual(first.id, second.id)


class ReplayableTests(StoreTestCase):
    def _say(self, role: str, content: str = "", **kwargs):
        return self._conversations.append(NewMessage(user_id=USER_ID, role=role, content=content, **kwargs))

    def test_drops_leading_orphan_tool_messages(self) -> None:
        self._say("user", "what's on today?")
        self._say("assistant", tool_calls=[ToolInvocation(id="c1", name="get_today_tasks")])
        self._say("tool", "[]", tool_call_id="c1")
        self._say("assistant", "Nothing today.")

        truncated = self._conversations.history(USER_ID, limit=2)
        cleaned = replayable(truncated)

        self.assertEqual(["assistant"], [m.role for m in cleaned])
        self.assertEqual("Nothing today.", cleaned[0].content)

    def test_drops_tool_call_without_all_answers(self) -> None:
        self._say("user", "hi")
        self._say(
            "assistant",
            tool_calls=[ToolInvocation(id="c1", name="get_tasks"), ToolInvocation(id="c2", name="get_captures")],
        )
        self._say("tool", "[]", tool_call_id="c1")

        cleaned = replayable(self._conversations.history(USER_ID))

        self.assertEqual(["user"], [m.role for m in cleaned])

    def test_keeps_complete_exchange(self) -> None:
        self._say("user", "hi")
        self._say("assistant", tool_calls=[ToolInvocation(id="c1", name="get_tasks")])
        self._say("tool", "[]", tool_call_id="c1")
        self._say("assistant", "done")

        cleaned = replayable(self._conversations.history(USER_ID))

        self.assertEqual(["user", "assistant", "tool", "assistant"], [m.role for m in cleaned])


if __name__ == "__main__":
    unittest.main()
