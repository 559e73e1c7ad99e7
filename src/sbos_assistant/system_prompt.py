from __future__ import annotations

import asyncio
from datetime import date
from typing import Callable, Sequence

from loguru import logger

from sbos_assistant.briefs import ContextBrief
from sbos_assistant.models import UserPreferences
from sbos_assistant.storage.preferences import PreferenceStore

_PERSONA = """\
You are SB-OS Assistant, a powerful AI assistant for SB-OS, a personal productivity operating system.

CAPABILITIES:
- Full access to ventures, projects, tasks, captures, health entries, nutrition logs, documents, \
trading journal, shopping list, books and daily rituals
- Can create, update, and query all data
- Helps with planning, tracking, and insights"""

_RULES = """\
RULES:
- Be concise but helpful
- Use tools to fetch real data before answering questions about ventures, tasks, projects, etc.
- When creating items, confirm what was created
- If a tool returns an error, explain it or try a different approach; never invent data
- Format responses nicely with markdown when appropriate"""


def _user_context_section(ai_context: dict) -> str:
    lines = []
    if ai_context.get("user_name"):
        lines.append(f"Name: {ai_context['user_name']}")
    if ai_context.get("role"):
        lines.append(f"Role: {ai_context['role']}")
    goals = ai_context.get("goals")
    if goals:
        lines.append(f"Goals: {', '.join(goals) if isinstance(goals, list) else goals}")
    if ai_context.get("preferences"):
        lines.append(f"Preferences: {ai_context['preferences']}")
    if not lines:
        return ""
    return "USER CONTEXT:\n" + "\n".join(lines)


class ContextAssembler:
    """Builds the per-turn system prompt: persona, user context, briefs and the current date."""

    def __init__(
        self,
        preferences: PreferenceStore,
        briefs: Sequence[ContextBrief] = (),
        *,
        brief_timeout_seconds: float = 5.0,
        clock: Callable[[], date] = date.today,
    ):
        self._preferences = preferences
        self._briefs = list(briefs)
        self._brief_timeout = brief_timeout_seconds
        self._clock = clock

    async def build(
        self,
        user_id: str,
        session_id: str | None = None,
        *,
        user_message: str = "",
        preferences: UserPreferences | None = None,
    ) -> str:
        prefs = preferences or self._preferences.get(user_id)
        today = self._clock()

        sections = [_PERSONA]
        user_context = _user_context_section(prefs.ai_context or {})
        if user_context:
            sections.append(user_context)
        if prefs.ai_instructions.strip():
            sections.append(f"CUSTOM INSTRUCTIONS:\n{prefs.ai_instructions.strip()}")

        applicable = [b for b in self._briefs if b.applies(user_message)]
        if applicable:
            results = await asyncio.gather(*(self._run_brief(b, user_id, today) for b in applicable))
            sections.extend(r for r in results if r)

        sections.append(_RULES)
        sections.append(f"Current date: {today.isoformat()}")
        logger.debug(f"System prompt for user {user_id} (session={session_id or 'default'}): {len(sections)} section(s)")
        return "\n\n".join(sections)

    async def _run_brief(self, brief: ContextBrief, user_id: str, today: date) -> str | None:
        try:
            if self._brief_timeout > 0:
                return await asyncio.wait_for(
                    asyncio.to_thread(brief.build, user_id, today),
                    timeout=self._brief_timeout,
                )
            return await asyncio.to_thread(brief.build, user_id, today)
        except asyncio.TimeoutError:
            logger.warning(f"Context brief '{brief.name}' timed out after {self._brief_timeout}s")
        except Exception as ex:
            logger.warning(f"Context brief '{brief.name}' failed: {type(ex).__name__}: {ex}")
        return None
