from __future__ import annotations

import json
from dataclasses import replace

from sbos_assistant.models import UserPreferences
from sbos_assistant.storage.database import Database, utc_now


class PreferenceStore:
    """Per-user model settings and custom instructions, layered over app defaults."""

    def __init__(self, db: Database, defaults: UserPreferences):
        self._db = db
        self._defaults = defaults

    @property
    def defaults(self) -> UserPreferences:
        return self._defaults

    def get(self, user_id: str) -> UserPreferences:
        row = self._db.query_one(
            "SELECT * FROM user_preferences WHERE user_id = ? LIMIT 1",
            (user_id,),
        )
        if row is None:
            return self._defaults
        try:
            ai_context = json.loads(row["ai_context_json"] or "{}")
        except json.JSONDecodeError:
            ai_context = {}
        return UserPreferences(
            model=row["model"] or self._defaults.model,
            temperature=(
                float(row["temperature"]) if row["temperature"] is not None else self._defaults.temperature
            ),
            max_tokens=int(row["max_tokens"]) if row["max_tokens"] is not None else self._defaults.max_tokens,
            ai_instructions=row["ai_instructions"] or "",
            ai_context=ai_context if isinstance(ai_context, dict) else {},
        )

    def save(self, user_id: str, preferences: UserPreferences) -> None:
        self._db.execute(
            """
            INSERT INTO user_preferences
                (user_id, model, temperature, max_tokens, ai_instructions, ai_context_json, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                model = excluded.model,
                temperature = excluded.temperature,
                max_tokens = excluded.max_tokens,
                ai_instructions = excluded.ai_instructions,
                ai_context_json = excluded.ai_context_json,
                updated_at = excluded.updated_at
            """,
            (
                user_id,
                preferences.model,
                preferences.temperature,
                preferences.max_tokens,
                preferences.ai_instructions,
                json.dumps(preferences.ai_context or {}, ensure_ascii=True),
                utc_now(),
            ),
        )

    def update(self, user_id: str, **changes: object) -> UserPreferences:
        updated = replace(self.get(user_id), **changes)
        self.save(user_id, updated)
        return updated
