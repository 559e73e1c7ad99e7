from __future__ import annotations

import json
import sqlite3
from enum import Enum
from typing import Any
from uuid import uuid4

from sbos_assistant.storage.database import Database, utc_now


class RecordKind(str, Enum):
    VENTURE = "venture"
    PROJECT = "project"
    TASK = "task"
    CAPTURE = "capture"
    HEALTH_ENTRY = "health_entry"
    NUTRITION_ENTRY = "nutrition_entry"
    DOCUMENT = "document"
    TRADE = "trade"
    SHOPPING_ITEM = "shopping_item"
    BOOK = "book"
    DAY = "day"
    DECISION = "decision"


_RESERVED_FIELDS = {"id", "created_at", "updated_at"}


class RecordStore:
    """Typed CRUD over user-owned domain records stored as JSON documents.

    Every operation is a single committed statement, so writes are visible to
    any later read, including reads made by other tools in the same turn.
    """

    def __init__(self, db: Database):
        self._db = db

    def create(self, user_id: str, kind: RecordKind, fields: dict[str, Any]) -> dict[str, Any]:
        record_id = str(uuid4())
        now = utc_now()
        data = _clean_fields(fields)
        self._db.execute(
            """
            INSERT INTO records (id, user_id, kind, data_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (record_id, user_id, kind.value, json.dumps(data, ensure_ascii=True, default=str), now, now),
        )
        return {"id": record_id, **data, "created_at": now, "updated_at": now}

    def get(self, user_id: str, kind: RecordKind, record_id: str) -> dict[str, Any] | None:
        row = self._db.query_one(
            "SELECT * FROM records WHERE id = ? AND user_id = ? AND kind = ? LIMIT 1",
            (record_id, user_id, kind.value),
        )
        return _row_to_record(row) if row is not None else None

    def find_one(self, user_id: str, kind: RecordKind, field: str, value: Any) -> dict[str, Any] | None:
        matches = self.list(user_id, kind, where={field: value}, limit=1)
        return matches[0] if matches else None

    def update(
        self,
        user_id: str,
        kind: RecordKind,
        record_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any] | None:
        with self._db.transaction() as conn:
            row = conn.execute(
                "SELECT * FROM records WHERE id = ? AND user_id = ? AND kind = ? LIMIT 1",
                (record_id, user_id, kind.value),
            ).fetchone()
            if row is None:
                return None
            data = json.loads(row["data_json"])
            data.update(_clean_fields(changes))
            now = utc_now()
            conn.execute(
                "UPDATE records SET data_json = ?, updated_at = ? WHERE id = ?",
                (json.dumps(data, ensure_ascii=True, default=str), now, record_id),
            )
        return {"id": record_id, **data, "created_at": row["created_at"], "updated_at": now}

    def delete(self, user_id: str, kind: RecordKind, record_id: str) -> bool:
        deleted = self._db.execute(
            "DELETE FROM records WHERE id = ? AND user_id = ? AND kind = ?",
            (record_id, user_id, kind.value),
        )
        return deleted > 0

    def list(
        self,
        user_id: str,
        kind: RecordKind,
        *,
        where: dict[str, Any] | None = None,
        range_field: str | None = None,
        since: str | None = None,
        until: str | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        clauses, params = _filter_clauses(user_id, kind, where)

        if range_field and since:
            clauses.append("json_extract(data_json, ?) >= ?")
            params.extend([_json_path(range_field), since])
        if range_field and until:
            clauses.append("json_extract(data_json, ?) <= ?")
            params.extend([_json_path(range_field), until])

        direction = "DESC" if descending else "ASC"
        if order_by in (None, "created_at"):
            order_sql = f"created_at {direction}"
        elif order_by == "updated_at":
            order_sql = f"updated_at {direction}"
        else:
            order_sql = f"json_extract(data_json, ?) {direction}, created_at {direction}"
            params.append(_json_path(order_by))

        query = f"SELECT * FROM records WHERE {' AND '.join(clauses)} ORDER BY {order_sql}"
        if limit is not None:
            query += " LIMIT ?"
            params.append(max(0, int(limit)))

        rows = self._db.query(query, tuple(params))
        return [_row_to_record(row) for row in rows]

    def count(self, user_id: str, kind: RecordKind, *, where: dict[str, Any] | None = None) -> int:
        clauses, params = _filter_clauses(user_id, kind, where)
        row = self._db.query_one(f"SELECT COUNT(*) FROM records WHERE {' AND '.join(clauses)}", tuple(params))
        return int(row[0]) if row else 0


def _filter_clauses(user_id: str, kind: RecordKind, where: dict[str, Any] | None) -> tuple[list[str], list[Any]]:
    clauses = ["user_id = ?", "kind = ?"]
    params: list[Any] = [user_id, kind.value]
    for field, value in (where or {}).items():
        if value is None:
            clauses.append("json_extract(data_json, ?) IS NULL")
            params.append(_json_path(field))
        else:
            clauses.append("json_extract(data_json, ?) = ?")
            params.extend([_json_path(field), _sql_value(value)])
    return clauses, params


def _json_path(field: str) -> str:
    return f'$."{field}"'


def _sql_value(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, Enum):
        return value.value
    return value


def _clean_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in _RESERVED_FIELDS}


def _row_to_record(row: sqlite3.Row) -> dict[str, Any]:
    data = json.loads(row["data_json"])
    return {"id": row["id"], **data, "created_at": row["created_at"], "updated_at": row["updated_at"]}
