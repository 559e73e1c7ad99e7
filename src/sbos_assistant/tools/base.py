from __future__ import annotations

import asyncio
from typing import Any, ClassVar

from sbos_assistant.errors import RecordNotFoundError
from sbos_assistant.storage.records import RecordKind, RecordStore
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.names import ToolName

TASK_STATUSES = ("idea", "next", "in_progress", "waiting", "done", "cancelled")
PRIORITIES = ("P0", "P1", "P2", "P3")
DEFAULT_PRIORITY = "P2"


class RecordTool:
    """A tool backed by one or more record-store operations.

    Subclasses declare their catalog entry as class attributes and implement
    ``run``; the store calls are blocking, so they execute in a worker thread.
    """

    tool_name: ClassVar[ToolName]
    tool_description: ClassVar[str]
    schema: ClassVar[dict[str, Any]] = {"type": "object", "properties": {}, "required": []}
    mutating: ClassVar[bool] = False

    def __init__(self, records: RecordStore):
        self._records = records

    @property
    def name(self) -> str:
        return self.tool_name.value

    @property
    def description(self) -> str:
        return self.tool_description

    @property
    def input_schema(self) -> dict[str, Any]:
        return self.schema

    @property
    def is_mutating(self) -> bool:
        return self.mutating

    async def execute(self, context: ToolContext, tool_input: dict[str, Any]) -> Any:
        args = ToolArgs(tool_input)
        return await asyncio.to_thread(self.run, context, args)

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        raise NotImplementedError

    def _require(self, context: ToolContext, kind: RecordKind, record_id: str) -> dict[str, Any]:
        record = self._records.get(context.user_id, kind, record_id)
        if record is None:
            raise RecordNotFoundError(kind.value, record_id)
        return record


def pick(record: dict[str, Any], *fields: str) -> dict[str, Any]:
    return {f: record.get(f) for f in fields}


def string_property(description: str) -> dict[str, str]:
    return {"type": "string", "description": description}


def date_property(description: str) -> dict[str, str]:
    return {"type": "string", "description": f"{description} (YYYY-MM-DD)"}
