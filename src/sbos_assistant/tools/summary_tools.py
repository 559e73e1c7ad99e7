from typing import Any

from sbos_assistant.storage.records import RecordKind, RecordStore
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool
from sbos_assistant.tools.names import ToolName


def build_summary(records: RecordStore, user_id: str, today: str) -> dict[str, Any]:
    ventures = records.list(user_id, RecordKind.VENTURE)
    projects = records.list(user_id, RecordKind.PROJECT)
    tasks = records.list(user_id, RecordKind.TASK)
    captures = records.list(user_id, RecordKind.CAPTURE)
    active_tasks = [t for t in tasks if t.get("status") not in ("done", "cancelled")]
    return {
        "ventures": len(ventures),
        "activeVentures": sum(1 for v in ventures if v.get("status") == "active"),
        "projects": len(projects),
        "activeProjects": sum(1 for p in projects if p.get("status") == "in_progress"),
        "totalTasks": len(tasks),
        "activeTasks": len(active_tasks),
        "todayTasks": sum(1 for t in active_tasks if today in (t.get("focus_date"), t.get("due_date"))),
        "overdueTasks": sum(1 for t in active_tasks if t.get("due_date") and t["due_date"] < today),
        "unclarifiedCaptures": sum(1 for c in captures if not c.get("clarified")),
    }


class GetSummaryTool(RecordTool):
    tool_name = ToolName.GET_SUMMARY
    tool_description = (
        "Get a summary of the user's system: venture count, active projects, pending tasks, inbox size."
    )

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        return build_summary(self._records, context.user_id, context.today.isoformat())
