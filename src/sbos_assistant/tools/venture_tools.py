from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, pick, string_property
from sbos_assistant.tools.names import ToolName

VENTURE_STATUSES = ("planning", "active", "paused", "archived")

_VENTURE_FIELDS = ("id", "name", "status", "domain", "one_liner")


class GetVenturesTool(RecordTool):
    tool_name = ToolName.GET_VENTURES
    tool_description = (
        "Get all ventures (business initiatives). Use this when the user asks about "
        "their ventures, businesses, or initiatives."
    )
    schema = {
        "type": "object",
        "properties": {
            "status": string_property(f"Optional status filter: {', '.join(VENTURE_STATUSES)}"),
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        status = args.choice("status", VENTURE_STATUSES)
        where = {"status": status} if status else None
        ventures = self._records.list(context.user_id, RecordKind.VENTURE, where=where, order_by="name")
        return [pick(v, *_VENTURE_FIELDS) for v in ventures]


class CreateVentureTool(RecordTool):
    tool_name = ToolName.CREATE_VENTURE
    tool_description = "Create a new venture. Use when the user starts a new business or initiative."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "name": string_property("Venture name"),
            "status": string_property(f"Status: {', '.join(VENTURE_STATUSES)} (default 'active')"),
            "domain": string_property("Domain or industry, e.g. 'saas', 'media'"),
            "oneLiner": string_property("One-sentence description"),
        },
        "required": ["name"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        venture = self._records.create(
            context.user_id,
            RecordKind.VENTURE,
            {
                "name": args.string("name", required=True),
                "status": args.choice("status", VENTURE_STATUSES, default="active"),
                "domain": args.string("domain"),
                "one_liner": args.string("oneLiner"),
            },
        )
        return {"success": True, "venture": pick(venture, "id", "name", "status")}


class GetVentureSummaryTool(RecordTool):
    tool_name = ToolName.GET_VENTURE_SUMMARY
    tool_description = (
        "Get an overview of one venture: its details plus counts of projects and open tasks."
    )
    schema = {
        "type": "object",
        "properties": {"ventureId": string_property("Venture ID")},
        "required": ["ventureId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        venture = self._require(context, RecordKind.VENTURE, args.string("ventureId", required=True))
        projects = self._records.list(context.user_id, RecordKind.PROJECT, where={"venture_id": venture["id"]})
        tasks = self._records.list(context.user_id, RecordKind.TASK, where={"venture_id": venture["id"]})
        open_tasks = [t for t in tasks if t.get("status") not in ("done", "cancelled")]
        return {
            "venture": pick(venture, *_VENTURE_FIELDS),
            "projects": len(projects),
            "activeProjects": sum(1 for p in projects if p.get("status") == "in_progress"),
            "openTasks": len(open_tasks),
            "urgentTasks": [
                pick(t, "id", "title", "priority", "due_date")
                for t in open_tasks
                if t.get("priority") in ("P0", "P1")
            ],
        }
