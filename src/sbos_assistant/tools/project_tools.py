from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import DEFAULT_PRIORITY, PRIORITIES, RecordTool, date_property, pick, string_property
from sbos_assistant.tools.names import ToolName

PROJECT_STATUSES = ("not_started", "planning", "in_progress", "blocked", "done", "archived")

_PROJECT_FIELDS = ("id", "name", "status", "venture_id", "priority", "target_date")


class GetProjectsTool(RecordTool):
    tool_name = ToolName.GET_PROJECTS
    tool_description = "Get projects, optionally filtered by venture or status. Use when the user asks about projects."
    schema = {
        "type": "object",
        "properties": {
            "ventureId": string_property("Optional venture ID to filter by"),
            "status": string_property(f"Optional status filter: {', '.join(PROJECT_STATUSES)}"),
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        where: dict[str, Any] = {}
        venture_id = args.string("ventureId")
        if venture_id:
            where["venture_id"] = venture_id
        status = args.choice("status", PROJECT_STATUSES)
        if status:
            where["status"] = status
        projects = self._records.list(context.user_id, RecordKind.PROJECT, where=where, order_by="name")
        return [pick(p, *_PROJECT_FIELDS) for p in projects]


class GetProjectDetailsTool(RecordTool):
    tool_name = ToolName.GET_PROJECT_DETAILS
    tool_description = "Get one project with its tasks."
    schema = {
        "type": "object",
        "properties": {"projectId": string_property("Project ID")},
        "required": ["projectId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        project = self._require(context, RecordKind.PROJECT, args.string("projectId", required=True))
        tasks = self._records.list(context.user_id, RecordKind.TASK, where={"project_id": project["id"]})
        return {
            "project": pick(project, *_PROJECT_FIELDS, "outcome", "notes"),
            "tasks": [pick(t, "id", "title", "status", "priority", "due_date") for t in tasks],
        }


class CreateProjectTool(RecordTool):
    tool_name = ToolName.CREATE_PROJECT
    tool_description = "Create a new project, optionally inside a venture."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "name": string_property("Project name"),
            "ventureId": string_property("Venture ID to associate with"),
            "status": string_property(f"Status: {', '.join(PROJECT_STATUSES)} (default 'not_started')"),
            "priority": string_property("Priority: P0, P1, P2, P3 (default P2)"),
            "targetDate": date_property("Target completion date"),
            "outcome": string_property("Desired outcome"),
        },
        "required": ["name"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        venture_id = args.string("ventureId")
        if venture_id:
            self._require(context, RecordKind.VENTURE, venture_id)
        project = self._records.create(
            context.user_id,
            RecordKind.PROJECT,
            {
                "name": args.string("name", required=True),
                "venture_id": venture_id,
                "status": args.choice("status", PROJECT_STATUSES, default="not_started"),
                "priority": args.choice("priority", PRIORITIES, default=DEFAULT_PRIORITY),
                "target_date": args.iso_date("targetDate"),
                "outcome": args.string("outcome"),
            },
        )
        return {"success": True, "project": pick(project, "id", "name", "status")}
