from typing import Any

from sbos_assistant.errors import RecordNotFoundError, ToolArgumentError
from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import (
    DEFAULT_PRIORITY,
    PRIORITIES,
    TASK_STATUSES,
    RecordTool,
    date_property,
    pick,
    string_property,
)
from sbos_assistant.tools.names import ToolName

DEFAULT_TASK_STATUS = "next"

_TASK_FIELDS = ("id", "title", "status", "priority", "due_date", "focus_date", "venture_id", "project_id")


def _check_links(tool: RecordTool, context: ToolContext, venture_id: str | None, project_id: str | None) -> None:
    if venture_id:
        tool._require(context, RecordKind.VENTURE, venture_id)
    if project_id:
        tool._require(context, RecordKind.PROJECT, project_id)


class GetTasksTool(RecordTool):
    tool_name = ToolName.GET_TASKS
    tool_description = (
        "Get tasks with optional filters. Use when the user asks about tasks, to-dos, "
        "or what they need to do."
    )
    schema = {
        "type": "object",
        "properties": {
            "status": string_property(f"Filter by status: {', '.join(TASK_STATUSES)}"),
            "ventureId": string_property("Filter by venture ID"),
            "projectId": string_property("Filter by project ID"),
            "priority": string_property("Filter by priority: P0, P1, P2, P3"),
            "focusDate": date_property("Filter by focus date"),
            "limit": {"type": "number", "description": "Max tasks to return (default 50)"},
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        where: dict[str, Any] = {}
        status = args.choice("status", TASK_STATUSES)
        if status:
            where["status"] = status
        priority = args.choice("priority", PRIORITIES)
        if priority:
            where["priority"] = priority
        for arg_key, field in (("ventureId", "venture_id"), ("projectId", "project_id")):
            value = args.string(arg_key)
            if value:
                where[field] = value
        focus_date = args.iso_date("focusDate")
        if focus_date:
            where["focus_date"] = focus_date
        tasks = self._records.list(
            context.user_id,
            RecordKind.TASK,
            where=where,
            order_by="priority",
            limit=args.integer("limit", default=50, minimum=1, maximum=500),
        )
        return [pick(t, *_TASK_FIELDS) for t in tasks]


class GetTodayTasksTool(RecordTool):
    tool_name = ToolName.GET_TODAY_TASKS
    tool_description = (
        "Get tasks scheduled or due today. Use when the user asks 'what do I have today' "
        "or about today's tasks."
    )

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        today = context.today.isoformat()
        scheduled = self._records.list(context.user_id, RecordKind.TASK, where={"focus_date": today})
        due = self._records.list(context.user_id, RecordKind.TASK, where={"due_date": today})
        seen: set[str] = set()
        tasks: list[dict[str, Any]] = []
        for task in scheduled + due:
            if task["id"] in seen or task.get("status") in ("done", "cancelled"):
                continue
            seen.add(task["id"])
            tasks.append(pick(task, "id", "title", "status", "priority", "focus_slot", "due_date"))
        tasks.sort(key=lambda t: t.get("priority") or DEFAULT_PRIORITY)
        return tasks


class CreateTaskTool(RecordTool):
    tool_name = ToolName.CREATE_TASK
    tool_description = "Create a new task. Use when the user wants to add a task or to-do item."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "title": string_property("Task title"),
            "status": string_property(f"Status: {', '.join(TASK_STATUSES)} (default 'next')"),
            "priority": string_property("Priority: P0, P1, P2, P3 (default P2)"),
            "ventureId": string_property("Venture ID to associate with"),
            "projectId": string_property("Project ID to associate with"),
            "dueDate": date_property("Due date"),
            "focusDate": date_property("Focus date for scheduling"),
            "notes": string_property("Additional notes"),
        },
        "required": ["title"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        venture_id = args.string("ventureId")
        project_id = args.string("projectId")
        _check_links(self, context, venture_id, project_id)
        task = self._records.create(
            context.user_id,
            RecordKind.TASK,
            {
                "title": args.string("title", required=True),
                "status": args.choice("status", TASK_STATUSES, default=DEFAULT_TASK_STATUS),
                "priority": args.choice("priority", PRIORITIES, default=DEFAULT_PRIORITY),
                "venture_id": venture_id,
                "project_id": project_id,
                "due_date": args.iso_date("dueDate"),
                "focus_date": args.iso_date("focusDate"),
                "notes": args.string("notes"),
            },
        )
        return {"success": True, "task": pick(task, "id", "title")}


class UpdateTaskTool(RecordTool):
    tool_name = ToolName.UPDATE_TASK
    tool_description = "Update an existing task. Use when the user wants to modify, complete, or reschedule a task."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "taskId": string_property("Task ID to update"),
            "title": {"type": "string"},
            "status": string_property(f"New status: {', '.join(TASK_STATUSES)}"),
            "priority": string_property("New priority: P0, P1, P2, P3"),
            "notes": {"type": "string"},
            "dueDate": date_property("New due date"),
            "focusDate": date_property("New focus date"),
        },
        "required": ["taskId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        task_id = args.string("taskId", required=True)
        changes: dict[str, Any] = {}
        if args.has("title"):
            changes["title"] = args.string("title")
        if args.has("status"):
            changes["status"] = args.choice("status", TASK_STATUSES)
            if changes["status"] == "done":
                changes["completed_at"] = context.today.isoformat()
        if args.has("priority"):
            changes["priority"] = args.choice("priority", PRIORITIES)
        if args.has("notes"):
            changes["notes"] = args.string("notes")
        if args.has("dueDate"):
            changes["due_date"] = args.iso_date("dueDate")
        if args.has("focusDate"):
            changes["focus_date"] = args.iso_date("focusDate")
        if not changes:
            raise ToolArgumentError("No fields to update were provided")

        task = self._records.update(context.user_id, RecordKind.TASK, task_id, changes)
        if task is None:
            raise RecordNotFoundError(RecordKind.TASK.value, task_id)
        return {"success": True, "task": pick(task, "id", "title", "status")}


class DeleteTaskTool(RecordTool):
    tool_name = ToolName.DELETE_TASK
    tool_description = "Delete a task permanently. Only use when the user explicitly asks to delete or remove a task."
    mutating = True
    schema = {
        "type": "object",
        "properties": {"taskId": string_property("Task ID to delete")},
        "required": ["taskId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        task = self._require(context, RecordKind.TASK, args.string("taskId", required=True))
        self._records.delete(context.user_id, RecordKind.TASK, task["id"])
        return {"success": True, "deleted": pick(task, "id", "title")}
