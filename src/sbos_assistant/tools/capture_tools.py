from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import DEFAULT_PRIORITY, RecordTool, pick, string_property
from sbos_assistant.tools.names import ToolName

CAPTURE_TYPES = ("idea", "task", "note", "link", "question")


class GetCapturesTool(RecordTool):
    tool_name = ToolName.GET_CAPTURES
    tool_description = (
        "Get capture items (inbox/brain dump items). Use when the user asks about their "
        "captures, inbox, or ideas."
    )
    schema = {
        "type": "object",
        "properties": {"clarified": {"type": "boolean", "description": "Filter by clarified status"}},
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        clarified = args.boolean("clarified")
        where = {"clarified": clarified} if clarified is not None else None
        captures = self._records.list(
            context.user_id, RecordKind.CAPTURE, where=where, order_by="created_at", descending=True
        )
        return [pick(c, "id", "title", "type", "clarified") for c in captures]


class CreateCaptureTool(RecordTool):
    tool_name = ToolName.CREATE_CAPTURE
    tool_description = (
        "Create a quick capture/inbox item. Use for quick thoughts, ideas, or items to process later."
    )
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "title": string_property("Capture title/content"),
            "type": string_property(f"Type: {', '.join(CAPTURE_TYPES)} (default 'idea')"),
            "notes": string_property("Additional notes"),
        },
        "required": ["title"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        capture = self._records.create(
            context.user_id,
            RecordKind.CAPTURE,
            {
                "title": args.string("title", required=True),
                "type": args.choice("type", CAPTURE_TYPES, default="idea"),
                "notes": args.string("notes"),
                "clarified": False,
            },
        )
        return {"success": True, "capture": pick(capture, "id", "title")}


class ClarifyCaptureTool(RecordTool):
    tool_name = ToolName.CLARIFY_CAPTURE
    tool_description = (
        "Mark an inbox capture as clarified, optionally converting it into a task."
    )
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "captureId": string_property("Capture ID"),
            "convertToTask": {"type": "boolean", "description": "Also create a task from this capture"},
            "ventureId": string_property("Venture ID for the new task"),
        },
        "required": ["captureId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        capture = self._require(context, RecordKind.CAPTURE, args.string("captureId", required=True))
        result: dict[str, Any] = {"success": True}
        changes: dict[str, Any] = {"clarified": True}

        if args.boolean("convertToTask", default=False):
            venture_id = args.string("ventureId")
            if venture_id:
                self._require(context, RecordKind.VENTURE, venture_id)
            task = self._records.create(
                context.user_id,
                RecordKind.TASK,
                {
                    "title": capture.get("title"),
                    "status": "next",
                    "priority": DEFAULT_PRIORITY,
                    "venture_id": venture_id,
                    "notes": capture.get("notes"),
                    "source_capture_id": capture["id"],
                },
            )
            changes["linked_task_id"] = task["id"]
            result["task"] = pick(task, "id", "title")

        updated = self._records.update(context.user_id, RecordKind.CAPTURE, capture["id"], changes)
        result["capture"] = pick(updated or capture, "id", "title", "clarified")
        return result
