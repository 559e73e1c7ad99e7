from typing import Any

from sbos_assistant.errors import ToolArgumentError
from sbos_assistant.storage.records import RecordKind, RecordStore
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, date_property, string_property
from sbos_assistant.tools.names import ToolName

_DAY_SCHEMA_DATE = {"date": date_property("Day (default today)")}


def _upsert_day(records: RecordStore, user_id: str, day: str, changes: dict[str, Any]) -> dict[str, Any]:
    existing = records.find_one(user_id, RecordKind.DAY, "date", day)
    if existing is None:
        return records.create(user_id, RecordKind.DAY, {"date": day, **changes})
    return records.update(user_id, RecordKind.DAY, existing["id"], changes) or existing


class GetDayTool(RecordTool):
    tool_name = ToolName.GET_DAY
    tool_description = (
        "Get the day record (top outcomes, one thing, reflection, evening review) for a date."
    )
    schema = {"type": "object", "properties": dict(_DAY_SCHEMA_DATE), "required": []}

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        day = args.iso_date("date", default=context.today)
        record = self._records.find_one(context.user_id, RecordKind.DAY, "date", day)
        if record is None:
            return {"date": day, "exists": False}
        return {"exists": True, **record}


class UpdateDayTool(RecordTool):
    tool_name = ToolName.UPDATE_DAY
    tool_description = (
        "Set the morning plan for a day: top 3 outcomes, the one thing, mood, or a reflection."
    )
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            **_DAY_SCHEMA_DATE,
            "top3Outcomes": {"type": "array", "items": {"type": "string"}, "description": "Top three outcomes"},
            "oneThing": string_property("The single most important thing"),
            "mood": string_property("Mood for the day"),
            "reflection": string_property("Free-form reflection"),
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        day = args.iso_date("date", default=context.today)
        changes: dict[str, Any] = {}
        if args.has("top3Outcomes"):
            changes["top3_outcomes"] = (args.string_list("top3Outcomes") or [])[:3]
        for arg_key, field in (("oneThing", "one_thing"), ("mood", "mood"), ("reflection", "reflection")):
            if args.has(arg_key):
                changes[field] = args.string(arg_key)
        if not changes:
            raise ToolArgumentError("No day fields to update were provided")
        record = _upsert_day(self._records, context.user_id, day, changes)
        return {"success": True, "day": {"id": record["id"], "date": day, **changes}}


class LogEveningReviewTool(RecordTool):
    tool_name = ToolName.LOG_EVENING_REVIEW
    tool_description = "Record the evening review ritual for a day: wins, improvements, and a rating."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            **_DAY_SCHEMA_DATE,
            "wins": {"type": "array", "items": {"type": "string"}},
            "improvements": {"type": "array", "items": {"type": "string"}},
            "reflection": string_property("How the day went"),
            "rating": {"type": "number", "description": "Day rating 1-10"},
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        day = args.iso_date("date", default=context.today)
        review = {
            "wins": args.string_list("wins", default=[]),
            "improvements": args.string_list("improvements", default=[]),
            "reflection": args.string("reflection"),
            "rating": args.integer("rating", minimum=1, maximum=10),
            "completed": True,
        }
        record = _upsert_day(self._records, context.user_id, day, {"evening_review": review})
        return {"success": True, "day": {"id": record["id"], "date": day}, "eveningReview": review}
