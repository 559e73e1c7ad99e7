from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, date_property, pick, string_property
from sbos_assistant.tools.names import ToolName

MEAL_TYPES = ("breakfast", "lunch", "dinner", "snack")

_RANGE_SCHEMA = {
    "startDate": date_property("Start date"),
    "endDate": date_property("End date"),
    "limit": {"type": "number", "description": "Max entries to return (default 10)"},
}


class GetHealthEntriesTool(RecordTool):
    tool_name = ToolName.GET_HEALTH_ENTRIES
    tool_description = "Get health tracking entries. Use when the user asks about health, sleep, energy, or workouts."
    schema = {"type": "object", "properties": dict(_RANGE_SCHEMA), "required": []}

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        return self._records.list(
            context.user_id,
            RecordKind.HEALTH_ENTRY,
            range_field="date",
            since=args.iso_date("startDate"),
            until=args.iso_date("endDate"),
            order_by="date",
            descending=True,
            limit=args.integer("limit", default=10, minimum=1, maximum=365),
        )


class LogHealthEntryTool(RecordTool):
    tool_name = ToolName.LOG_HEALTH_ENTRY
    tool_description = (
        "Log or update the health entry for a day (sleep, energy, mood, weight, workout). "
        "Fields not provided keep their existing values."
    )
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "date": date_property("Day to log (default today)"),
            "sleepHours": {"type": "number", "description": "Hours slept"},
            "sleepQuality": string_property("Sleep quality: poor, fair, good, excellent"),
            "energyLevel": {"type": "number", "description": "Energy level 1-5"},
            "mood": string_property("Mood: low, medium, high, peak"),
            "weightKg": {"type": "number", "description": "Body weight in kg"},
            "workoutDone": {"type": "boolean", "description": "Whether a workout was done"},
            "workoutType": string_property("Workout type, e.g. strength, cardio, yoga"),
            "notes": string_property("Free-form notes"),
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        day = args.iso_date("date", default=context.today)
        fields: dict[str, Any] = {}
        if args.has("sleepHours"):
            fields["sleep_hours"] = args.number("sleepHours", minimum=0, maximum=24)
        if args.has("sleepQuality"):
            fields["sleep_quality"] = args.choice("sleepQuality", ("poor", "fair", "good", "excellent"))
        if args.has("energyLevel"):
            fields["energy_level"] = args.integer("energyLevel", minimum=1, maximum=5)
        if args.has("mood"):
            fields["mood"] = args.choice("mood", ("low", "medium", "high", "peak"))
        if args.has("weightKg"):
            fields["weight_kg"] = args.number("weightKg", minimum=0)
        if args.has("workoutDone"):
            fields["workout_done"] = args.boolean("workoutDone")
        if args.has("workoutType"):
            fields["workout_type"] = args.string("workoutType")
        if args.has("notes"):
            fields["notes"] = args.string("notes")

        existing = self._records.find_one(context.user_id, RecordKind.HEALTH_ENTRY, "date", day)
        if existing is None:
            entry = self._records.create(context.user_id, RecordKind.HEALTH_ENTRY, {"date": day, **fields})
            created = True
        else:
            entry = self._records.update(context.user_id, RecordKind.HEALTH_ENTRY, existing["id"], fields) or existing
            created = False
        return {"success": True, "created": created, "entry": pick(entry, "id", "date", *fields)}


class GetNutritionEntriesTool(RecordTool):
    tool_name = ToolName.GET_NUTRITION_ENTRIES
    tool_description = "Get nutrition/meal entries. Use when the user asks about meals, nutrition, or calories."
    schema = {"type": "object", "properties": dict(_RANGE_SCHEMA), "required": []}

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        start = args.iso_date("startDate")
        meals = self._records.list(
            context.user_id,
            RecordKind.NUTRITION_ENTRY,
            range_field="date",
            since=start,
            until=args.iso_date("endDate"),
            order_by="date",
            descending=True,
            limit=args.integer("limit", default=10, minimum=1, maximum=500),
        )
        totals = {"calories": 0.0, "protein_g": 0.0, "carbs_g": 0.0, "fats_g": 0.0}
        for meal in meals:
            for key in totals:
                value = meal.get(key)
                if isinstance(value, (int, float)):
                    totals[key] += value
        return {"entries": meals, "totals": totals}


class LogMealTool(RecordTool):
    tool_name = ToolName.LOG_MEAL
    tool_description = "Log a meal with optional macros. Use when the user tells you what they ate."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "mealType": string_property(f"Meal type: {', '.join(MEAL_TYPES)}"),
            "description": string_property("What was eaten"),
            "calories": {"type": "number"},
            "proteinG": {"type": "number"},
            "carbsG": {"type": "number"},
            "fatsG": {"type": "number"},
            "date": date_property("Day of the meal (default today)"),
        },
        "required": ["mealType", "description"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        meal = self._records.create(
            context.user_id,
            RecordKind.NUTRITION_ENTRY,
            {
                "date": args.iso_date("date", default=context.today),
                "meal_type": args.choice("mealType", MEAL_TYPES, required=True),
                "description": args.string("description", required=True),
                "calories": args.number("calories", minimum=0),
                "protein_g": args.number("proteinG", minimum=0),
                "carbs_g": args.number("carbsG", minimum=0),
                "fats_g": args.number("fatsG", minimum=0),
            },
        )
        return {"success": True, "meal": pick(meal, "id", "date", "meal_type", "description", "calories")}
