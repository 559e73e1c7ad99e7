from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, pick, string_property
from sbos_assistant.tools.names import ToolName

CATEGORIES = ("groceries", "household", "personal", "business", "other")


class GetShoppingListTool(RecordTool):
    tool_name = ToolName.GET_SHOPPING_LIST
    tool_description = "Get the shopping list. Completed items are hidden unless includeCompleted is true."
    schema = {
        "type": "object",
        "properties": {
            "category": string_property(f"Filter by category: {', '.join(CATEGORIES)}"),
            "includeCompleted": {"type": "boolean", "description": "Include purchased items (default false)"},
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        where: dict[str, Any] = {}
        category = args.choice("category", CATEGORIES)
        if category:
            where["category"] = category
        if not args.boolean("includeCompleted", default=False):
            where["completed"] = False
        items = self._records.list(context.user_id, RecordKind.SHOPPING_ITEM, where=where, order_by="category")
        return [pick(i, "id", "name", "quantity", "category", "completed") for i in items]


class AddShoppingItemTool(RecordTool):
    tool_name = ToolName.ADD_SHOPPING_ITEM
    tool_description = "Add an item to the shopping list."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "name": string_property("Item name"),
            "quantity": {"type": "number", "description": "Quantity (default 1)"},
            "category": string_property(f"Category: {', '.join(CATEGORIES)} (default 'groceries')"),
            "notes": string_property("Brand, size, or other notes"),
        },
        "required": ["name"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        item = self._records.create(
            context.user_id,
            RecordKind.SHOPPING_ITEM,
            {
                "name": args.string("name", required=True),
                "quantity": args.integer("quantity", default=1, minimum=1),
                "category": args.choice("category", CATEGORIES, default="groceries"),
                "notes": args.string("notes"),
                "completed": False,
            },
        )
        return {"success": True, "item": pick(item, "id", "name", "quantity")}


class CompleteShoppingItemTool(RecordTool):
    tool_name = ToolName.COMPLETE_SHOPPING_ITEM
    tool_description = "Mark a shopping list item as purchased."
    mutating = True
    schema = {
        "type": "object",
        "properties": {"itemId": string_property("Shopping item ID")},
        "required": ["itemId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        item = self._require(context, RecordKind.SHOPPING_ITEM, args.string("itemId", required=True))
        updated = self._records.update(
            context.user_id,
            RecordKind.SHOPPING_ITEM,
            item["id"],
            {"completed": True, "completed_on": context.today.isoformat()},
        )
        return {"success": True, "item": pick(updated or item, "id", "name", "completed")}
