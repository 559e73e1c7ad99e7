from typing import Any

from sbos_assistant.errors import RecordNotFoundError
from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, pick, string_property
from sbos_assistant.tools.names import ToolName

BOOK_STATUSES = ("to_read", "reading", "finished", "abandoned")


class GetBooksTool(RecordTool):
    tool_name = ToolName.GET_BOOKS
    tool_description = "Get books on the reading list, optionally filtered by status."
    schema = {
        "type": "object",
        "properties": {"status": string_property(f"Filter by status: {', '.join(BOOK_STATUSES)}")},
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        status = args.choice("status", BOOK_STATUSES)
        where = {"status": status} if status else None
        books = self._records.list(context.user_id, RecordKind.BOOK, where=where, order_by="title")
        return [pick(b, "id", "title", "author", "status", "rating") for b in books]


class AddBookTool(RecordTool):
    tool_name = ToolName.ADD_BOOK
    tool_description = "Add a book to the reading list."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "title": string_property("Book title"),
            "author": string_property("Author"),
            "status": string_property(f"Status: {', '.join(BOOK_STATUSES)} (default 'to_read')"),
            "notes": string_property("Why it is on the list"),
        },
        "required": ["title"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        book = self._records.create(
            context.user_id,
            RecordKind.BOOK,
            {
                "title": args.string("title", required=True),
                "author": args.string("author"),
                "status": args.choice("status", BOOK_STATUSES, default="to_read"),
                "notes": args.string("notes"),
            },
        )
        return {"success": True, "book": pick(book, "id", "title", "status")}


class UpdateBookStatusTool(RecordTool):
    tool_name = ToolName.UPDATE_BOOK_STATUS
    tool_description = "Update a book's reading status, rating, or notes."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "bookId": string_property("Book ID"),
            "status": string_property(f"New status: {', '.join(BOOK_STATUSES)}"),
            "rating": {"type": "number", "description": "Rating 1-5"},
            "notes": string_property("Notes or key takeaways"),
        },
        "required": ["bookId", "status"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        book_id = args.string("bookId", required=True)
        changes: dict[str, Any] = {"status": args.choice("status", BOOK_STATUSES, required=True)}
        if changes["status"] == "finished":
            changes["finished_on"] = context.today.isoformat()
        if args.has("rating"):
            changes["rating"] = args.integer("rating", minimum=1, maximum=5)
        if args.has("notes"):
            changes["notes"] = args.string("notes")
        book = self._records.update(context.user_id, RecordKind.BOOK, book_id, changes)
        if book is None:
            raise RecordNotFoundError(RecordKind.BOOK.value, book_id)
        return {"success": True, "book": pick(book, "id", "title", "status", "rating")}
