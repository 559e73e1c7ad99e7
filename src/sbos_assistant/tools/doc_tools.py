from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, pick, string_property
from sbos_assistant.tools.names import ToolName

DOC_TYPES = ("page", "sop", "prompt", "spec", "template", "playbook", "research")
DOC_STATUSES = ("draft", "active", "archived")

_PREVIEW_CHARS = 200


def _preview(body: str | None) -> str:
    text = " ".join((body or "").split())
    if len(text) <= _PREVIEW_CHARS:
        return text
    return text[: _PREVIEW_CHARS - 3] + "..."


class GetDocsTool(RecordTool):
    tool_name = ToolName.GET_DOCS
    tool_description = (
        "Get documents (SOPs, prompts, specs, templates). Use when the user asks about documents "
        "or their knowledge base."
    )
    schema = {
        "type": "object",
        "properties": {
            "type": string_property(f"Filter by type: {', '.join(DOC_TYPES)}"),
            "ventureId": string_property("Filter by venture"),
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        where: dict[str, Any] = {}
        doc_type = args.choice("type", DOC_TYPES)
        if doc_type:
            where["type"] = doc_type
        venture_id = args.string("ventureId")
        if venture_id:
            where["venture_id"] = venture_id
        docs = self._records.list(context.user_id, RecordKind.DOCUMENT, where=where, order_by="title")
        return [pick(d, "id", "title", "type", "status", "venture_id") for d in docs]


class GetDocumentTool(RecordTool):
    tool_name = ToolName.GET_DOCUMENT
    tool_description = "Get the full content of one document by ID."
    schema = {
        "type": "object",
        "properties": {"docId": string_property("Document ID")},
        "required": ["docId"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        doc = self._require(context, RecordKind.DOCUMENT, args.string("docId", required=True))
        return pick(doc, "id", "title", "type", "status", "venture_id", "body", "updated_at")


class CreateDocumentTool(RecordTool):
    tool_name = ToolName.CREATE_DOCUMENT
    tool_description = "Create a document (SOP, spec, prompt, template, notes page) in the knowledge base."
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "title": string_property("Document title"),
            "type": string_property(f"Type: {', '.join(DOC_TYPES)} (default 'page')"),
            "body": string_property("Markdown body"),
            "ventureId": string_property("Venture ID to file it under"),
            "status": string_property(f"Status: {', '.join(DOC_STATUSES)} (default 'draft')"),
        },
        "required": ["title"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        venture_id = args.string("ventureId")
        if venture_id:
            self._require(context, RecordKind.VENTURE, venture_id)
        doc = self._records.create(
            context.user_id,
            RecordKind.DOCUMENT,
            {
                "title": args.string("title", required=True),
                "type": args.choice("type", DOC_TYPES, default="page"),
                "body": args.string("body", default=""),
                "venture_id": venture_id,
                "status": args.choice("status", DOC_STATUSES, default="draft"),
            },
        )
        return {"success": True, "document": pick(doc, "id", "title", "type")}


class SearchDocsTool(RecordTool):
    tool_name = ToolName.SEARCH_DOCS
    tool_description = "Search documents by keyword in their title or body."
    schema = {
        "type": "object",
        "properties": {
            "query": string_property("Keyword or phrase to look for"),
            "limit": {"type": "number", "description": "Max results (default 10)"},
        },
        "required": ["query"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        needle = args.string("query", required=True).lower()
        limit = args.integer("limit", default=10, minimum=1, maximum=100)
        matches: list[dict[str, Any]] = []
        for doc in self._records.list(context.user_id, RecordKind.DOCUMENT, order_by="updated_at", descending=True):
            title = str(doc.get("title") or "")
            body = str(doc.get("body") or "")
            if needle in title.lower() or needle in body.lower():
                matches.append({**pick(doc, "id", "title", "type"), "preview": _preview(body)})
                if len(matches) >= limit:
                    break
        return matches
