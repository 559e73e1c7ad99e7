from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Callable, Iterable

from loguru import logger

from sbos_assistant.errors import ToolError
from sbos_assistant.models import ToolDefinition, ToolInvocation, ToolResult
from sbos_assistant.storage.records import RecordStore
from sbos_assistant.tool import Tool, ToolContext
from sbos_assistant.tools.book_tools import AddBookTool, GetBooksTool, UpdateBookStatusTool
from sbos_assistant.tools.capture_tools import ClarifyCaptureTool, CreateCaptureTool, GetCapturesTool
from sbos_assistant.tools.day_tools import GetDayTool, LogEveningReviewTool, UpdateDayTool
from sbos_assistant.tools.doc_tools import CreateDocumentTool, GetDocsTool, GetDocumentTool, SearchDocsTool
from sbos_assistant.tools.health_tools import (
    GetHealthEntriesTool,
    GetNutritionEntriesTool,
    LogHealthEntryTool,
    LogMealTool,
)
from sbos_assistant.tools.names import ToolName
from sbos_assistant.tools.project_tools import CreateProjectTool, GetProjectDetailsTool, GetProjectsTool
from sbos_assistant.tools.shopping_tools import AddShoppingItemTool, CompleteShoppingItemTool, GetShoppingListTool
from sbos_assistant.tools.summary_tools import GetSummaryTool
from sbos_assistant.tools.task_tools import (
    CreateTaskTool,
    DeleteTaskTool,
    GetTasksTool,
    GetTodayTasksTool,
    UpdateTaskTool,
)
from sbos_assistant.tools.trading_tools import AnalyzeTradingPerformanceTool, GetTradingJournalTool, LogTradeTool
from sbos_assistant.tools.venture_tools import CreateVentureTool, GetVentureSummaryTool, GetVenturesTool

DEFAULT_MAX_TOOL_RESULT_CHARS = 40_000


class ToolRegistry:
    """The closed catalog of tools advertised to the model.

    ``invoke`` never raises: unknown names, bad arguments and handler failures
    all come back as an ``{"error": ...}`` payload for the model to read.
    """

    def __init__(self, *, max_tool_result_chars: int = DEFAULT_MAX_TOOL_RESULT_CHARS):
        self._tools: dict[str, Tool] = {}
        self._max_tool_result_chars = max_tool_result_chars

    def register(self, tool: Tool) -> None:
        try:
            ToolName(tool.name)
        except ValueError:
            raise ValueError(f"Tool '{tool.name}' is not part of the tool catalog") from None
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool

    def register_all(self, tools: Iterable[Tool]) -> None:
        for tool in tools:
            self.register(tool)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def describe(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(name=t.name, description=t.description, parameter_schema=t.input_schema)
            for t in self._tools.values()
        ]

    async def invoke(self, invocation: ToolInvocation, context: ToolContext) -> ToolResult:
        tool = self._tools.get(invocation.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {invocation.name}")
            return self._error(invocation, f"Unknown tool: {invocation.name}")

        started = time.monotonic()
        try:
            payload = await tool.execute(context, invocation.arguments)
        except ToolError as ex:
            logger.info(f"Tool {invocation.name} rejected call {invocation.id}: {ex}")
            return self._error(invocation, str(ex))
        except Exception as ex:
            logger.error(f"Tool {invocation.name} failed: {type(ex).__name__}: {ex}")
            return self._error(invocation, f"Tool {invocation.name} failed: {ex}")

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.debug(f"Tool {invocation.name} completed in {elapsed_ms:.0f}ms")
        content = self._truncate(invocation.name, json.dumps(payload, default=str))
        return ToolResult(invocation_id=invocation.id, tool_name=invocation.name, content=content)

    def _truncate(self, tool_name: str, content: str) -> str:
        limit = self._max_tool_result_chars
        if limit <= 0 or len(content) <= limit:
            return content
        logger.warning(f"{tool_name} result truncated from {len(content):,} to {limit:,} chars")
        return content[:limit] + f"\n\n[OUTPUT TRUNCATED: Showing {limit:,} of {len(content):,} characters]"

    @staticmethod
    def _error(invocation: ToolInvocation, message: str) -> ToolResult:
        return ToolResult(
            invocation_id=invocation.id,
            tool_name=invocation.name,
            content=json.dumps({"error": message}),
            is_error=True,
        )


@dataclass(frozen=True)
class ToolGroup:
    name: str
    build: Callable[[RecordStore], list[Tool]]


def _planning_tools(records: RecordStore) -> list[Tool]:
    return [
        GetVenturesTool(records),
        CreateVentureTool(records),
        GetVentureSummaryTool(records),
        GetProjectsTool(records),
        GetProjectDetailsTool(records),
        CreateProjectTool(records),
        GetTasksTool(records),
        GetTodayTasksTool(records),
        CreateTaskTool(records),
        UpdateTaskTool(records),
        DeleteTaskTool(records),
        GetCapturesTool(records),
        CreateCaptureTool(records),
        ClarifyCaptureTool(records),
        GetSummaryTool(records),
    ]


def _health_tools(records: RecordStore) -> list[Tool]:
    return [
        GetHealthEntriesTool(records),
        LogHealthEntryTool(records),
        GetNutritionEntriesTool(records),
        LogMealTool(records),
    ]


def _knowledge_tools(records: RecordStore) -> list[Tool]:
    return [
        GetDocsTool(records),
        GetDocumentTool(records),
        CreateDocumentTool(records),
        SearchDocsTool(records),
    ]


def _trading_tools(records: RecordStore) -> list[Tool]:
    return [
        GetTradingJournalTool(records),
        LogTradeTool(records),
        AnalyzeTradingPerformanceTool(records),
    ]


def _life_tools(records: RecordStore) -> list[Tool]:
    return [
        GetShoppingListTool(records),
        AddShoppingItemTool(records),
        CompleteShoppingItemTool(records),
        GetBooksTool(records),
        AddBookTool(records),
        UpdateBookStatusTool(records),
        GetDayTool(records),
        UpdateDayTool(records),
        LogEveningReviewTool(records),
    ]


_GROUPS = [
    ToolGroup(name="planning", build=_planning_tools),
    ToolGroup(name="health", build=_health_tools),
    ToolGroup(name="knowledge", build=_knowledge_tools),
    ToolGroup(name="trading", build=_trading_tools),
    ToolGroup(name="life", build=_life_tools),
]

TOOL_GROUPS = tuple(g.name for g in _GROUPS)


def build_registry(
    records: RecordStore,
    *,
    disabled_groups: Iterable[str] = (),
    max_tool_result_chars: int = DEFAULT_MAX_TOOL_RESULT_CHARS,
) -> ToolRegistry:
    disabled = {g.strip().lower() for g in disabled_groups}
    unknown = disabled - set(TOOL_GROUPS)
    if unknown:
        logger.warning(f"Ignoring unknown tool group(s): {', '.join(sorted(unknown))}")

    registry = ToolRegistry(max_tool_result_chars=max_tool_result_chars)
    for group in _GROUPS:
        if group.name not in disabled:
            registry.register_all(group.build(records))
    logger.debug(f"Registered {len(registry)} tool(s)")
    return registry
