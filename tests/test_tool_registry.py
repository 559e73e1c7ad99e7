import asyncio
import json
import unittest
from typing import Any

from sbos_assistant.errors import ToolArgumentError
from sbos_assistant.models import ToolInvocation
from sbos_assistant.tool import ToolContext
from sbos_assistant.tool_registry import TOOL_GROUPS, ToolRegistry, build_registry
from sbos_assistant.tools.names import ToolName
from tests.storage.base import TODAY, USER_ID, StoreTestCase


class _FakeTool:
    def __init__(self, name: str, result: Any = None, error: Exception | None = None):
        self._name = name
        self._result = result
        self._error = error

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return f"{self._name} description"

    @property
    def input_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}}

    @property
    def is_mutating(self) -> bool:
        return False

    async def execute(self, context: ToolContext, tool_input: dict[str, Any]) -> Any:
        if self._error is not None:
            raise self._error
        return self._result


def _invoke(registry: ToolRegistry, name: str, arguments: dict | None = None):
    call = ToolInvocation(id="call_1", name=name, arguments=arguments or {})
    return asyncio.run(registry.invoke(call, ToolContext(user_id=USER_ID, today=TODAY)))


class ToolRegistryTests(unittest.TestCase):
    def test_register_rejects_names_outside_catalog(self) -> None:
        registry = ToolRegistry()
        with self.assertRaisesRegex(ValueError, "catalog"):
            registry.register(_FakeTool("rm_rf"))

    def test_register_rejects_duplicates(self) -> None:
        registry = ToolRegistry()
        registry.register(_FakeTool("get_tasks"))
        with self.assertRaisesRegex(ValueError, "already registered"):
            registry.register(_FakeTool("get_tasks"))

    def test_describe_lists_registered_tools(self) -> None:
        registry = ToolRegistry()
        registry.register_all([_FakeTool("get_tasks"), _FakeTool("get_summary")])

        definitions = registry.describe()

        self.assertEqual(["get_tasks", "get_summary"], [d.name for d in definitions])
        self.assertEqual("get_tasks description", definitions[0].description)
        self.assertEqual("object", definitions[0].parameter_schema["type"])

    def test_invoke_serializes_result(self) -> None:
        registry = ToolRegistry()
        registry.register(_FakeTool("get_tasks", result=[{"id": "t1", "due": TODAY}]))

        result = _invoke(registry, "get_tasks")

        self.assertFalse(result.is_error)
        self.assertEqual("call_1", result.invocation_id)
        self.assertEqual([{"id": "t1", "due": "2025-03-14"}], json.loads(result.content))

    def test_unknown_tool_is_an_error_payload(self) -> None:
        result = _invoke(ToolRegistry(), "get_tasks")

        self.assertTrue(result.is_error)
        self.assertEqual({"error": "Unknown tool: get_tasks"}, json.loads(result.content))

    def test_tool_error_message_passed_through(self) -> None:
        registry = ToolRegistry()
        registry.register(_FakeTool("create_task", error=ToolArgumentError("Missing required argument: title")))

        result = _invoke(registry, "create_task")

        self.assertTrue(result.is_error)
        self.assertEqual({"error": "Missing required argument: title"}, json.loads(result.content))

    def test_unexpected_exception_never_escapes(self) -> None:
        registry = ToolRegistry()
        registry.register(_FakeTool("get_tasks", error=RuntimeError("db locked")))

        result = _invoke(registry, "get_tasks")

        self.assertTrue(result.is_error)
        self.assertIn("db locked", json.loads(result.content)["error"])

    def test_large_results_are_truncated(self) -> None:
        registry = ToolRegistry(max_tool_result_chars=50)
        registry.register(_FakeTool("get_docs", result="x" * 500))

        result = _invoke(registry, "get_docs")

        self.assertTrue(result.content.startswith('"' + "x" * 49))
        self.assertIn("[OUTPUT TRUNCATED: Showing 50 of 502 characters]", result.content)

    def test_zero_limit_disables_truncation(self) -> None:
        registry = ToolRegistry(max_tool_result_chars=0)
        registry.register(_FakeTool("get_docs", result="x" * 500))
        self.assertEqual(502, len(_invoke(registry, "get_docs").content))


class BuildRegistryTests(StoreTestCase):
    def test_full_registry_covers_catalog(self) -> None:
        registry = build_registry(self._records)

        self.assertEqual(len(ToolName), len(registry))
        self.assertEqual({n.value for n in ToolName}, set(registry.names))

    def test_disabled_groups_are_skipped(self) -> None:
        registry = build_registry(self._records, disabled_groups=["Trading", "unknown-group"])

        self.assertNotIn("log_trade", registry)
        self.assertIn("get_tasks", registry)
        self.assertIn("trading", TOOL_GROUPS)

    def test_invoke_real_tool_round_trip(self) -> None:
        registry = build_registry(self._records)

        created = _invoke(registry, "create_task", {"title": "Ship spec"})
        listed = _invoke(registry, "get_tasks")

        self.assertFalse(created.is_error)
        self.assertEqual(["Ship spec"], [t["title"] for t in json.loads(listed.content)])


if __name__ == "__main__":
    unittest.main()
