import asyncio
import unittest
from typing import Any

from sbos_assistant.errors import RecordNotFoundError, ToolArgumentError
from sbos_assistant.storage import RecordKind
from sbos_assistant.tools.capture_tools import ClarifyCaptureTool, CreateCaptureTool, GetCapturesTool
from sbos_assistant.tools.project_tools import CreateProjectTool, GetProjectDetailsTool, GetProjectsTool
from sbos_assistant.tools.summary_tools import GetSummaryTool
from sbos_assistant.tools.task_tools import (
    CreateTaskTool,
    DeleteTaskTool,
    GetTasksTool,
    GetTodayTasksTool,
    UpdateTaskTool,
)
from sbos_assistant.tools.venture_tools import CreateVentureTool, GetVenturesTool, GetVentureSummaryTool
from tests.storage.base import OTHER_USER_ID, USER_ID, StoreTestCase


class _ToolTestCase(StoreTestCase):
    def _run(self, tool_cls, args: dict[str, Any] | None = None) -> Any:
        return asyncio.run(tool_cls(self._records).execute(self._context, args or {}))


class TaskToolTests(_ToolTestCase):
    def test_create_task_defaults(self) -> None:
        result = self._run(CreateTaskTool, {"title": "Ship spec"})

        self.assertTrue(result["success"])
        task = self._records.get(USER_ID, RecordKind.TASK, result["task"]["id"])
        self.assertEqual("Ship spec", task["title"])
        self.assertEqual("next", task["status"])
        self.assertEqual("P2", task["priority"])

    def test_create_task_requires_title(self) -> None:
        with self.assertRaises(ToolArgumentError):
            self._run(CreateTaskTool, {})

    def test_create_task_rejects_unknown_venture(self) -> None:
        with self.assertRaises(RecordNotFoundError):
            self._run(CreateTaskTool, {"title": "x", "ventureId": "nope"})

    def test_get_tasks_filters_and_orders_by_priority(self) -> None:
        self._run(CreateTaskTool, {"title": "later", "priority": "P3"})
        self._run(CreateTaskTool, {"title": "now", "priority": "P0"})
        self._run(CreateTaskTool, {"title": "parked", "status": "idea"})

        tasks = self._run(GetTasksTool, {"status": "next"})

        self.assertEqual(["now", "later"], [t["title"] for t in tasks])

    def test_today_tasks_merges_focus_and_due_and_skips_done(self) -> None:
        self._run(CreateTaskTool, {"title": "focus", "focusDate": "2025-03-14", "priority": "P1"})
        self._run(CreateTaskTool, {"title": "due", "dueDate": "2025-03-14", "priority": "P0"})
        self._run(CreateTaskTool, {"title": "both", "dueDate": "2025-03-14", "focusDate": "2025-03-14"})
        self._run(CreateTaskTool, {"title": "finished", "focusDate": "2025-03-14", "status": "done"})
        self._run(CreateTaskTool, {"title": "tomorrow", "focusDate": "2025-03-15"})

        tasks = self._run(GetTodayTasksTool)

        self.assertEqual(["due", "focus", "both"], [t["title"] for t in tasks])

    def test_update_task_to_done_sets_completion_date(self) -> None:
        created = self._run(CreateTaskTool, {"title": "x"})

        self._run(UpdateTaskTool, {"taskId": created["task"]["id"], "status": "done"})

        task = self._records.get(USER_ID, RecordKind.TASK, created["task"]["id"])
        self.assertEqual("done", task["status"])
        self.assertEqual("2025-03-14", task["completed_at"])

    def test_update_task_without_changes_or_missing(self) -> None:
        created = self._run(CreateTaskTool, {"title": "x"})
        with self.assertRaises(ToolArgumentError):
            self._run(UpdateTaskTool, {"taskId": created["task"]["id"]})
        with self.assertRaises(RecordNotFoundError):
            self._run(UpdateTaskTool, {"taskId": "missing", "status": "done"})

    def test_delete_task(self) -> None:
        created = self._run(CreateTaskTool, {"title": "x"})

        result = self._run(DeleteTaskTool, {"taskId": created["task"]["id"]})

        self.assertEqual("x", result["deleted"]["title"])
        self.assertEqual([], self._records.list(USER_ID, RecordKind.TASK))

    def test_tasks_are_scoped_to_the_current_user(self) -> None:
        self._records.create(OTHER_USER_ID, RecordKind.TASK, {"title": "theirs", "status": "next"})
        self.assertEqual([], self._run(GetTasksTool))


class CaptureToolTests(_ToolTestCase):
    def test_create_and_filter_captures(self) -> None:
        self._run(CreateCaptureTool, {"title": "Podcast idea"})
        self._run(CreateCaptureTool, {"title": "Question", "type": "question"})

        captures = self._run(GetCapturesTool, {"clarified": False})

        self.assertEqual(2, len(captures))
        self.assertEqual({"idea", "question"}, {c["type"] for c in captures})

    def test_clarify_with_task_conversion(self) -> None:
        capture = self._run(CreateCaptureTool, {"title": "Call accountant", "notes": "before Friday"})

        result = self._run(ClarifyCaptureTool, {"captureId": capture["capture"]["id"], "convertToTask": True})

        self.assertTrue(result["capture"]["clarified"])
        task = self._records.get(USER_ID, RecordKind.TASK, result["task"]["id"])
        self.assertEqual("Call accountant", task["title"])
        self.assertEqual(capture["capture"]["id"], task["source_capture_id"])
        self.assertEqual([], self._run(GetCapturesTool, {"clarified": False}))


class VentureAndProjectToolTests(_ToolTestCase):
    def test_venture_lifecycle_and_summary(self) -> None:
        venture = self._run(CreateVentureTool, {"name": "Acme", "domain": "saas"})["venture"]
        project = self._run(
            CreateProjectTool, {"name": "Launch", "ventureId": venture["id"], "status": "in_progress"}
        )["project"]
        self._run(CreateTaskTool, {"title": "Urgent", "ventureId": venture["id"], "priority": "P0"})
        self._run(CreateTaskTool, {"title": "Done", "ventureId": venture["id"], "status": "done"})

        summary = self._run(GetVentureSummaryTool, {"ventureId": venture["id"]})

        self.assertEqual("active", venture["status"])
        self.assertEqual(1, summary["projects"])
        self.assertEqual(1, summary["activeProjects"])
        self.assertEqual(1, summary["openTasks"])
        self.assertEqual(["Urgent"], [t["title"] for t in summary["urgentTasks"]])
        self.assertEqual([project["id"]], [p["id"] for p in self._run(GetProjectsTool, {"ventureId": venture["id"]})])

    def test_get_ventures_status_filter(self) -> None:
        self._run(CreateVentureTool, {"name": "B", "status": "paused"})
        self._run(CreateVentureTool, {"name": "A"})

        self.assertEqual(["A", "B"], [v["name"] for v in self._run(GetVenturesTool)])
        self.assertEqual(["B"], [v["name"] for v in self._run(GetVenturesTool, {"status": "paused"})])

    def test_project_details_include_tasks(self) -> None:
        project = self._run(CreateProjectTool, {"name": "Site"})["project"]
        self._run(CreateTaskTool, {"title": "Design", "projectId": project["id"]})

        details = self._run(GetProjectDetailsTool, {"projectId": project["id"]})

        self.assertEqual("not_started", details["project"]["status"])
        self.assertEqual(["Design"], [t["title"] for t in details["tasks"]])

    def test_create_project_rejects_unknown_venture(self) -> None:
        with self.assertRaises(RecordNotFoundError):
            self._run(CreateProjectTool, {"name": "x", "ventureId": "nope"})


class SummaryToolTests(_ToolTestCase):
    def test_summary_counts(self) -> None:
        self._run(CreateVentureTool, {"name": "Acme"})
        self._run(CreateTaskTool, {"title": "today", "focusDate": "2025-03-14"})
        self._run(CreateTaskTool, {"title": "late", "dueDate": "2025-03-01"})
        self._run(CreateTaskTool, {"title": "closed", "status": "done", "dueDate": "2025-03-01"})
        self._run(CreateCaptureTool, {"title": "inbox"})

        summary = self._run(GetSummaryTool)

        self.assertEqual(1, summary["ventures"])
        self.assertEqual(1, summary["activeVentures"])
        self.assertEqual(3, summary["totalTasks"])
        self.assertEqual(2, summary["activeTasks"])
        self.assertEqual(1, summary["todayTasks"])
        self.assertEqual(1, summary["overdueTasks"])
        self.assertEqual(1, summary["unclarifiedCaptures"])


if __name__ == "__main__":
    unittest.main()
