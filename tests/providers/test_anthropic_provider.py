import asyncio
import unittest
from types import SimpleNamespace

import anthropic
import httpx

from sbos_assistant.errors import ProviderError
from sbos_assistant.models import CompletionRequest, Message, ToolDefinition, ToolInvocation
from sbos_assistant.providers.anthropic_provider import (
    AnthropicProvider,
    _to_anthropic_messages,
    _to_anthropic_tools,
    classify_anthropic_error,
)

_REQUEST = httpx.Request("POST", "https://api.anthropic.test/v1/messages")


def _msg(role: str, content: str = "", **kwargs) -> Message:
    return Message(
        id=f"m-{role}",
        session_id=None,
        user_id="u1",
        role=role,
        content=content,
        created_at="2025-03-14T09:00:00+00:00",
        **kwargs,
    )


def _status_error(cls, status: int):
    return cls("boom", response=httpx.Response(status, request=_REQUEST), body=None)


class _FakeMessages:
    def __init__(self, response):
        self._response = response
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self._response, Exception):
            raise self._response
        return self._response


def _provider(response) -> tuple[AnthropicProvider, _FakeMessages]:
    messages = _FakeMessages(response)
    return AnthropicProvider("key", max_attempts=1, client=SimpleNamespace(messages=messages)), messages


def _request(messages: list[Message], tools: list[ToolDefinition] | None = None) -> CompletionRequest:
    return CompletionRequest(
        model="claude-test",
        temperature=0.7,
        max_tokens=1024,
        system_prompt="You are SB-OS Assistant.",
        messages=messages,
        tools=tools or [],
    )


class ToAnthropicMessagesTests(unittest.TestCase):
    def test_plain_messages_pass_through(self) -> None:
        messages, notes = _to_anthropic_messages([_msg("user", "hello"), _msg("assistant", "hi")])

        self.assertEqual([{"role": "user", "content": "hello"}, {"role": "assistant", "content": "hi"}], messages)
        self.assertEqual([], notes)

    def test_system_messages_are_split_out(self) -> None:
        messages, notes = _to_anthropic_messages([_msg("system", "Be terse."), _msg("user", "hi")])

        self.assertEqual(["Be terse."], notes)
        self.assertEqual(1, len(messages))

    def test_tool_calls_and_results(self) -> None:
        calls = [
            ToolInvocation(id="t1", name="get_tasks", arguments={"status": "next"}),
            ToolInvocation(id="t2", name="get_summary"),
        ]
        messages, _ = _to_anthropic_messages([
            _msg("assistant", "Checking.", tool_calls=calls),
            _msg("tool", "[]", tool_call_id="t1"),
            _msg("tool", '{"error": "x"}', tool_call_id="t2", metadata={"is_error": True}),
        ])

        self.assertEqual(2, len(messages))
        assistant = messages[0]["content"]
        self.assertEqual({"type": "text", "text": "Checking."}, assistant[0])
        self.assertEqual(
            {"type": "tool_use", "id": "t1", "name": "get_tasks", "input": {"status": "next"}}, assistant[1]
        )
        results = messages[1]
        self.assertEqual("user", results["role"])
        self.assertEqual(["t1", "t2"], [b["tool_use_id"] for b in results["content"]])
        self.assertNotIn("is_error", results["content"][0])
        self.assertTrue(results["content"][1]["is_error"])


class ToAnthropicToolsTests(unittest.TestCase):
    def test_tool_format(self) -> None:
        schema = {"type": "object", "properties": {}}
        self.assertEqual(
            [{"name": "get_summary", "description": "Summary", "input_schema": schema}],
            _to_anthropic_tools([ToolDefinition("get_summary", "Summary", schema)]),
        )


class ClassifyAnthropicErrorTests(unittest.TestCase):
    def test_kinds(self) -> None:
        cases = [
            (_status_error(anthropic.AuthenticationError, 401), "auth"),
            (_status_error(anthropic.PermissionDeniedError, 403), "auth"),
            (_status_error(anthropic.RateLimitError, 429), "quota"),
            (anthropic.APITimeoutError(request=_REQUEST), "timeout"),
            (anthropic.APIConnectionError(request=_REQUEST), "network"),
            (_status_error(anthropic.BadRequestError, 400), "bad_request"),
        ]
        for ex, kind in cases:
            with self.subTest(error=type(ex).__name__, kind=kind):
                self.assertEqual(kind, classify_anthropic_error(ex).kind)


class AnthropicProviderCompleteTests(unittest.TestCase):
    def test_text_and_tool_use_blocks(self) -> None:
        response = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="Let me look."),
                SimpleNamespace(type="tool_use", id="t1", name="get_today_tasks", input={}),
            ],
            usage=SimpleNamespace(input_tokens=100, output_tokens=20),
            model="claude-test",
            stop_reason="tool_use",
        )
        provider, fake = _provider(response)
        tools = [ToolDefinition("get_today_tasks", "Today", {"type": "object", "properties": {}})]

        result = asyncio.run(provider.complete(_request([_msg("system", "Note."), _msg("user", "hi")], tools)))

        self.assertEqual("Let me look.", result.text)
        self.assertEqual([ToolInvocation("t1", "get_today_tasks", {})], result.tool_calls)
        self.assertEqual(120, result.tokens_used)
        self.assertEqual("tool_use", result.finish_reason)
        sent = fake.calls[0]
        self.assertEqual("You are SB-OS Assistant.\n\nNote.", sent["system"])
        self.assertEqual({"type": "auto"}, sent["tool_choice"])
        self.assertEqual([{"role": "user", "content": "hi"}], sent["messages"])

    def test_no_tools_means_no_tool_choice(self) -> None:
        response = SimpleNamespace(
            content=[SimpleNamespace(type="text", text="Hi")], usage=None, model="", stop_reason=None
        )
        provider, fake = _provider(response)

        result = asyncio.run(provider.complete(_request([_msg("user", "hi")])))

        self.assertNotIn("tool_choice", fake.calls[0])
        self.assertEqual("claude-test", result.model)
        self.assertIsNone(result.tokens_used)

    def test_sdk_errors_are_classified(self) -> None:
        provider, _ = _provider(_status_error(anthropic.RateLimitError, 429))

        with self.assertRaises(ProviderError) as ctx:
            asyncio.run(provider.complete(_request([_msg("user", "hi")])))

        self.assertEqual("quota", ctx.exception.kind)


if __name__ == "__main__":
    unittest.main()
