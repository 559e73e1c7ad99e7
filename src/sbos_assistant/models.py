from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

ROLES = ("user", "assistant", "tool", "system")


@dataclass(frozen=True)
class ToolInvocation:
    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolInvocation:
        arguments = data.get("arguments")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            arguments=arguments if isinstance(arguments, dict) else {},
        )


@dataclass(frozen=True)
class ToolDefinition:
    name: str
    description: str
    parameter_schema: dict[str, Any]


@dataclass(frozen=True)
class ToolResult:
    invocation_id: str
    tool_name: str
    content: str
    is_error: bool = False


@dataclass(frozen=True)
class Message:
    id: str
    session_id: str | None
    user_id: str
    role: str
    content: str
    created_at: str
    tool_call_id: str | None = None
    tool_calls: list[ToolInvocation] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["tool_calls"] = [c.to_dict() for c in self.tool_calls] if self.tool_calls else None
        return data


@dataclass(frozen=True)
class NewMessage:
    """A message that has not been persisted yet (no id or timestamp)."""

    user_id: str
    role: str
    content: str
    session_id: str | None = None
    tool_call_id: str | None = None
    tool_calls: list[ToolInvocation] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Session:
    id: str
    user_id: str
    title: str
    created_at: str
    updated_at: str


@dataclass(frozen=True)
class UserPreferences:
    model: str
    temperature: float
    max_tokens: int
    ai_instructions: str = ""
    ai_context: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CompletionRequest:
    model: str
    temperature: float
    max_tokens: int
    system_prompt: str
    messages: list[Message]
    tools: list[ToolDefinition]
    tool_choice: str = "auto"


@dataclass(frozen=True)
class CompletionResponse:
    text: str
    tool_calls: list[ToolInvocation] = field(default_factory=list)
    model: str = ""
    tokens_used: int | None = None
    finish_reason: str = "stop"


@dataclass(frozen=True)
class ChatResult:
    user_message: Message
    assistant_message: Message
    tool_messages: list[Message] = field(default_factory=list)
    rounds: int = 0
    hit_ceiling: bool = False
    timed_out: bool = False
