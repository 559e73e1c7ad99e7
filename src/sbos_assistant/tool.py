from dataclasses import dataclass
from datetime import date
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class ToolContext:
    """Identity and clock for one turn; every handler scopes its records to ``user_id``."""

    user_id: str
    today: date


@runtime_checkable
class Tool(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def input_schema(self) -> dict[str, Any]: ...

    @property
    def is_mutating(self) -> bool: ...

    async def execute(self, context: ToolContext, tool_input: dict[str, Any]) -> Any: ...
