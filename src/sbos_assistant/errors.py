from __future__ import annotations

import asyncio


class AssistantError(Exception):
    """Base class for failures that are reported back to the caller of a turn."""

    user_message = "Something went wrong while processing your message."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.user_message)


class ConfigurationError(AssistantError):
    user_message = "The assistant is unavailable: no AI provider is configured."


class InvalidMessageError(AssistantError):
    user_message = "Message is required."


class SessionNotFoundError(AssistantError):
    user_message = "Session not found."

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class RateLimitExceededError(AssistantError):
    def __init__(self, identity: str, retry_after_seconds: float):
        self.identity = identity
        self.retry_after_seconds = max(0.0, retry_after_seconds)
        super().__init__(f"Rate limit exceeded for {identity}")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        wait = max(1, round(self.retry_after_seconds))
        return f"You're sending messages too quickly. Please wait {wait}s and try again."


_PROVIDER_MESSAGES = {
    "auth": "The AI service rejected the configured credentials.",
    "quota": "The AI service quota or credit balance has been exhausted.",
    "network": "Could not reach the AI service. Please try again shortly.",
    "timeout": "The AI service took too long to respond. Please try again.",
    "bad_request": "The AI service could not process this conversation.",
    "unknown": "The AI service is currently unavailable.",
}


class ProviderError(AssistantError):
    """A completion-provider call failed; the turn is aborted."""

    KINDS = tuple(_PROVIDER_MESSAGES)

    def __init__(self, kind: str, detail: str = "", *, status_code: int | None = None):
        if kind not in _PROVIDER_MESSAGES:
            kind = "unknown"
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Provider error ({kind}): {detail}" if detail else f"Provider error ({kind})")

    @property
    def user_message(self) -> str:  # type: ignore[override]
        return _PROVIDER_MESSAGES[self.kind]

    @classmethod
    def from_exception(cls, ex: BaseException) -> ProviderError:
        if isinstance(ex, ProviderError):
            return ex
        if isinstance(ex, (TimeoutError, asyncio.TimeoutError)):
            return cls("timeout", str(ex) or type(ex).__name__)
        if isinstance(ex, (ConnectionError, OSError)):
            return cls("network", str(ex) or type(ex).__name__)
        return cls("unknown", f"{type(ex).__name__}: {ex}")


class ToolError(Exception):
    """Raised by tool handlers; always converted into an error payload by the registry."""


class ToolArgumentError(ToolError):
    pass


class RecordNotFoundError(ToolError):
    def __init__(self, kind: str, record_id: str):
        label = kind.replace("_", " ").capitalize()
        super().__init__(f"{label} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id
