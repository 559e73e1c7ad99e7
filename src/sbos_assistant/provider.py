from typing import Protocol, runtime_checkable

from sbos_assistant.models import CompletionRequest, CompletionResponse

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

PROVIDERS = ("openrouter", "openai", "anthropic")


@runtime_checkable
class CompletionProvider(Protocol):
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one model call over the transcript and tool catalog in ``request``.

        Returns either final text or the tool invocations the model asked for.
        Failures surface as ``ProviderError`` after transient retries.
        """
        ...


def create_provider(
    provider_name: str,
    api_key: str,
    *,
    base_url: str | None = None,
    max_attempts: int = 3,
    request_timeout_seconds: float = 60.0,
) -> CompletionProvider:
    """Factory: create a CompletionProvider by name."""
    name = provider_name.strip().lower()
    if name == "anthropic":
        from sbos_assistant.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(
            api_key,
            max_attempts=max_attempts,
            request_timeout_seconds=request_timeout_seconds,
        )
    if name in ("openai", "openrouter"):
        from sbos_assistant.providers.openai_provider import OpenAIProvider
        headers = None
        if name == "openrouter":
            base_url = base_url or OPENROUTER_BASE_URL
            headers = {"X-Title": "SB-OS Assistant"}
        return OpenAIProvider(
            api_key,
            base_url=base_url,
            max_attempts=max_attempts,
            request_timeout_seconds=request_timeout_seconds,
            default_headers=headers,
        )
    raise ValueError(f"Unknown provider: {provider_name!r}. Supported: {', '.join(repr(p) for p in PROVIDERS)}")
