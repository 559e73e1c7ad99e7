import json

import httpx
import openai
from loguru import logger
from tenacity import retry

from sbos_assistant.errors import ProviderError
from sbos_assistant.models import CompletionRequest, CompletionResponse, Message, ToolDefinition, ToolInvocation
from sbos_assistant.providers.common import default_retry_kwargs

_TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.APITimeoutError,
)


def _to_openai_messages(system_prompt: str, messages: list[Message]) -> list[dict]:
    """Convert stored transcript messages to OpenAI chat format."""
    out: list[dict] = []

    if system_prompt:
        out.append({"role": "system", "content": system_prompt})

    for msg in messages:
        if msg.role == "assistant" and msg.tool_calls:
            out.append({
                "role": "assistant",
                "content": msg.content or None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
                    }
                    for call in msg.tool_calls
                ],
            })
        elif msg.role == "tool":
            out.append({"role": "tool", "tool_call_id": msg.tool_call_id, "content": msg.content})
        else:
            out.append({"role": msg.role, "content": msg.content})

    return out


def _to_openai_tools(tools: list[ToolDefinition]) -> list[dict]:
    """Convert tool definitions to OpenAI function-calling format."""
    return [
        {
            "type": "function",
            "function": {
                "name": t.name,
                "description": t.description,
                "parameters": t.parameter_schema,
            },
        }
        for t in tools
    ]


def _parse_tool_calls(raw_calls) -> list[ToolInvocation]:
    calls: list[ToolInvocation] = []
    for tc in raw_calls or []:
        raw_args = tc.function.arguments or ""
        try:
            parsed = json.loads(raw_args) if raw_args else {}
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse tool call arguments: {raw_args[:200]}")
            parsed = {}
        if not isinstance(parsed, dict):
            parsed = {}
        calls.append(ToolInvocation(id=tc.id, name=tc.function.name, arguments=parsed))
    return calls


def classify_openai_error(ex: Exception) -> ProviderError:
    status = getattr(ex, "status_code", None)
    if isinstance(ex, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return ProviderError("auth", str(ex), status_code=status)
    if isinstance(ex, openai.RateLimitError) or status == 402:
        return ProviderError("quota", str(ex), status_code=status)
    if isinstance(ex, openai.APITimeoutError):
        return ProviderError("timeout", str(ex))
    if isinstance(ex, openai.APIConnectionError):
        return ProviderError("network", str(ex))
    if isinstance(ex, (openai.BadRequestError, openai.UnprocessableEntityError, openai.NotFoundError)):
        return ProviderError("bad_request", str(ex), status_code=status)
    return ProviderError.from_exception(ex)


class OpenAIProvider:
    """Chat-completions provider for OpenAI and OpenAI-compatible gateways such as OpenRouter."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        max_attempts: int = 3,
        request_timeout_seconds: float = 60.0,
        default_headers: dict[str, str] | None = None,
        client: openai.AsyncOpenAI | None = None,
    ):
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=httpx.Timeout(request_timeout_seconds, connect=10.0),
            max_retries=0,
            default_headers=default_headers,
        )
        self._create = retry(**default_retry_kwargs(_TRANSIENT_ERRORS, max_attempts=max_attempts))(
            self._create_once
        )

    async def _create_once(self, **kwargs):
        return await self._client.chat.completions.create(**kwargs)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        oai_messages = _to_openai_messages(request.system_prompt, request.messages)
        oai_tools = _to_openai_tools(request.tools)

        kwargs: dict = dict(
            model=request.model,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            messages=oai_messages,
        )
        if oai_tools:
            kwargs["tools"] = oai_tools
            kwargs["tool_choice"] = request.tool_choice

        logger.debug(
            f"API request: model={request.model}, max_tokens={request.max_tokens}, "
            f"messages={len(oai_messages)}, tools={len(oai_tools)}"
        )
        try:
            response = await self._create(**kwargs)
        except openai.OpenAIError as ex:
            raise classify_openai_error(ex) from ex

        if not response.choices:
            raise ProviderError("unknown", "Response contained no choices")

        choice = response.choices[0]
        tool_calls = _parse_tool_calls(choice.message.tool_calls)
        usage = response.usage
        tokens_used = usage.total_tokens if usage is not None else None

        logger.debug(
            f"API response: finish_reason={choice.finish_reason}, "
            f"text_len={len(choice.message.content or '')}, tool_calls={len(tool_calls)}, tokens={tokens_used}"
        )
        return CompletionResponse(
            text=choice.message.content or "",
            tool_calls=tool_calls,
            model=response.model or request.model,
            tokens_used=tokens_used,
            finish_reason=choice.finish_reason or "stop",
        )
