import anthropic
import httpx
from loguru import logger
from tenacity import retry

from sbos_assistant.errors import ProviderError
from sbos_assistant.models import CompletionRequest, CompletionResponse, Message, ToolDefinition, ToolInvocation
from sbos_assistant.providers.common import default_retry_kwargs, total_tokens

_TRANSIENT_ERRORS = (
    anthropic.RateLimitError,
    anthropic.APIConnectionError,
    anthropic.APITimeoutError,
)


def _to_anthropic_messages(messages: list[Message]) -> tuple[list[dict], list[str]]:
    """Convert stored transcript messages to Anthropic content blocks.

    Tool results travel in the following user message, so consecutive tool
    messages are merged into one user turn. Stored ``system`` messages are
    returned separately for the caller to fold into the system prompt.
    """
    out: list[dict] = []
    system_notes: list[str] = []

    for msg in messages:
        if msg.role == "system":
            system_notes.append(msg.content)
        elif msg.role == "tool":
            block = {"type": "tool_result", "tool_use_id": msg.tool_call_id, "content": msg.content}
            if msg.metadata.get("is_error"):
                block["is_error"] = True
            previous = out[-1] if out else None
            if previous and previous["role"] == "user" and isinstance(previous["content"], list):
                previous["content"].append(block)
            else:
                out.append({"role": "user", "content": [block]})
        elif msg.role == "assistant" and msg.tool_calls:
            content: list[dict] = []
            if msg.content:
                content.append({"type": "text", "text": msg.content})
            for call in msg.tool_calls:
                content.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
            out.append({"role": "assistant", "content": content})
        else:
            out.append({"role": msg.role, "content": msg.content})

    return out, system_notes


def _to_anthropic_tools(tools: list[ToolDefinition]) -> list[dict]:
    return [
        {
            "name": t.name,
            "description": t.description,
            "input_schema": t.parameter_schema,
        }
        for t in tools
    ]


def classify_anthropic_error(ex: Exception) -> ProviderError:
    status = getattr(ex, "status_code", None)
    if isinstance(ex, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return ProviderError("auth", str(ex), status_code=status)
    if isinstance(ex, anthropic.RateLimitError) or status == 402:
        return ProviderError("quota", str(ex), status_code=status)
    if isinstance(ex, anthropic.APITimeoutError):
        return ProviderError("timeout", str(ex))
    if isinstance(ex, anthropic.APIConnectionError):
        return ProviderError("network", str(ex))
    if isinstance(ex, (anthropic.BadRequestError, anthropic.UnprocessableEntityError, anthropic.NotFoundError)):
        return ProviderError("bad_request", str(ex), status_code=status)
    return ProviderError.from_exception(ex)


class AnthropicProvider:
    def __init__(
        self,
        api_key: str,
        *,
        max_attempts: int = 3,
        request_timeout_seconds: float = 60.0,
        client: anthropic.AsyncAnthropic | None = None,
    ):
        self._client = client or anthropic.AsyncAnthropic(
            api_key=api_key,
            timeout=httpx.Timeout(request_timeout_seconds, connect=10.0),
            max_retries=0,
        )
        self._create = retry(**default_retry_kwargs(_TRANSIENT_ERRORS, max_attempts=max_attempts))(
            self._create_once
        )

    async def _create_once(self, **kwargs):
        return await self._client.messages.create(**kwargs)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        messages, system_notes = _to_anthropic_messages(request.messages)
        system_prompt = "\n\n".join([request.system_prompt, *system_notes]).strip()
        tools = _to_anthropic_tools(request.tools)

        kwargs: dict = dict(
            model=request.model,
            max_tokens=request.max_tokens,
            temperature=request.temperature,
            system=system_prompt,
            messages=messages,
        )
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = {"type": request.tool_choice}

        logger.debug(
            f"API request: model={request.model}, max_tokens={request.max_tokens}, "
            f"messages={len(messages)}, tools={len(tools)}"
        )
        try:
            response = await self._create(**kwargs)
        except anthropic.AnthropicError as ex:
            raise classify_anthropic_error(ex) from ex

        text_parts: list[str] = []
        tool_calls: list[ToolInvocation] = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                arguments = block.input if isinstance(block.input, dict) else {}
                tool_calls.append(ToolInvocation(id=block.id, name=block.name, arguments=arguments))

        usage = response.usage
        tokens_used = total_tokens(usage.input_tokens, usage.output_tokens) if usage is not None else None
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"tool_calls={len(tool_calls)}, tokens={tokens_used}"
        )
        return CompletionResponse(
            text="".join(text_parts),
            tool_calls=tool_calls,
            model=response.model or request.model,
            tokens_used=tokens_used,
            finish_reason=response.stop_reason or "end_turn",
        )
