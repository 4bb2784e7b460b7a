"""OpenAI provider adapter.

Wraps the official ``openai`` Python SDK and maps its chat completion
objects onto Lumen's response and chunk models.
"""

from __future__ import annotations

import time
from typing import Any, AsyncIterator, Optional

import openai
import structlog

from lumen.errors import (
    InvalidResponseError,
    LumenError,
    LumenTimeoutError,
    MissingCredentialError,
    ProviderError,
    RateLimitedError,
    UnsupportedModelError,
)
from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    FunctionCall,
    Message,
    MessageRole,
    ResponseFormat,
    ToolCall,
    Usage,
)
from lumen.providers.base import LLMProvider

logger = structlog.get_logger(__name__)

_MODELS = [
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
]

_ROLES = {role.value for role in MessageRole}

_RESPONSE_FORMATS = {
    ResponseFormat.JSON: {"type": "json_object"},
    ResponseFormat.TEXT: {"type": "text"},
}


class OpenAIProvider(LLMProvider):
    """Adapter for the OpenAI Chat Completions API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: Optional[str] = None,
        organization: Optional[str] = None,
        default_model: str = "gpt-4o",
        timeout: float = 60.0,
        max_retries: int = 0,
    ) -> None:
        if not api_key:
            raise MissingCredentialError("OpenAI API key is missing")
        self._default_model = default_model
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            organization=organization,
            timeout=timeout,
            max_retries=max_retries,
        )

    @property
    def name(self) -> str:
        return "OpenAI"

    @property
    def default_model(self) -> str:
        return self._default_model

    @property
    def available_models(self) -> list[str]:
        models = list(_MODELS)
        if self._default_model not in models:
            models.insert(0, self._default_model)
        return models

    async def complete(
        self,
        messages: list[Message],
        options: CompletionOptions,
    ) -> CompletionResponse:
        """Call OpenAI chat completions (non-streaming)."""
        params = self._build_params(messages, options)

        start = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            raise self._map_error(exc, options.model) from exc

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info("OpenAI call complete", model=options.model, elapsed_ms=elapsed_ms)

        return self._to_response(response)

    async def complete_stream(
        self,
        messages: list[Message],
        options: CompletionOptions,
    ) -> AsyncIterator[CompletionChunk]:
        """Streaming chat completion; yields one chunk per content delta."""
        params = self._build_params(messages, options)
        params["stream"] = True

        try:
            stream = await self._client.chat.completions.create(**params)
        except openai.OpenAIError as exc:
            raise self._map_error(exc, options.model) from exc

        full_content = ""
        role = MessageRole.ASSISTANT
        # index -> {"id", "name", "arguments"}
        pending_calls: dict[int, dict[str, str]] = {}
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.role in _ROLES:
                    role = MessageRole(delta.role)
                for call in delta.tool_calls or []:
                    entry = pending_calls.setdefault(
                        call.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if call.id:
                        entry["id"] = call.id
                    if call.function is not None:
                        entry["name"] += call.function.name or ""
                        entry["arguments"] += call.function.arguments or ""
                if delta.content:
                    full_content += delta.content
                    yield CompletionChunk(
                        text=delta.content,
                        message=Message(role=role, content=full_content),
                    )
        except openai.OpenAIError as exc:
            logger.error("OpenAI stream error", model=options.model, error=str(exc))
            raise self._map_error(exc, options.model) from exc
        finally:
            await stream.close()

        tool_calls = [
            ToolCall(
                id=entry["id"],
                function=FunctionCall(name=entry["name"], arguments=entry["arguments"]),
            )
            for _, entry in sorted(pending_calls.items())
        ]
        yield CompletionChunk(
            text="",
            message=Message(role=role, content=full_content),
            tool_calls=tool_calls or None,
            is_complete=True,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.close()

    # ---- Private helpers ---------------------------------------------------

    @staticmethod
    def _build_params(
        messages: list[Message],
        options: CompletionOptions,
    ) -> dict[str, Any]:
        wire_messages: list[dict[str, Any]] = []
        for message in messages:
            item: dict[str, Any] = {"role": message.role.value, "content": message.content}
            if message.name is not None:
                item["name"] = message.name
            if message.tool_call_id is not None:
                item["tool_call_id"] = message.tool_call_id
            wire_messages.append(item)

        params: dict[str, Any] = {
            "model": options.model,
            "messages": wire_messages,
        }
        if options.max_tokens is not None:
            params["max_tokens"] = options.max_tokens
        if options.temperature is not None:
            params["temperature"] = options.temperature
        if options.top_p is not None:
            params["top_p"] = options.top_p
        if options.stop_sequences is not None:
            params["stop"] = list(options.stop_sequences)
        if options.tools is not None:
            params["tools"] = [tool.model_dump(mode="json") for tool in options.tools]
        if options.response_format is not None:
            params["response_format"] = _RESPONSE_FORMATS[options.response_format]
        return params

    @staticmethod
    def _to_response(response: Any) -> CompletionResponse:
        if not getattr(response, "choices", None):
            raise InvalidResponseError("OpenAI response contained no choices")

        raw = response.choices[0].message
        content = raw.content or ""
        role = MessageRole(raw.role) if raw.role in _ROLES else MessageRole.ASSISTANT
        message = Message(role=role, content=content, name=getattr(raw, "name", None))

        tool_calls: Optional[list[ToolCall]] = None
        if raw.tool_calls:
            tool_calls = [
                ToolCall(
                    id=call.id,
                    function=FunctionCall(
                        name=call.function.name,
                        arguments=call.function.arguments,
                    ),
                )
                for call in raw.tool_calls
            ]

        usage: Optional[Usage] = None
        if response.usage is not None:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return CompletionResponse(
            text=content,
            message=message,
            tool_calls=tool_calls,
            usage=usage,
        )

    def _map_error(self, exc: openai.OpenAIError, model: str) -> LumenError:
        """Translate an SDK exception into the Lumen error taxonomy."""
        if isinstance(exc, openai.APITimeoutError):
            return LumenTimeoutError()
        if isinstance(exc, openai.RateLimitError):
            retry_after = exc.response.headers.get("retry-after")
            try:
                return RateLimitedError(float(retry_after) if retry_after else None)
            except ValueError:
                return RateLimitedError()
        if isinstance(exc, openai.NotFoundError) and exc.code == "model_not_found":
            return UnsupportedModelError(model, self.name)
        if isinstance(exc, openai.APIStatusError):
            logger.error("OpenAI API error", status=exc.status_code, message=exc.message)
            return ProviderError(self.name, exc.status_code, exc.message)
        # Connection failures and anything else the SDK raises carry no status
        return ProviderError(self.name, 0, str(exc))
