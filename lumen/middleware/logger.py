"""Logging Middleware: structured events for each pipeline stage."""

from __future__ import annotations

from typing import Any, Optional

import structlog

from lumen.middleware.base import Continue, MessagesResult, Middleware
from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    Message,
)


class LoggingMiddleware(Middleware):
    """Log outgoing requests and incoming results at INFO level.

    Message text is only included when ``log_content`` is set.
    """

    def __init__(self, logger: Optional[Any] = None, log_content: bool = False) -> None:
        self._logger = logger or structlog.get_logger(__name__)
        self.log_content = log_content

    async def transform_request_messages(self, messages: list[Message]) -> MessagesResult:
        fields: dict[str, Any] = {
            "message_count": len(messages),
            "last_role": messages[-1].role.value if messages else None,
        }
        if self.log_content and messages:
            fields["last_content"] = messages[-1].content
        self._logger.info("Completion request", **fields)
        return Continue(messages)

    async def transform_request_options(self, options: CompletionOptions) -> CompletionOptions:
        self._logger.info(
            "Completion options",
            model=options.model,
            max_tokens=options.max_tokens,
            temperature=options.temperature,
            tools=len(options.tools or []),
        )
        return options

    async def transform_response(self, response: CompletionResponse) -> CompletionResponse:
        fields: dict[str, Any] = {
            "text_length": len(response.text),
            "tool_calls": len(response.tool_calls or []),
        }
        if response.usage is not None:
            fields["total_tokens"] = response.usage.total_tokens
        if self.log_content:
            fields["text"] = response.text
        self._logger.info("Completion response", **fields)
        return response

    async def transform_chunk(self, chunk: CompletionChunk) -> CompletionChunk:
        if chunk.is_complete:
            fields: dict[str, Any] = {"message_length": len(chunk.message.content)}
            if self.log_content:
                fields["text"] = chunk.message.content
            self._logger.info("Completion stream finished", **fields)
        return chunk
