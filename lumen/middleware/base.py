"""Middleware contract for the completion pipeline.

A middleware overrides only the hooks it needs; every hook passes its
input through by default.  The request-message hook returns an explicit
result: :class:`Continue` with the (possibly rewritten) messages, or
:class:`ShortCircuit` with a ready response, in which case the
orchestrator skips the provider and every response hook.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    Message,
)


@dataclass(frozen=True)
class Continue:
    """Proceed with these messages."""

    messages: list[Message]


@dataclass(frozen=True)
class ShortCircuit:
    """Stop the pipeline and answer with this response."""

    response: CompletionResponse


MessagesResult = Union[Continue, ShortCircuit]


class Middleware:
    """Base class for pipeline stages."""

    @property
    def name(self) -> str:
        """Stage name used in logs and ``MiddlewareError``."""
        return type(self).__name__

    async def transform_request_messages(self, messages: list[Message]) -> MessagesResult:
        return Continue(messages)

    async def transform_request_options(self, options: CompletionOptions) -> CompletionOptions:
        return options

    async def transform_response(self, response: CompletionResponse) -> CompletionResponse:
        return response

    async def transform_chunk(self, chunk: CompletionChunk) -> CompletionChunk:
        return chunk
