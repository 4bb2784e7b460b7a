"""Prefix Middleware: prepends fixed text to every completion."""

from __future__ import annotations

from lumen.middleware.base import Middleware
from lumen.models.schemas import CompletionChunk, CompletionResponse


class PrefixMiddleware(Middleware):
    """Prepend ``prefix`` to response text and message content.

    For streams only the terminal chunk is rewritten: its increment and its
    accumulated message both gain the prefix, while the increments already
    delivered stay untouched.
    """

    def __init__(self, prefix: str) -> None:
        self.prefix = prefix

    async def transform_response(self, response: CompletionResponse) -> CompletionResponse:
        text = self.prefix + response.text
        message = response.message.model_copy(update={"content": text})
        return response.model_copy(update={"text": text, "message": message})

    async def transform_chunk(self, chunk: CompletionChunk) -> CompletionChunk:
        if not chunk.is_complete:
            return chunk
        message = chunk.message.model_copy(
            update={"content": self.prefix + chunk.message.content}
        )
        return chunk.model_copy(update={"text": self.prefix + chunk.text, "message": message})
