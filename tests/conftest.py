"""Shared test fixtures and helpers."""

from __future__ import annotations

import asyncio
import os
from typing import AsyncIterator, Optional

import pytest

# Set test environment before any imports
os.environ.setdefault("LUMEN_ENVIRONMENT", "testing")

from lumen.models.schemas import (  # noqa: E402
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    Message,
    Usage,
)
from lumen.providers.base import LLMProvider  # noqa: E402


class FakeProvider(LLMProvider):
    """Scripted provider that records every call.

    Replies with ``reply`` or, when unset, echoes the last message.  Streams
    ``chunks`` (or the whole reply as one chunk) followed by a terminal
    chunk unless ``terminal`` is False.
    """

    def __init__(
        self,
        reply: Optional[str] = None,
        chunks: Optional[list[str]] = None,
        terminal: bool = True,
        error: Optional[Exception] = None,
    ) -> None:
        self.reply = reply
        self.chunks = chunks
        self.terminal = terminal
        self.error = error
        self.complete_calls = 0
        self.stream_calls = 0
        self.last_messages: list[Message] = []
        self.last_options: Optional[CompletionOptions] = None
        self.stream_closed = False
        self.closed = False

    @property
    def name(self) -> str:
        return "Fake"

    @property
    def default_model(self) -> str:
        return "fake-model"

    @property
    def available_models(self) -> list[str]:
        return ["fake-model", "fake-mini"]

    def _text_for(self, messages: list[Message]) -> str:
        if self.reply is not None:
            return self.reply
        return f"Echo: {messages[-1].content}"

    async def complete(
        self, messages: list[Message], options: CompletionOptions
    ) -> CompletionResponse:
        self.complete_calls += 1
        self.last_messages = messages
        self.last_options = options
        # Yield to the loop so concurrent requests interleave
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        text = self._text_for(messages)
        return CompletionResponse(
            text=text,
            message=Message.assistant(text),
            usage=Usage(prompt_tokens=5, completion_tokens=2, total_tokens=7),
        )

    async def complete_stream(
        self, messages: list[Message], options: CompletionOptions
    ) -> AsyncIterator[CompletionChunk]:
        self.stream_calls += 1
        self.last_messages = messages
        self.last_options = options
        pieces = self.chunks if self.chunks is not None else [self._text_for(messages)]
        content = ""
        try:
            for piece in pieces:
                content += piece
                yield CompletionChunk(text=piece, message=Message.assistant(content))
            if self.error is not None:
                raise self.error
            if self.terminal:
                yield CompletionChunk(
                    text="", message=Message.assistant(content), is_complete=True
                )
        finally:
            self.stream_closed = True

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider


@pytest.fixture
def provider() -> FakeProvider:
    """Echoing FakeProvider."""
    return FakeProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def lumen(provider: FakeProvider):
    """Lumen orchestrator over the echoing FakeProvider."""
    from lumen.core.engine import Lumen

    return Lumen(provider)


@pytest.fixture
def settings_cache():
    """Clear the settings singleton around a test."""
    from lumen.config.settings import get_settings

    get_settings.cache_clear()
    yield get_settings
    get_settings.cache_clear()


async def collect(stream: AsyncIterator[CompletionChunk]) -> list[CompletionChunk]:
    """Drain an async chunk iterator into a list."""
    return [chunk async for chunk in stream]


@pytest.fixture
def drain():
    return collect
