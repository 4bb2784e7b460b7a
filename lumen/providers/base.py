"""Abstract LLM provider interface.

All provider adapters must implement this interface so the orchestrator
can route to any backend without coupling to its wire format.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    Message,
)


class LLMProvider(ABC):
    """Abstract base class for LLM provider adapters.

    Retry, pooling and rate limiting, where a backend needs them, stay
    inside the adapter.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g. 'OpenAI')."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when the caller supplies no options."""
        ...

    @property
    @abstractmethod
    def available_models(self) -> list[str]:
        """Models this provider can serve."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        options: CompletionOptions,
    ) -> CompletionResponse:
        """One-shot completion.

        Raises ``ProviderError`` on backend failure and
        ``InvalidResponseError`` when the reply cannot be mapped.
        """
        ...

    @abstractmethod
    def complete_stream(
        self,
        messages: list[Message],
        options: CompletionOptions,
    ) -> AsyncIterator[CompletionChunk]:
        """Streaming completion.

        Implementations are async generators: each chunk is produced only
        when the consumer asks for it, the last one has ``is_complete``
        set, and closing the generator must release the connection.
        """
        ...

    async def close(self) -> None:
        """Release any resources held by the provider."""
        return None
