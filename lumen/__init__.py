"""Lumen: LLM completions through a middleware pipeline.

A provider-agnostic client that runs each completion through an ordered
chain of middleware (caching, logging, response rewriting) before and
after calling the model.

Quick Start:
    from lumen import CacheMiddleware, Lumen, OpenAIProvider

    lumen = Lumen(OpenAIProvider(api_key="sk-...")).use(CacheMiddleware())
    response = await lumen.complete("Tell me a joke")
    print(response.text)
"""

from lumen.core.engine import Lumen
from lumen.errors import (
    InvalidResponseError,
    LumenError,
    LumenTimeoutError,
    MiddlewareError,
    MissingCredentialError,
    ProviderError,
    RateLimitedError,
    TemplateError,
    ToolCallError,
    UnsupportedModelError,
)
from lumen.middleware import (
    CacheMiddleware,
    Continue,
    LoggingMiddleware,
    Middleware,
    PrefixMiddleware,
    ShortCircuit,
)
from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    Message,
    MessageRole,
)
from lumen.providers import LLMProvider, OpenAIProvider, create_provider
from lumen.templates import PromptTemplate

__version__ = "0.1.0"
__app_name__ = "Lumen"

__all__ = [
    "CacheMiddleware",
    "CompletionChunk",
    "CompletionOptions",
    "CompletionResponse",
    "Continue",
    "InvalidResponseError",
    "LLMProvider",
    "LoggingMiddleware",
    "Lumen",
    "LumenError",
    "LumenTimeoutError",
    "Message",
    "MessageRole",
    "Middleware",
    "MiddlewareError",
    "MissingCredentialError",
    "OpenAIProvider",
    "PrefixMiddleware",
    "PromptTemplate",
    "ProviderError",
    "RateLimitedError",
    "ShortCircuit",
    "TemplateError",
    "ToolCallError",
    "UnsupportedModelError",
    "create_provider",
]
