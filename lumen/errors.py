"""Lumen error taxonomy.

Every failure the library surfaces derives from :class:`LumenError`.  The
orchestrator performs no recovery of its own: provider errors reach the
caller unchanged, and unexpected failures inside a middleware hook are
wrapped in :class:`MiddlewareError` so the failing stage stays visible.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LumenError(Exception):
    """Base exception for all Lumen errors."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data or {}


class InvalidResponseError(LumenError):
    """The provider's reply could not be mapped to the response shape."""

    def __init__(self, message: str = "The provider returned an invalid response") -> None:
        super().__init__(message)


class ProviderError(LumenError):
    """The backend reported a failure (HTTP status, API error)."""

    def __init__(self, provider: str, code: int, message: str) -> None:
        super().__init__(
            f"Error from {provider} (code {code}): {message}",
            {"provider": provider, "code": code},
        )
        self.provider = provider
        self.code = code
        self.detail = message


class UnsupportedModelError(LumenError):
    """The requested model is not served by the provider."""

    def __init__(self, model: str, provider: str) -> None:
        super().__init__(
            f"Model '{model}' is not supported by {provider}",
            {"model": model, "provider": provider},
        )
        self.model = model
        self.provider = provider


class MissingCredentialError(LumenError):
    """No API key (or equivalent credential) was configured."""

    def __init__(self, message: str = "API key is missing") -> None:
        super().__init__(message)


class LumenTimeoutError(LumenError):
    """The request to the provider timed out."""

    def __init__(self, message: str = "The request timed out") -> None:
        super().__init__(message)


class RateLimitedError(LumenError):
    """The provider rejected the request because of rate limiting."""

    def __init__(self, retry_after: Optional[float] = None) -> None:
        if retry_after is not None:
            message = f"Rate limited. Retry after {retry_after} seconds"
        else:
            message = "Rate limited"
        super().__init__(message, {"retry_after": retry_after})
        self.retry_after = retry_after


class ToolCallError(LumenError):
    """A caller-side tool invocation failed."""

    def __init__(self, name: str, error: BaseException) -> None:
        super().__init__(f"Error in tool call '{name}': {error}", {"tool": name})
        self.name = name
        self.error = error


class MiddlewareError(LumenError):
    """Wraps an unexpected exception raised by a middleware stage."""

    def __init__(self, middleware: str, error: BaseException) -> None:
        super().__init__(
            f"Error in middleware '{middleware}': {error}",
            {"middleware": middleware},
        )
        self.middleware = middleware
        self.error = error


class TemplateError(LumenError):
    """A prompt template could not be rendered with the given bindings."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Template error: {message}")
        self.detail = message


__all__ = [
    "InvalidResponseError",
    "LumenError",
    "LumenTimeoutError",
    "MiddlewareError",
    "MissingCredentialError",
    "ProviderError",
    "RateLimitedError",
    "TemplateError",
    "ToolCallError",
    "UnsupportedModelError",
]
