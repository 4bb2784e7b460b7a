"""Middleware package."""

from lumen.middleware.base import Continue, MessagesResult, Middleware, ShortCircuit
from lumen.middleware.cache import CacheMiddleware
from lumen.middleware.logger import LoggingMiddleware
from lumen.middleware.prefix import PrefixMiddleware

__all__ = [
    "CacheMiddleware",
    "Continue",
    "LoggingMiddleware",
    "MessagesResult",
    "Middleware",
    "PrefixMiddleware",
    "ShortCircuit",
]
