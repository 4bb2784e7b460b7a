"""Cache Middleware: short-circuits repeated trailing user messages.

Responses are stored in memory, keyed by a content address of the user
message that produced them.  A later request whose last message is a
``user`` message with the same key is answered from the cache without
calling the provider.  Entries expire after ``ttl`` seconds and the map is
pruned back to ``max_entries`` after every write that overflows it.
"""

from __future__ import annotations

import base64
import itertools
import json
import threading
import time
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

import structlog

from lumen.config.settings import CacheSettings
from lumen.middleware.base import Continue, MessagesResult, Middleware, ShortCircuit
from lumen.models.schemas import (
    CompletionChunk,
    CompletionResponse,
    Message,
    MessageRole,
)

logger = structlog.get_logger(__name__)

KeyScheme = Literal["content", "message"]


@dataclass(frozen=True)
class CacheEntry:
    """A stored response and the clock reading at which it was written.

    ``seq`` orders entries written at the same clock reading.
    """

    response: CompletionResponse
    timestamp: float
    seq: int = 0


class CacheMiddleware(Middleware):
    """In-memory response cache with TTL expiry and bounded size.

    ``key_scheme="content"`` keys on the message's role, content and name,
    so two user turns with the same text hit the same entry.
    ``key_scheme="message"`` keys on the whole message including its id and
    creation time, which only hits when the same ``Message`` is resent.

    Map access is serialized by a lock so one instance can be shared by
    concurrent completions; two writes to the same key resolve
    last-write-wins.
    """

    def __init__(
        self,
        ttl: float = 3600.0,
        max_entries: int = 100,
        cache_streaming: bool = True,
        key_scheme: KeyScheme = "content",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if key_scheme not in ("content", "message"):
            raise ValueError(f"Unknown key scheme: {key_scheme!r}")

        self.ttl = ttl
        self.max_entries = max_entries
        self.cache_streaming = cache_streaming
        self.key_scheme = key_scheme
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._seq = itertools.count()
        # Key of the user message that opened the current request.  The
        # orchestrator gives every request its own context.
        self._request_key: ContextVar[Optional[str]] = ContextVar(
            f"lumen_cache_request_key_{id(self)}", default=None
        )

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> "CacheMiddleware":
        return cls(
            ttl=settings.ttl,
            max_entries=settings.max_entries,
            cache_streaming=settings.cache_streaming,
            key_scheme=settings.key_scheme,
        )

    # ---- Middleware hooks --------------------------------------------------

    async def transform_request_messages(self, messages: list[Message]) -> MessagesResult:
        if not messages or messages[-1].role != MessageRole.USER:
            self._request_key.set(None)
            return Continue(messages)

        key = self.cache_key(messages[-1])
        self._request_key.set(key)

        cached = self._lookup(key)
        if cached is not None:
            logger.debug("Cache hit", scheme=self.key_scheme)
            return ShortCircuit(cached)
        return Continue(messages)

    async def transform_response(self, response: CompletionResponse) -> CompletionResponse:
        self._store(self._write_key(response.message), response)
        return response

    async def transform_chunk(self, chunk: CompletionChunk) -> CompletionChunk:
        if chunk.is_complete and self.cache_streaming:
            self._store(self._write_key(chunk.message), CompletionResponse.from_chunk(chunk))
        return chunk

    # ---- Public API --------------------------------------------------------

    def cache_key(self, message: Message) -> str:
        """Content address of *message* under the configured key scheme."""
        fields: dict[str, Any]
        if self.key_scheme == "content":
            fields = {
                "role": message.role.value,
                "content": message.content,
                "name": message.name,
            }
        else:
            fields = message.model_dump(mode="json")
        canonical = json.dumps(
            fields, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
        return base64.urlsafe_b64encode(canonical).decode("ascii")

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """True when a non-stale entry exists for *key*."""
        if not isinstance(key, str):
            return False
        return self._lookup(key) is not None

    # ---- Private helpers ---------------------------------------------------

    def _write_key(self, fallback: Message) -> str:
        key = self._request_key.get()
        return key if key is not None else self.cache_key(fallback)

    def _is_stale(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp >= self.ttl

    def _lookup(self, key: str) -> Optional[CompletionResponse]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._is_stale(entry, self._clock()):
                return None
            return entry.response

    def _store(self, key: str, response: CompletionResponse) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(
                response=response, timestamp=self._clock(), seq=next(self._seq)
            )
            if len(self._entries) > self.max_entries:
                self._prune_locked()
            size = len(self._entries)
        logger.debug("Cached response", entries=size)

    def _prune_locked(self) -> None:
        """Drop stale entries, then the oldest ones beyond ``max_entries``.

        Caller must hold ``self._lock``.
        """
        now = self._clock()
        before = len(self._entries)
        live = {k: e for k, e in self._entries.items() if not self._is_stale(e, now)}

        if len(live) > self.max_entries:
            newest = sorted(
                live.items(),
                key=lambda item: (item[1].timestamp, item[1].seq),
                reverse=True,
            )
            live = dict(newest[: self.max_entries])

        self._entries = live
        logger.debug("Cache pruned", removed=before - len(live), remaining=len(live))
