"""Tests for the CacheMiddleware."""

from __future__ import annotations

import asyncio
import base64
import json

import pytest

from lumen.config.settings import CacheSettings
from lumen.core.engine import Lumen
from lumen.middleware import CacheMiddleware, Continue, PrefixMiddleware, ShortCircuit
from lumen.models.schemas import CompletionResponse, Message


@pytest.fixture
def cache(clock) -> CacheMiddleware:
    return CacheMiddleware(ttl=60.0, max_entries=3, clock=clock)


@pytest.fixture
def cached_lumen(provider, cache) -> Lumen:
    return Lumen(provider).use(cache)


class TestConstruction:
    def test_defaults(self):
        cache = CacheMiddleware()
        assert cache.ttl == 3600.0
        assert cache.max_entries == 100
        assert cache.cache_streaming is True
        assert cache.key_scheme == "content"
        assert len(cache) == 0

    @pytest.mark.parametrize(
        "kwargs",
        [{"ttl": 0}, {"ttl": -1}, {"max_entries": 0}, {"key_scheme": "sha"}],
    )
    def test_rejects_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            CacheMiddleware(**kwargs)

    def test_from_settings(self):
        settings = CacheSettings(ttl=5, max_entries=7, cache_streaming=False, key_scheme="message")
        cache = CacheMiddleware.from_settings(settings)
        assert cache.ttl == 5
        assert cache.max_entries == 7
        assert cache.cache_streaming is False
        assert cache.key_scheme == "message"


class TestCacheKey:
    def test_content_scheme_ignores_identity(self):
        cache = CacheMiddleware()
        assert cache.cache_key(Message.user("hi")) == cache.cache_key(Message.user("hi"))

    def test_content_scheme_distinguishes_role_and_text(self):
        cache = CacheMiddleware()
        keys = {
            cache.cache_key(Message.user("hi")),
            cache.cache_key(Message.user("hello")),
            cache.cache_key(Message.assistant("hi")),
        }
        assert len(keys) == 3

    def test_message_scheme_includes_identity(self):
        cache = CacheMiddleware(key_scheme="message")
        message = Message.user("hi")
        assert cache.cache_key(message) == cache.cache_key(message)
        assert cache.cache_key(message) != cache.cache_key(Message.user("hi"))

    def test_key_is_urlsafe_canonical_json(self):
        cache = CacheMiddleware()
        key = cache.cache_key(Message.user("héllo"))
        decoded = json.loads(base64.urlsafe_b64decode(key))
        assert decoded == {"content": "héllo", "name": None, "role": "user"}


@pytest.mark.asyncio
class TestHooks:
    async def test_miss_continues_with_same_messages(self, cache: CacheMiddleware):
        messages = [Message.user("hi")]
        result = await cache.transform_request_messages(messages)
        assert isinstance(result, Continue)
        assert result.messages is messages

    async def test_hit_short_circuits(self, cache: CacheMiddleware):
        messages = [Message.user("hi")]
        await cache.transform_request_messages(messages)
        stored = CompletionResponse(text="cached", message=Message.assistant("cached"))
        await cache.transform_response(stored)

        result = await cache.transform_request_messages([Message.user("hi")])
        assert isinstance(result, ShortCircuit)
        assert result.response == stored

    async def test_non_user_last_message_is_not_looked_up(self, cache: CacheMiddleware):
        await cache.transform_request_messages([Message.user("hi")])
        await cache.transform_response(
            CompletionResponse(text="x", message=Message.assistant("x"))
        )
        result = await cache.transform_request_messages(
            [Message.user("hi"), Message.assistant("x")]
        )
        assert isinstance(result, Continue)

    async def test_response_without_request_is_keyed_by_its_message(self, cache: CacheMiddleware):
        message = Message.assistant("standalone")
        await cache.transform_response(CompletionResponse(text="standalone", message=message))
        assert cache.cache_key(message) in cache


@pytest.mark.asyncio
class TestExpiry:
    async def test_second_call_within_ttl_skips_provider(self, cached_lumen, provider, clock):
        first = await cached_lumen.complete("hi")
        clock.advance(59.9)
        second = await cached_lumen.complete("hi")
        assert provider.complete_calls == 1
        assert second == first

    async def test_call_after_ttl_reaches_provider(self, cached_lumen, provider, clock):
        await cached_lumen.complete("hi")
        clock.advance(60.0)
        await cached_lumen.complete("hi")
        assert provider.complete_calls == 2

    async def test_stale_entry_is_absent_but_not_removed(self, cached_lumen, cache, clock):
        await cached_lumen.complete("hi")
        key = cache.cache_key(Message.user("hi"))
        clock.advance(120)
        assert key not in cache
        assert len(cache) == 1

    async def test_different_prompts_are_independent(self, cached_lumen, provider):
        a = await cached_lumen.complete("a")
        b = await cached_lumen.complete("b")
        assert provider.complete_calls == 2
        assert a.text != b.text

    async def test_hit_bypasses_later_response_middleware(self, provider, cache):
        lumen = Lumen(provider).use(cache).use(PrefixMiddleware("P:"))
        first = await lumen.complete("hi")
        second = await lumen.complete("hi")
        assert first.text == "P:Echo: hi"
        assert second.text == "Echo: hi"


@pytest.mark.asyncio
class TestEviction:
    async def test_keeps_newest_entries(self, cached_lumen, cache, clock):
        for prompt in ["a", "b", "c", "d"]:
            await cached_lumen.complete(prompt)
            clock.advance(1)
        assert len(cache) == 3
        assert cache.cache_key(Message.user("a")) not in cache
        for prompt in ["b", "c", "d"]:
            assert cache.cache_key(Message.user(prompt)) in cache

    async def test_stale_entries_pruned_first(self, cached_lumen, cache, clock):
        await cached_lumen.complete("old")
        clock.advance(61)
        for prompt in ["a", "b", "c"]:
            await cached_lumen.complete(prompt)
        assert len(cache) == 3
        for prompt in ["a", "b", "c"]:
            assert cache.cache_key(Message.user(prompt)) in cache

    async def test_tied_timestamps_keep_latest_insertions(self, provider):
        cache = CacheMiddleware(max_entries=2, clock=lambda: 5.0)
        lumen = Lumen(provider).use(cache)
        for prompt in ["a", "b", "c"]:
            await lumen.complete(prompt)

        assert len(cache) == 2
        assert cache.cache_key(Message.user("a")) not in cache
        assert cache.cache_key(Message.user("b")) in cache
        assert cache.cache_key(Message.user("c")) in cache

    async def test_clear(self, cached_lumen, cache):
        await cached_lumen.complete("hi")
        cache.clear()
        assert len(cache) == 0


@pytest.mark.asyncio
class TestStreaming:
    async def test_completed_stream_is_cached(self, make_provider, clock, drain):
        provider = make_provider(chunks=["Hel", "lo"])
        lumen = Lumen(provider).use(CacheMiddleware(clock=clock))
        await drain(lumen.complete_stream("hi"))

        response = await lumen.complete("hi")
        assert response.text == "Hello"
        assert provider.complete_calls == 0

    async def test_streaming_cache_can_be_disabled(self, make_provider, clock, drain):
        provider = make_provider(chunks=["Hel", "lo"])
        lumen = Lumen(provider).use(CacheMiddleware(cache_streaming=False, clock=clock))
        await drain(lumen.complete_stream("hi"))

        await lumen.complete("hi")
        assert provider.complete_calls == 1


@pytest.mark.asyncio
class TestConcurrency:
    async def test_concurrent_requests_store_under_their_own_keys(self, cached_lumen, cache):
        a, b = await asyncio.gather(cached_lumen.complete("a"), cached_lumen.complete("b"))
        assert a.text == "Echo: a"
        assert b.text == "Echo: b"

        result = await cache.transform_request_messages([Message.user("a")])
        assert isinstance(result, ShortCircuit)
        assert result.response.text == "Echo: a"

    async def test_interleaved_stream_and_one_shot_keep_their_own_keys(
        self, cached_lumen, provider, drain
    ):
        stream = cached_lumen.complete_stream("a")
        first = await stream.__anext__()
        assert first.text == "Echo: a"

        b1 = await cached_lumen.complete("b")
        await drain(stream)
        b2 = await cached_lumen.complete("b")
        a2 = await cached_lumen.complete("a")

        assert b1.text == "Echo: b"
        assert b2.text == "Echo: b"
        assert a2.text == "Echo: a"
        assert provider.complete_calls == 1

    async def test_interleaved_streams_keep_their_own_keys(self, cached_lumen, provider, drain):
        first = cached_lumen.complete_stream("a")
        second = cached_lumen.complete_stream("b")
        await first.__anext__()
        await second.__anext__()
        await drain(second)
        await drain(first)

        a = await cached_lumen.complete("a")
        b = await cached_lumen.complete("b")
        assert a.text == "Echo: a"
        assert b.text == "Echo: b"
        assert provider.complete_calls == 0
