"""Lumen engine: the orchestrator that runs completions through middleware.

Each request flows through:
1. Request-message hooks (registration order, may short-circuit)
2. Request-option hooks
3. The provider (one-shot or streaming)
4. Response / chunk hooks (registration order)
"""

from __future__ import annotations

import asyncio
import contextvars
import time
from contextlib import aclosing
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

import structlog

from lumen.errors import InvalidResponseError, LumenError, MiddlewareError
from lumen.middleware.base import Middleware, ShortCircuit
from lumen.models.schemas import (
    CompletionChunk,
    CompletionOptions,
    CompletionResponse,
    Message,
)
from lumen.providers.base import LLMProvider
from lumen.services.metrics import (
    COMPLETION_DURATION,
    COMPLETIONS_TOTAL,
    SHORT_CIRCUITS_TOTAL,
    TOKENS_TOTAL,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def _run_hook(
    middleware: Middleware,
    hook: Callable[[Any], Awaitable[T]],
    value: Any,
    context: contextvars.Context,
) -> T:
    """Await ``hook(value)`` inside the request's *context*.

    Every hook of one request runs in the same context, so context variables
    a middleware sets on the way in are still visible on the way out, even
    when other requests run on the same task in between.  Foreign exceptions
    are wrapped in MiddlewareError.
    """
    try:
        return await asyncio.create_task(hook(value), context=context)
    except LumenError:
        raise
    except Exception as exc:
        raise MiddlewareError(middleware.name, exc) from exc


class Lumen:
    """Completion orchestrator over a single provider.

    Usage::

        lumen = Lumen(OpenAIProvider(api_key="sk-..."))
        lumen.use(CacheMiddleware()).use(PrefixMiddleware("> "))
        response = await lumen.complete("Hello")

        async for chunk in lumen.complete_stream("Hello"):
            print(chunk.text, end="")

    Middleware run in the order they were registered, on the way in and on
    the way out.  Once added, a middleware cannot be removed.
    """

    def __init__(self, provider: LLMProvider) -> None:
        self._provider = provider
        self._middleware: list[Middleware] = []

        logger.info(
            "Lumen initialized",
            provider=provider.name,
            default_model=provider.default_model,
        )

    # ---- Configuration -----------------------------------------------------

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return tuple(self._middleware)

    def use(self, middleware: Middleware) -> "Lumen":
        """Append *middleware* to the pipeline and return self for chaining."""
        self._middleware.append(middleware)
        logger.debug("Middleware registered", middleware=middleware.name, position=len(self._middleware))
        return self

    # ---- Public API --------------------------------------------------------

    async def complete(
        self, prompt: str, options: Optional[CompletionOptions] = None
    ) -> CompletionResponse:
        """Complete a single user prompt."""
        return await self.complete_messages([Message.user(prompt)], options)

    async def complete_messages(
        self,
        messages: list[Message],
        options: Optional[CompletionOptions] = None,
    ) -> CompletionResponse:
        """Run a one-shot completion through the middleware pipeline.

        A middleware that short-circuits on the request side supplies the
        final response; the provider and response hooks are skipped.
        """
        start = time.perf_counter()
        options = self._resolve_options(options)
        context = contextvars.copy_context()
        status = "error"
        short_circuited = False
        try:
            outcome = await self._prepare(messages, options, context)
            if isinstance(outcome, CompletionResponse):
                short_circuited = True
                status = "ok"
                return outcome
            messages, options = outcome

            response = await self._provider.complete(messages, options)
            for mw in self._middleware:
                response = await _run_hook(mw, mw.transform_response, response, context)

            self._record_usage(response)
            status = "ok"
            return response
        except asyncio.CancelledError:
            status = "cancelled"
            raise
        finally:
            self._finish("complete", options, start, status, short_circuited)

    async def complete_stream(
        self, prompt: str, options: Optional[CompletionOptions] = None
    ) -> AsyncIterator[CompletionChunk]:
        """Stream a completion for a single user prompt."""
        async with aclosing(
            self.complete_stream_messages([Message.user(prompt)], options)
        ) as stream:
            async for chunk in stream:
                yield chunk

    async def complete_stream_messages(
        self,
        messages: list[Message],
        options: Optional[CompletionOptions] = None,
    ) -> AsyncIterator[CompletionChunk]:
        """Stream a completion through the middleware pipeline.

        Chunks are pulled from the provider only as fast as the caller
        consumes them.  The stream ends after the first chunk that is
        complete once every chunk hook has run.  Closing the iterator early
        closes the provider stream.
        """
        start = time.perf_counter()
        options = self._resolve_options(options)
        context = contextvars.copy_context()
        status = "error"
        short_circuited = False
        try:
            outcome = await self._prepare(messages, options, context)
            if isinstance(outcome, CompletionResponse):
                short_circuited = True
                status = "ok"
                yield CompletionChunk.from_response(outcome)
                return
            messages, options = outcome

            async with aclosing(self._provider.complete_stream(messages, options)) as upstream:
                async for chunk in upstream:
                    for mw in self._middleware:
                        chunk = await _run_hook(mw, mw.transform_chunk, chunk, context)
                    if chunk.is_complete:
                        status = "ok"
                        yield chunk
                        return
                    yield chunk

            raise InvalidResponseError("Stream ended without a complete chunk")
        except (GeneratorExit, asyncio.CancelledError):
            if status != "ok":
                status = "cancelled"
            raise
        finally:
            self._finish("stream", options, start, status, short_circuited)

    # ---- Private helpers ---------------------------------------------------

    def _resolve_options(self, options: Optional[CompletionOptions]) -> CompletionOptions:
        if options is not None:
            return options
        return CompletionOptions(model=self._provider.default_model)

    async def _prepare(
        self,
        messages: list[Message],
        options: CompletionOptions,
        context: contextvars.Context,
    ) -> CompletionResponse | tuple[list[Message], CompletionOptions]:
        """Run the request-side hooks.

        Returns the short-circuit response if a middleware produced one,
        otherwise the transformed messages and options.
        """
        for mw in self._middleware:
            result = await _run_hook(mw, mw.transform_request_messages, messages, context)
            if isinstance(result, ShortCircuit):
                SHORT_CIRCUITS_TOTAL.labels(middleware=mw.name).inc()
                logger.debug("Request short-circuited", middleware=mw.name)
                return result.response
            messages = result.messages

        for mw in self._middleware:
            options = await _run_hook(mw, mw.transform_request_options, options, context)
        return messages, options

    @staticmethod
    def _record_usage(response: CompletionResponse) -> None:
        if response.usage is None:
            return
        TOKENS_TOTAL.labels(kind="prompt").inc(response.usage.prompt_tokens)
        TOKENS_TOTAL.labels(kind="completion").inc(response.usage.completion_tokens)

    def _finish(
        self,
        mode: str,
        options: CompletionOptions,
        start: float,
        status: str,
        short_circuited: bool,
    ) -> None:
        elapsed = time.perf_counter() - start
        provider = self._provider.name
        COMPLETIONS_TOTAL.labels(provider=provider, mode=mode, status=status).inc()
        COMPLETION_DURATION.labels(provider=provider, mode=mode).observe(elapsed)

        fields: dict[str, Any] = {
            "provider": provider,
            "model": options.model,
            "mode": mode,
            "elapsed_ms": round(elapsed * 1000, 2),
            "short_circuited": short_circuited,
        }
        if status == "ok":
            logger.info("Completion finished", **fields)
        elif status == "cancelled":
            logger.info("Completion cancelled", **fields)
        else:
            logger.warning("Completion failed", **fields)
