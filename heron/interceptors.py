"""
Interceptors - onion-composed wrappers around handler invocation.

With interceptors ``[A, B]`` the observable order is::

    A-before, B-before, handler, B-after, A-after

Each interceptor's ``intercept(context, call_handler)`` receives a lazy
``CallHandler``; nothing inside runs until ``await call_handler.handle()``.
An interceptor may pass the result through, transform it, skip the inner
call entirely (cache hit), or turn an inner error into a result. Errors it
does not handle propagate like handler errors.
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Protocol, Sequence, Tuple, runtime_checkable

from .components import Component
from .context import ExecutionContext
from .response import Response


logger = logging.getLogger("heron.interceptors")


class CallHandler:
    """Lazy handle to the rest of the chain."""

    __slots__ = ("_handler",)

    def __init__(self, handler: Callable[[], Any]):
        self._handler = handler

    async def handle(self) -> Any:
        result = self._handler()
        if inspect.isawaitable(result):
            result = await result
        return result


@runtime_checkable
class Interceptor(Protocol):
    def intercept(self, context: ExecutionContext, call_handler: CallHandler) -> Any:
        ...


class InterceptorExecutor:
    """Composes interceptors right to left around a terminal handler."""

    async def execute(
        self,
        interceptors: Sequence[Component],
        context: ExecutionContext,
        handler: Callable[[], Any],
    ) -> Any:
        call_handler = CallHandler(handler)
        for component in reversed(interceptors):
            call_handler = CallHandler(
                functools.partial(self._intercept, component, context, call_handler)
            )
        return await call_handler.handle()

    @staticmethod
    async def _intercept(
        component: Component,
        context: ExecutionContext,
        inner: CallHandler,
    ) -> Any:
        interceptor = await component.get()
        result = interceptor.intercept(context, inner)
        if inspect.isawaitable(result):
            result = await result
        return result


# ============================================================================
# Built-in interceptors
# ============================================================================

def _handler_key(context: ExecutionContext) -> str:
    return f"{context.get_class().__name__}.{getattr(context.get_handler(), '__name__', 'handler')}"


class LoggingInterceptor:
    """Logs handler entry and completion time."""

    def __init__(self, logger_name: str = "heron.interceptors"):
        self.logger = logging.getLogger(logger_name)

    async def intercept(self, context: ExecutionContext, call_handler: CallHandler) -> Any:
        name = _handler_key(context)
        start = time.perf_counter()
        self.logger.info("%s - started", name)
        result = await call_handler.handle()
        self.logger.info("%s - completed (+%.1fms)", name, (time.perf_counter() - start) * 1000)
        return result


class CacheInterceptor:
    """
    Caches handler results in memory.

    The key is ``Controller.method:path?query``; entries live for ``ttl``
    seconds.
    """

    def __init__(self, ttl: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._cache: Dict[str, Tuple[Any, float]] = {}

    def cache_key(self, context: ExecutionContext) -> str:
        base = _handler_key(context)
        request = context.get_request()
        url = getattr(request, "url", None)
        return f"{base}:{url}" if url else base

    async def intercept(self, context: ExecutionContext, call_handler: CallHandler) -> Any:
        key = self.cache_key(context)
        entry = self._cache.get(key)
        if entry is not None:
            value, stored_at = entry
            if self._clock() - stored_at < self.ttl:
                logger.debug("Cache hit: %s", key)
                return value
            del self._cache[key]

        value = await call_handler.handle()
        self._cache[key] = (value, self._clock())
        logger.debug("Cached: %s", key)
        return value

    def clear(self) -> None:
        self._cache.clear()

    def evict(self, key: str) -> bool:
        """Drop one entry; returns whether it existed."""
        return self._cache.pop(key, None) is not None

    @property
    def size(self) -> int:
        return len(self._cache)


class TransformInterceptor:
    """
    Wraps results as ``{"success", "data", "timestamp", "path"}``.

    Values that already carry ``success`` and ``Response`` objects pass
    through unchanged.
    """

    async def intercept(self, context: ExecutionContext, call_handler: CallHandler) -> Any:
        data = await call_handler.handle()
        if isinstance(data, Response):
            return data
        if isinstance(data, dict) and "success" in data:
            return data

        request = context.get_request()
        return {
            "success": True,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": getattr(request, "url", None) or "unknown",
        }
