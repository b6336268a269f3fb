"""
Guards - access-control predicates evaluated before a handler runs.

Order: global guards, then controller-level, then method-level. Guards run
one at a time; the first falsy result or raised error stops the chain and
the remaining guards never run.

A guard's ``can_activate(context)`` may return:
- a bool (or any truthy/falsy value)
- an awaitable resolving to one
- a stream (async iterable or iterator); its first value is used, and a
  stream that ends without a value counts as False
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .components import Component
from .context import ExecutionContext
from .filters import http_shape
from .response import Response


logger = logging.getLogger("heron.guards")

DEFAULT_REJECTION_STATUS = 403
DEFAULT_REJECTION_MESSAGE = "Access denied"


@runtime_checkable
class CanActivate(Protocol):
    def can_activate(self, context: ExecutionContext) -> Any:
        ...


@dataclass
class GuardResult:
    """Outcome of running a guard chain."""

    can_activate: bool
    error: Optional[BaseException] = None
    guard: Optional[str] = None


async def first_value(result: Any) -> Any:
    """Reduce a guard result (plain, awaitable or stream) to one value."""
    if inspect.isawaitable(result):
        result = await result

    if hasattr(result, "__aiter__"):
        try:
            async for value in result:
                return value
            return False
        finally:
            aclose = getattr(result, "aclose", None)
            if aclose is not None:
                await aclose()

    if hasattr(result, "__next__"):
        try:
            return next(result, False)
        finally:
            close = getattr(result, "close", None)
            if close is not None:
                close()

    return result


class GuardExecutor:
    """Runs an ordered guard chain against an execution context."""

    async def can_activate(
        self,
        guards: Sequence[Component],
        context: ExecutionContext,
    ) -> GuardResult:
        for component in guards:
            try:
                guard = await component.get()
                allowed = await first_value(guard.can_activate(context))
            except Exception as exc:
                logger.warning(
                    "Guard %s raised %s for %s %s",
                    component.name, type(exc).__name__,
                    context.get_request().method, context.get_request().path,
                    exc_info=True,
                )
                return GuardResult(False, exc, component.name)

            if not allowed:
                logger.warning(
                    "Guard %s rejected %s %s",
                    component.name,
                    context.get_request().method, context.get_request().path,
                )
                return GuardResult(False, None, component.name)

        return GuardResult(True)


def rejection_response(result: GuardResult) -> Response:
    """
    Build the JSON response for a rejected guard chain.

    An error carrying ``status`` and ``message`` surfaces both; any other
    error surfaces its message with 403.
    """
    status = DEFAULT_REJECTION_STATUS
    message = DEFAULT_REJECTION_MESSAGE

    error = result.error
    if error is not None:
        shape = http_shape(error)
        if shape is not None:
            status, message = shape
        else:
            message = str(getattr(error, "message", None) or error) or DEFAULT_REJECTION_MESSAGE

    return Response.json(
        {"statusCode": status, "error": "Guard rejected", "message": message},
        status=status,
    )
