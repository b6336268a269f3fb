"""
Exception filters - turn any error raised while handling a request into a
response.

Dispatch order: method-level filters, controller-level filters, then
global filters. The first filter that returns a ``Response`` wins; filters
returning None are skipped, filters that raise are logged and skipped.
When no filter answers, ``DefaultExceptionFilter`` formats the error, and
if even that fails a fixed 500 JSON body is sent.
"""

from __future__ import annotations

import inspect
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Type, TypeVar, runtime_checkable

from .components import Component
from .context import ArgumentsHost
from .faults import Fault, ValidationFault, status_phrase
from .response import JSON_MEDIA_TYPE, Response


logger = logging.getLogger("heron.filters")

CATCH_ATTR = "__heron_catch__"

T = TypeVar("T")


def catch(*exception_types: Type[BaseException]) -> Callable[[Type[T]], Type[T]]:
    """
    Restrict a filter to the given exception types.

    Example:
        @catch(NotFoundFault)
        class NotFoundFilter:
            def catch(self, exception, host):
                return Response.json({"missing": host.get_request().path}, status=404)
    """
    for exc_type in exception_types:
        if not (isinstance(exc_type, type) and issubclass(exc_type, BaseException)):
            raise TypeError(f"catch() expects exception classes, got {exc_type!r}")

    def decorator(cls: Type[T]) -> Type[T]:
        setattr(cls, CATCH_ATTR, tuple(exception_types))
        return cls
    return decorator


def can_handle(exception_filter: Any, exception: BaseException) -> bool:
    """Whether a filter accepts this exception (undecorated filters accept all)."""
    exception_types = getattr(exception_filter, CATCH_ATTR, ())
    return not exception_types or isinstance(exception, exception_types)


@runtime_checkable
class ExceptionFilter(Protocol):
    def catch(self, exception: BaseException, host: ArgumentsHost) -> Optional[Response]:
        ...


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def http_shape(exception: BaseException) -> Optional[tuple]:
    """
    ``(status, message)`` for errors that carry both, else None.

    An empty message is replaced by the status reason phrase.
    """
    status = getattr(exception, "status", None)
    message = getattr(exception, "message", None)
    if isinstance(status, int) and not isinstance(status, bool) and message is not None:
        return status, str(message) or status_phrase(status)
    return None


class DefaultExceptionFilter:
    """
    Formats errors that no other filter handled.

    Errors with an integer ``status`` and a ``message`` (every ``HttpFault``)
    keep both, and faults add their ``code``; anything else becomes a 500.
    ``debug`` adds the original error text to 500 bodies.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug

    def catch(self, exception: BaseException, host: ArgumentsHost) -> Response:
        request = host.get_request()
        path = getattr(request, "path", None)

        shape = http_shape(exception)
        if shape is not None:
            status, message = shape
            body: Dict[str, Any] = {
                "statusCode": status,
                "message": message,
                "error": status_phrase(status),
                "timestamp": _timestamp(),
                "path": path,
            }
            if isinstance(exception, Fault):
                body["code"] = exception.code
            return Response.json(body, status=status)

        body = {
            "statusCode": 500,
            "message": "Internal Server Error",
            "error": status_phrase(500),
            "timestamp": _timestamp(),
            "path": path,
        }
        if self.debug:
            body["details"] = str(exception) or type(exception).__name__
        return Response.json(body, status=500)


@catch(ValidationFault)
class ValidationFaultFilter:
    """400 response listing per-field validation messages."""

    def catch(self, exception: ValidationFault, host: ArgumentsHost) -> Response:
        fault = exception.to_dict()
        return Response.json(
            {
                "statusCode": 400,
                "error": "Validation Error",
                "code": fault["code"],
                "message": fault["message"],
                "timestamp": _timestamp(),
                "path": getattr(host.get_request(), "path", None),
                "errors": fault["errors"],
            },
            status=400,
        )


def terminal_response() -> Response:
    """Last-resort 500 body; never raises."""
    body = json.dumps({
        "statusCode": 500,
        "message": "Internal Server Error",
        "timestamp": _timestamp(),
    }).encode("utf-8")
    return Response(body, status=500, media_type=JSON_MEDIA_TYPE)


class ExceptionFilterExecutor:
    """Tries filters in order and guarantees a response."""

    def __init__(self, default_filter: Optional[DefaultExceptionFilter] = None):
        self.default_filter = default_filter or DefaultExceptionFilter()

    async def execute(
        self,
        exception: BaseException,
        filters: Sequence[Component],
        host: ArgumentsHost,
    ) -> Response:
        self._log(exception, host)

        for component in filters:
            try:
                exception_filter = await component.get()
                if not can_handle(exception_filter, exception):
                    continue
                result = exception_filter.catch(exception, host)
                if inspect.isawaitable(result):
                    result = await result
            except Exception:
                logger.error("Exception filter %s failed", component.name, exc_info=True)
                continue
            if isinstance(result, Response):
                return result

        if filters:
            logger.debug("No filter handled %s; using default filter", type(exception).__name__)

        try:
            result = self.default_filter.catch(exception, host)
            if inspect.isawaitable(result):
                result = await result
            if isinstance(result, Response):
                return result
            logger.error("Default exception filter returned %r", result)
        except Exception:
            logger.error("Default exception filter failed", exc_info=True)

        return terminal_response()

    @staticmethod
    def _log(exception: BaseException, host: ArgumentsHost) -> None:
        request = host.get_request()
        shape = http_shape(exception)
        if shape is not None and shape[0] < 500:
            logger.info(
                "%s %s -> %d %s",
                request.method, request.path, shape[0], shape[1],
            )
        else:
            logger.error(
                "Unhandled error for %s %s: %s",
                request.method, request.path, exception,
                exc_info=exception,
            )
