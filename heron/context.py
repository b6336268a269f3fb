"""
Execution context - per-request view handed to guards, interceptors,
filters and custom parameter factories.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .request import Request


class ResponseState:
    """
    Response placeholder injected through ``Res()``.

    A handler that returns a plain value can still adjust the status code
    and add headers; both are applied when the result is shaped into a
    response.
    """

    def __init__(self):
        self.status_code: Optional[int] = None
        self.headers: Dict[str, str] = {}

    def status(self, code: int) -> "ResponseState":
        self.status_code = code
        return self

    def header(self, name: str, value: str) -> "ResponseState":
        self.headers[name.lower()] = value
        return self

    def __repr__(self) -> str:
        return f"<ResponseState status={self.status_code} headers={self.headers}>"


class ArgumentsHost:
    """Request and response placeholder, as seen by exception filters."""

    def __init__(self, request: "Request", response: Optional[ResponseState] = None):
        self._request = request
        self._response = response if response is not None else ResponseState()

    def get_request(self) -> "Request":
        return self._request

    def get_response(self) -> ResponseState:
        return self._response


class ExecutionContext(ArgumentsHost):
    """
    Transient context for one request.

    Exposes the request, the response placeholder, the bound handler and
    the controller type. Discarded once the response is produced.
    """

    def __init__(
        self,
        request: "Request",
        handler: Callable[..., Any],
        controller_class: type,
        response: Optional[ResponseState] = None,
    ):
        super().__init__(request, response)
        self._handler = handler
        self._controller_class = controller_class

    def get_handler(self) -> Callable[..., Any]:
        return self._handler

    def get_class(self) -> type:
        return self._controller_class

    def __repr__(self) -> str:
        return (
            f"<ExecutionContext {self._request.method} {self._request.path} "
            f"-> {self._controller_class.__name__}.{getattr(self._handler, '__name__', '?')}>"
        )
