"""
Request - ASGI request wrapper.

Provides:
- Typed request object wrapping ASGI scope/receive
- Idempotent, cached body reading
- Query, header, JSON and urlencoded form parsing
- Path parameters attached by the router before dispatch
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union
from urllib.parse import parse_qsl

from ._datastructures import Headers, ParsedContentType, RawHeaders, parse_query
from .faults import BadRequestFault


class InvalidJSON(BadRequestFault):
    code = "INVALID_JSON"


class ClientDisconnect(BadRequestFault):
    code = "CLIENT_DISCONNECT"


class Request:
    """
    Request object for Heron.

    ``params`` holds the path parameter table computed by the matcher and
    is attached by the application before the pipeline runs.
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Optional[Callable[[], Awaitable[dict]]] = None,
    ):
        self.scope = scope
        self._receive = receive

        self.params: Dict[str, str] = {}
        self.state: Dict[str, Any] = {}

        self._body: Optional[bytes] = None
        self._json: Any = None
        self._json_loaded = False
        self._query_params: Optional[Dict[str, str]] = None
        self._headers: Optional[Headers] = None

    @classmethod
    def build(
        cls,
        method: str = "GET",
        path: str = "/",
        *,
        query_string: Union[str, bytes] = b"",
        headers: Optional[Union[Mapping[str, str], RawHeaders]] = None,
        body: Union[bytes, str] = b"",
    ) -> "Request":
        """
        Build a request without a server, e.g. for direct ``handle`` calls.

        A ``?query`` part in ``path`` is split off into the query string.
        """
        if "?" in path and not query_string:
            path, query_string = path.split("?", 1)
        if isinstance(query_string, str):
            query_string = query_string.encode("latin-1")
        if isinstance(body, str):
            body = body.encode("utf-8")

        scope = {
            "type": "http",
            "method": method.upper(),
            "path": path,
            "query_string": query_string,
            "headers": Headers.from_mapping(headers).raw,
        }
        request = cls(scope)
        request._body = body
        return request

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def url(self) -> str:
        """Path plus query string, as sent by the client."""
        query = self.query_string
        return f"{self.path}?{query}" if query else self.path

    @property
    def client(self) -> Optional[tuple]:
        return self.scope.get("client")

    @property
    def query_params(self) -> Dict[str, str]:
        """Parsed query parameters; for repeated keys the last value wins."""
        if self._query_params is None:
            self._query_params = parse_query(self.query_string)
        return self._query_params

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(raw=list(self.scope.get("headers", [])))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    def content_type(self) -> Optional[ParsedContentType]:
        return ParsedContentType.parse(self.headers.get("content-type"))

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """Read the full request body (idempotent)."""
        if self._body is not None:
            return self._body

        chunks = []
        if self._receive is not None:
            while True:
                message = await self._receive()
                if message["type"] == "http.disconnect":
                    raise ClientDisconnect("Client disconnected")
                chunks.append(message.get("body", b""))
                if not message.get("more_body", False):
                    break

        self._body = b"".join(chunks)
        return self._body

    async def text(self) -> str:
        body = await self.body()
        content_type = self.content_type()
        encoding = content_type.charset if content_type else "utf-8"
        return body.decode(encoding)

    async def json(self) -> Any:
        """
        Parse the body as JSON (cached).

        Raises:
            InvalidJSON: malformed payload
        """
        if self._json_loaded:
            return self._json

        body = await self.body()
        try:
            self._json = stdlib_json.loads(body.decode("utf-8")) if body else None
        except UnicodeDecodeError as e:
            raise InvalidJSON(f"Invalid UTF-8 in JSON payload: {e}") from e
        except stdlib_json.JSONDecodeError as e:
            raise InvalidJSON(f"Invalid JSON: {e}") from e

        self._json_loaded = True
        return self._json

    async def form(self) -> Dict[str, str]:
        """Parse an urlencoded body; for repeated keys the last value wins."""
        text = await self.text()
        return dict(parse_qsl(text, keep_blank_values=True))

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"
