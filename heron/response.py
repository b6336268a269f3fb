"""
Response - HTTP response with ASGI send support.

Provides:
- Response with bytes/str/JSON content and case-insensitive headers
- json/text factory methods
- Convenience factories for common status codes
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

# Optional fast JSON
try:
    import orjson
    JSON_ENCODER = "orjson"
except ImportError:
    orjson = None
    JSON_ENCODER = "stdlib"


JSON_MEDIA_TYPE = "application/json; charset=utf-8"
TEXT_MEDIA_TYPE = "text/plain; charset=utf-8"


def _json_default_serializer(o):
    """Default JSON serializer for non-standard types."""
    if isinstance(o, (set, tuple, frozenset)):
        return list(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if hasattr(o, "to_dict"):
        return o.to_dict()
    if hasattr(o, "__dataclass_fields__"):
        return {name: getattr(o, name) for name in o.__dataclass_fields__}
    return str(o)


def dumps(obj: Any) -> bytes:
    """Compact UTF-8 JSON, encoded by orjson when it is installed."""
    if orjson is not None:
        return orjson.dumps(obj, default=_json_default_serializer, option=orjson.OPT_NON_STR_KEYS)
    return json.dumps(
        obj, default=_json_default_serializer, separators=(",", ":"), ensure_ascii=False,
    ).encode("utf-8")


class Response:
    """
    HTTP response.

    Content may be bytes, str, or a JSON-serializable value (dict/list);
    media type is detected from the content when not given.
    """

    def __init__(
        self,
        content: Union[bytes, str, Mapping, List, None] = b"",
        status: int = 200,
        headers: Optional[Mapping[str, str]] = None,
        media_type: Optional[str] = None,
        *,
        encoding: str = "utf-8",
    ):
        self.status = status
        self.encoding = encoding
        self._content = b"" if content is None else content

        self._headers: Dict[str, str] = {}
        if headers:
            for key, value in headers.items():
                self._headers[key.lower()] = value

        if media_type:
            self._headers["content-type"] = media_type
        elif "content-type" not in self._headers:
            self._headers["content-type"] = self._detect_media_type(self._content)

    @property
    def headers(self) -> Dict[str, str]:
        return self._headers

    @property
    def content(self) -> Any:
        return self._content

    @property
    def body(self) -> bytes:
        """Encoded body bytes."""
        return self._encode_body(self._content)

    def _detect_media_type(self, content: Any) -> str:
        if isinstance(content, (dict, list)):
            return JSON_MEDIA_TYPE
        elif isinstance(content, str):
            return TEXT_MEDIA_TYPE
        return "application/octet-stream"

    # ========================================================================
    # Factory Methods
    # ========================================================================

    @classmethod
    def json(
        cls,
        obj: Any,
        status: int = 200,
        *,
        headers: Optional[Mapping[str, str]] = None,
    ) -> "Response":
        return cls(
            content=dumps(obj),
            status=status,
            headers=headers,
            media_type=JSON_MEDIA_TYPE,
        )

    @classmethod
    def text(cls, content: str, status: int = 200, **kwargs) -> "Response":
        return cls(content=content, status=status, media_type=TEXT_MEDIA_TYPE, **kwargs)

    # ========================================================================
    # Headers
    # ========================================================================

    def set_header(self, name: str, value: str) -> None:
        self._headers[name.lower()] = value

    def unset_header(self, name: str) -> None:
        self._headers.pop(name.lower(), None)

    # ========================================================================
    # ASGI
    # ========================================================================

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """Send this response through an ASGI ``send`` callable."""
        body = self.body
        headers = dict(self._headers)
        if self.status not in (204, 304):
            headers.setdefault("content-length", str(len(body)))

        await send({
            "type": "http.response.start",
            "status": self.status,
            "headers": [
                (name.encode("latin-1"), str(value).encode("latin-1"))
                for name, value in headers.items()
            ],
        })
        await send({
            "type": "http.response.body",
            "body": body,
            "more_body": False,
        })

    def _encode_body(self, content: Any) -> bytes:
        if isinstance(content, bytes):
            return content
        elif isinstance(content, str):
            return content.encode(self.encoding)
        elif isinstance(content, (dict, list)):
            return dumps(content)
        return str(content).encode(self.encoding)

    def __repr__(self) -> str:
        return f"<Response status={self.status} content-type={self._headers.get('content-type')!r}>"


# ============================================================================
# Convenience Response Factories
# ============================================================================

def Ok(content: Any = None, **kwargs) -> Response:
    if content is None:
        return Response.text("OK", **kwargs)
    if isinstance(content, str):
        return Response.text(content, **kwargs)
    return Response.json(content, **kwargs)


def NoContent(headers: Optional[Mapping[str, str]] = None) -> Response:
    response = Response(b"", status=204, headers=headers)
    response.unset_header("content-type")
    return response


def NotFound(message: str = "Not Found") -> Response:
    return Response.text(message, status=404)
