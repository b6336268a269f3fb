"""
Shared test fixtures and helpers for the Heron test suite.
"""

import json
import pytest
from typing import Any, Callable, Dict, List, Optional

import httpx

from heron.components import Role, compile_component, compile_components
from heron.context import ExecutionContext, ResponseState
from heron.di import Container
from heron.request import Request
from heron.response import Response


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    client: Optional[tuple] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    for name, value in headers or []:
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": client or ("127.0.0.1", 12345),
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or a chunk list."""
    parts = chunks if chunks else [body]
    messages = [
        {"type": "http.request", "body": chunk, "more_body": i < len(parts) - 1}
        for i, chunk in enumerate(parts)
    ]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


def make_request(
    method: str = "GET",
    path: str = "/",
    *,
    json_body: Any = None,
    body: bytes = b"",
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, str]] = None,
) -> Request:
    """Build a Request directly, optionally with a JSON body and path params."""
    headers = dict(headers or {})
    if json_body is not None:
        body = json.dumps(json_body).encode("utf-8")
        headers.setdefault("content-type", "application/json")
    request = Request.build(method, path, headers=headers, body=body)
    if params:
        request.params = dict(params)
    return request


def make_context(
    request: Optional[Request] = None,
    handler: Optional[Callable] = None,
    controller_class: type = object,
) -> ExecutionContext:
    def default_handler():
        return None

    return ExecutionContext(
        request or make_request(),
        handler or default_handler,
        controller_class,
        ResponseState(),
    )


def components(role: Role, *descriptors: Any, container: Optional[Container] = None):
    return compile_components(descriptors, role, container)


def component(role: Role, descriptor: Any, container: Optional[Container] = None):
    return compile_component(descriptor, role, container)


def response_json(response: Response) -> Any:
    return json.loads(response.body.decode("utf-8"))


def asgi_client(app, base_url: str = "http://testserver") -> httpx.AsyncClient:
    """httpx client bound to an ASGI app (no network, no lifespan)."""
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=base_url)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def container():
    return Container()


@pytest.fixture
def calls() -> List[str]:
    """Shared call log for ordering assertions."""
    return []
