"""
ASGI adapter - bridges the ASGI protocol to ``Application.handle``.

Supports ``http`` and ``lifespan`` scopes. WebSocket connections are
closed with code 1003.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TYPE_CHECKING

from .request import Request
from .response import Response

if TYPE_CHECKING:
    from .application import Application


Receive = Callable[[], Awaitable[dict]]
Send = Callable[[dict], Awaitable[None]]


class ASGIAdapter:
    """Converts ASGI events to Heron requests and responses."""

    __slots__ = ("app", "logger")

    def __init__(self, app: "Application"):
        self.app = app
        self.logger = logging.getLogger("heron.asgi")

    async def __call__(self, scope: dict, receive: Receive, send: Send) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        elif scope_type == "websocket":
            self.logger.warning("WebSocket connection attempt but sockets are not supported")
            await send({"type": "websocket.close", "code": 1003})
        else:
            self.logger.warning("Unsupported ASGI scope type %r", scope_type)

    async def handle_http(self, scope: dict, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        try:
            response = await self.app.handle(request)
        except Exception as exc:
            self.logger.error("Critical error in request pipeline: %s", exc, exc_info=True)
            response = Response.json(
                {"statusCode": 500, "message": "Internal Server Error"},
                status=500,
            )
        await response.send_asgi(send)

    async def handle_lifespan(self, scope: dict, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    await self.app.startup()
                except Exception as exc:
                    self.logger.error("Startup error: %s", exc, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.app.shutdown("SIGTERM")
                except Exception as exc:
                    self.logger.error("Shutdown error: %s", exc, exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return
