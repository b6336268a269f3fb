"""
Middleware - composable async wrappers around matched routes.

Modules attach middleware in ``configure(consumer)``:

    @module(controllers=[UserController])
    class UserModule:
        def configure(self, consumer: MiddlewareConsumer):
            consumer.apply(LoggerMiddleware).exclude("/users/health").for_routes("/users/*")

A middleware is a class or instance with ``use(request, call_next)``, or a
plain ``async def (request, call_next)`` function. Middleware run in
registration order; the first registered is outermost.
"""

from __future__ import annotations

import inspect
import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple, Union

from .components import Component, Role, compile_component
from .di import Container
from .request import Request
from .response import Response
from .routing import combine_paths


logger = logging.getLogger("heron.middleware")

Handler = Callable[[Request], Awaitable[Response]]


@dataclass(frozen=True)
class RouteInfo:
    """Path pattern (``*`` matches anything) with an optional HTTP method."""

    path: str
    method: Optional[str] = None

    def matches(self, path: str, method: str) -> bool:
        if self.method is not None and self.method.upper() != method.upper():
            return False
        return match_path(self.path, path)


def match_path(pattern: str, path: str) -> bool:
    """Full match of ``path`` against ``pattern`` where ``*`` is ``.*``."""
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$"
    return re.match(regex, path) is not None


class FunctionMiddleware:
    """Adapter giving a plain ``(request, call_next)`` function a ``use`` method."""

    def __init__(self, func: Callable[[Request, Handler], Any]):
        self.func = func

    def use(self, request: Request, call_next: Handler) -> Any:
        return self.func(request, call_next)


@dataclass
class MiddlewareConfig:
    """One middleware with the routes it applies to."""

    component: Component
    include: List[RouteInfo] = field(default_factory=list)
    exclude: List[RouteInfo] = field(default_factory=list)
    module: Optional[type] = None

    def applies_to(self, path: str, method: str) -> bool:
        if self.include and not any(r.matches(path, method) for r in self.include):
            return False
        if any(r.matches(path, method) for r in self.exclude):
            return False
        return True


RouteSpec = Union[str, RouteInfo, type]


class MiddlewareConfigurator:
    """Returned by ``consumer.apply(...)``; narrows where the middleware runs."""

    def __init__(self, consumer: "MiddlewareConsumer", configs: Sequence[MiddlewareConfig]):
        self._consumer = consumer
        self._configs = configs

    def exclude(self, *routes: RouteSpec) -> "MiddlewareConfigurator":
        infos = self._consumer._route_infos(routes)
        for config in self._configs:
            config.exclude.extend(infos)
        return self

    def for_routes(self, *routes: RouteSpec) -> "MiddlewareConsumer":
        infos = self._consumer._route_infos(routes)
        for config in self._configs:
            config.include.extend(infos)
        return self._consumer


class MiddlewareConsumer:
    """
    Collects middleware registrations from module ``configure`` hooks.

    ``for_routes`` accepts path patterns, ``RouteInfo`` values (to add a
    method filter) and controller classes (their prefix and everything
    below it). Middleware applied without ``for_routes`` runs on every
    matched route.
    """

    def __init__(self, container: Optional[Container] = None, global_prefix: str = ""):
        self.container = container
        self.global_prefix = global_prefix
        self._configs: List[MiddlewareConfig] = []
        self._module: Optional[type] = None

    def apply(self, *middleware: Any) -> MiddlewareConfigurator:
        if not middleware:
            raise TypeError("apply() needs at least one middleware")
        configs = [
            MiddlewareConfig(self._compile(m), module=self._module)
            for m in middleware
        ]
        self._configs.extend(configs)
        logger.debug("Middleware registered: %s", ", ".join(c.component.name for c in configs))
        return MiddlewareConfigurator(self, configs)

    def for_module(self, module_class: Optional[type]) -> "MiddlewareConsumer":
        """Tag subsequent registrations with the module that made them."""
        self._module = module_class
        return self

    def configs(self) -> List[MiddlewareConfig]:
        return list(self._configs)

    def _compile(self, middleware: Any) -> Component:
        is_function = (
            not isinstance(middleware, type)
            and not hasattr(middleware, Role.MIDDLEWARE.value)
            and callable(middleware)
        )
        if is_function and not _is_zero_arg_factory(middleware):
            middleware = FunctionMiddleware(middleware)
        return compile_component(middleware, Role.MIDDLEWARE, self.container)

    def _route_infos(self, routes: Sequence[RouteSpec]) -> List[RouteInfo]:
        infos: List[RouteInfo] = []
        for route in routes:
            if isinstance(route, RouteInfo):
                infos.append(RouteInfo(self._absolute(route.path), route.method))
            elif isinstance(route, str):
                infos.append(RouteInfo(self._absolute(route)))
            elif isinstance(route, type):
                prefix = vars(route).get("__heron_controller__", {}).get("prefix", "")
                base = combine_paths(self.global_prefix, prefix)
                infos.append(RouteInfo(base))
                infos.append(RouteInfo(base.rstrip("/") + "/*"))
            else:
                raise TypeError(f"Invalid route for middleware: {route!r}")
        return infos

    def _absolute(self, pattern: str) -> str:
        if pattern == "*":
            return pattern
        return combine_paths(self.global_prefix, pattern)


def _is_zero_arg_factory(func: Callable) -> bool:
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return False
    return all(p.default is not inspect.Parameter.empty for p in params)


class MiddlewareStack:
    """
    Builds the per-request chain from the configured middleware.

    Selection happens per request (path and method filters); wrapping is in
    reverse so the first registered middleware is outermost.
    """

    def __init__(self, configs: Sequence[MiddlewareConfig] = ()):
        self.configs: Tuple[MiddlewareConfig, ...] = tuple(configs)

    def select(self, path: str, method: str) -> List[MiddlewareConfig]:
        return [c for c in self.configs if c.applies_to(path, method)]

    def build_handler(self, request: Request, final_handler: Handler) -> Handler:
        handler = final_handler
        for config in reversed(self.select(request.path, request.method)):
            handler = self._wrap_middleware(config.component, handler)
        return handler

    async def run(self, request: Request, final_handler: Handler) -> Response:
        return await self.build_handler(request, final_handler)(request)

    @staticmethod
    def _wrap_middleware(component: Component, next_handler: Handler) -> Handler:
        async def wrapped(request: Request) -> Response:
            middleware = await component.get()
            result = middleware.use(request, next_handler)
            if inspect.isawaitable(result):
                result = await result
            if not isinstance(result, Response):
                raise TypeError(
                    f"Middleware {component.name} returned {type(result).__name__}, "
                    f"expected Response"
                )
            return result
        return wrapped

    def __len__(self) -> int:
        return len(self.configs)


# ============================================================================
# Built-in middleware
# ============================================================================

class LoggerMiddleware:
    """Logs each request with its status and duration."""

    def __init__(self, logger_name: str = "heron.middleware"):
        self.logger = logging.getLogger(logger_name)

    async def use(self, request: Request, call_next: Handler) -> Response:
        start = time.perf_counter()
        self.logger.info("%s %s - started", request.method, request.path)
        response = await call_next(request)
        self.logger.info(
            "%s %s - %d (+%.1fms)",
            request.method, request.path, response.status,
            (time.perf_counter() - start) * 1000,
        )
        return response


class RequestIdMiddleware:
    """Stores a request id in ``request.state`` and echoes it as a header."""

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name

    async def use(self, request: Request, call_next: Handler) -> Response:
        request_id = request.header(self.header_name) or os.urandom(16).hex()
        request.state["request_id"] = request_id
        response = await call_next(request)
        response.set_header(self.header_name, request_id)
        return response
