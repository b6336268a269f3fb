"""
Application - assembles a module tree into a servable ASGI application.

Bootstrap:
1. Load modules recursively (imports first); each module is loaded once
2. Register providers with the container
3. Resolve controllers and compile their routes into the route table
4. Collect middleware from module ``configure(consumer)`` hooks

Request handling (``handle``):
- OPTIONS requests without an explicit route answer 204 with the CORS headers
- Matched routes run through middleware and the controller engine
- Unmatched routes answer a plain-text 404
- CORS headers are added to every response when enabled
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import uvicorn

from .asgi import ASGIAdapter
from .components import Component, Role, compile_components
from .config import ApplicationOptions, configure_logging
from .context import ArgumentsHost
from .controller.engine import ControllerEngine
from .controller.metadata import MetadataStore, ModuleRecord
from .di import Container
from .filters import ExceptionFilterExecutor, DefaultExceptionFilter
from .lifecycle import LifecycleCoordinator, LifecyclePhase
from .middleware import MiddlewareConsumer, MiddlewareStack
from .request import Request
from .response import NoContent, NotFound, Response
from .routing import RouteEntry, RouteTable, combine_paths


logger = logging.getLogger("heron.application")

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, PATCH, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


@dataclass
class AppContext:
    """
    Application-wide state shared with the request pipeline.

    Created once at bootstrap and passed by reference into the engine;
    treated as read-only once the application is serving.
    """

    container: Container
    metadata: MetadataStore
    debug: bool = False
    guards: List[Component] = field(default_factory=list)
    pipes: List[Component] = field(default_factory=list)
    interceptors: List[Component] = field(default_factory=list)
    filters: List[Component] = field(default_factory=list)

    def add(self, role: Role, descriptors: Sequence[Any]) -> None:
        target = {
            Role.GUARD: self.guards,
            Role.PIPE: self.pipes,
            Role.INTERCEPTOR: self.interceptors,
            Role.FILTER: self.filters,
        }[role]
        target.extend(compile_components(descriptors, role, self.container))


@dataclass
class LoadedModule:
    record: ModuleRecord
    instance: Any
    controllers: List[Any] = field(default_factory=list)


class Application:
    """
    Heron application.

    Example:
        app = Application(AppModule, ApplicationOptions(global_prefix="api"))
        app.use_global_guards(AuthGuard).use_global_filters(HttpFilter)
        app.listen()
    """

    def __init__(
        self,
        root_module: type,
        options: Optional[ApplicationOptions] = None,
        *,
        container: Optional[Container] = None,
    ):
        self.root_module = root_module
        self.options = options or ApplicationOptions()
        self.container = container or Container()
        self.context = AppContext(
            container=self.container,
            metadata=MetadataStore(self.container),
            debug=self.options.debug,
        )
        self.routes = RouteTable()
        self.lifecycle = LifecycleCoordinator()
        self.engine = ControllerEngine(self.context)
        self.fallback_filters = ExceptionFilterExecutor(DefaultExceptionFilter(debug=self.options.debug))

        self._consumer = MiddlewareConsumer(self.container, self.options.global_prefix)
        self._modules: List[LoadedModule] = []
        self._loaded: Dict[type, LoadedModule] = {}
        self._loading: List[type] = []
        self._asgi = ASGIAdapter(self)

        self.container.register_instance(ApplicationOptions, self.options)
        self._load_module(root_module)
        self.middleware = MiddlewareStack(self._consumer.configs())
        self._log_routes()

    # ========================================================================
    # Bootstrap
    # ========================================================================

    def _load_module(self, module_class: type) -> LoadedModule:
        if module_class in self._loaded:
            return self._loaded[module_class]

        if module_class in self._loading:
            chain = self._loading[self._loading.index(module_class):] + [module_class]
            raise TypeError(
                "Circular module import: " + " -> ".join(m.__name__ for m in chain)
            )

        record = self.context.metadata.module(module_class)
        logger.debug("Loading module %s", module_class.__name__)

        self._loading.append(module_class)
        try:
            for imported in record.imports:
                self._load_module(imported)
        finally:
            self._loading.pop()

        for provider in record.providers:
            self._register_provider(provider)

        instance = self.container.resolve(module_class)
        loaded = LoadedModule(record, instance)
        self._loaded[module_class] = loaded

        for controller_class in record.controllers:
            loaded.controllers.append(self._load_controller(controller_class))

        configure = getattr(instance, "configure", None)
        if callable(configure):
            configure(self._consumer.for_module(module_class))
            self._consumer.for_module(None)

        self._modules.append(loaded)
        return loaded

    def _register_provider(self, provider: Any) -> None:
        if isinstance(provider, tuple) and len(provider) == 2:
            token, ctor = provider
            self.container.register(token, ctor)
            return
        if not isinstance(provider, type):
            raise TypeError(
                f"Invalid provider {provider!r}: expected a class or a (token, class) pair"
            )
        self.container.register(provider)
        self.container.register(provider.__name__, provider)

    def _load_controller(self, controller_class: type) -> Any:
        record = self.context.metadata.controller(controller_class)
        instance = self.container.resolve(controller_class)

        for handler in record.routes:
            path = combine_paths(self.options.global_prefix, record.prefix, handler.path)
            self.routes.add(RouteEntry(
                method=handler.http_method,
                path=path,
                handler=getattr(instance, handler.method_name),
                controller=instance,
                controller_class=controller_class,
                method_name=handler.method_name,
            ))
        return instance

    def _log_routes(self) -> None:
        logger.info("Registered routes (%d):", len(self.routes))
        for route in self.routes:
            logger.info("  %-7s %s -> %s", route.method, route.path, route.key)

    # ========================================================================
    # Global components
    # ========================================================================

    def use_global_guards(self, *guards: Any) -> "Application":
        self.context.add(Role.GUARD, guards)
        return self

    def use_global_pipes(self, *pipes: Any) -> "Application":
        self.context.add(Role.PIPE, pipes)
        return self

    def use_global_interceptors(self, *interceptors: Any) -> "Application":
        self.context.add(Role.INTERCEPTOR, interceptors)
        return self

    def use_global_filters(self, *filters: Any) -> "Application":
        self.context.add(Role.FILTER, filters)
        return self

    # ========================================================================
    # Request handling
    # ========================================================================

    async def handle(self, request: Request) -> Response:
        """Produce exactly one response for a request."""
        match = self.routes.match(request.method, request.path)
        if match is None and request.method == "OPTIONS":
            return NoContent(self._cors_headers())

        if match is None:
            response = NotFound()
        else:
            request.params = match.params
            response = await self._dispatch(match.route, request)

        for name, value in self._cors_headers().items():
            response.set_header(name, value)
        return response

    async def _dispatch(self, route: RouteEntry, request: Request) -> Response:
        async def endpoint(req: Request) -> Response:
            return await self.engine.execute(route, req)

        if not len(self.middleware):
            return await endpoint(request)
        try:
            return await self.middleware.run(request, endpoint)
        except Exception as exc:
            return await self.fallback_filters.execute(
                exc, self.context.filters, ArgumentsHost(request),
            )

    def _cors_headers(self) -> Dict[str, str]:
        return CORS_HEADERS if self.options.cors else {}

    async def __call__(self, scope: dict, receive, send) -> None:
        await self._asgi(scope, receive, send)

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def startup(self) -> None:
        """Resolve providers and run ``on_module_init`` / ``on_application_bootstrap``."""
        if self.lifecycle.phase is not LifecyclePhase.INIT:
            return
        for loaded in self._modules:
            instances: List[Any] = []
            for provider in loaded.record.providers:
                token = provider[0] if isinstance(provider, tuple) else provider
                instances.append(await self.container.resolve_async(token))
            instances.extend(loaded.controllers)
            instances.append(loaded.instance)
            self.lifecycle.register_module(loaded.record.module_class, instances)
        await self.lifecycle.startup()

    async def shutdown(self, signal: Optional[str] = None) -> None:
        """Run ``on_module_destroy`` / ``on_application_shutdown(signal)``."""
        await self.lifecycle.shutdown(signal)

    def listen(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Serve with uvicorn; startup and shutdown run through ASGI lifespan."""
        configure_logging(self.options.log_level)
        host = host or self.options.host
        port = port if port is not None else self.options.port
        logger.info("Starting uvicorn server on %s:%d", host, port)
        uvicorn.run(self, host=host, port=port, log_level=self.options.log_level.lower(), lifespan="on")

    async def serve(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Serve with uvicorn inside an already running event loop."""
        config = uvicorn.Config(
            self,
            host=host or self.options.host,
            port=port if port is not None else self.options.port,
            log_level=self.options.log_level.lower(),
            lifespan="on",
        )
        await uvicorn.Server(config).serve()

    def modules(self) -> Tuple[type, ...]:
        return tuple(loaded.record.module_class for loaded in self._modules)


class ApplicationFactory:
    """Creates applications from a root module."""

    @staticmethod
    def create(
        root_module: type,
        options: Optional[ApplicationOptions] = None,
        **overrides: Any,
    ) -> Application:
        """
        Args:
            root_module: module class decorated with ``@module``
            options: base options (defaults when omitted)
            **overrides: option fields to replace, e.g. ``global_prefix="api"``
        """
        options = options or ApplicationOptions()
        if overrides:
            options = options.merge(**overrides)
        return Application(root_module, options)
