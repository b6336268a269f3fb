"""
Controller Metadata - compiled, read-only records built at startup.

The decorator layer leaves raw attributes on modules, controllers and
handler functions. ``MetadataStore`` compiles them once into immutable
records keyed by ``(controller type, method name)``, classifying every
guard, pipe, interceptor and filter descriptor along the way.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Dict, List, Optional, Tuple, get_args, get_origin

from ..components import Component, Role, compile_components
from ..di import Container
from ..params import ParamMarker
from ..pipes import ParamKind
from .decorators import (
    CONTROLLER_ATTR,
    FILTERS_ATTR,
    GUARDS_ATTR,
    INTERCEPTORS_ATTR,
    MODULE_ATTR,
    PIPES_ATTR,
    ROUTE_ATTR,
)


logger = logging.getLogger("heron.metadata")


@dataclass(frozen=True)
class ParamBinding:
    """One handler argument bound to a request source."""

    index: int
    name: str
    kind: ParamKind
    key: Optional[str] = None
    declared_type: Optional[Any] = None
    pipes: Tuple[Component, ...] = ()
    factory: Optional[Callable[..., Any]] = None


@dataclass(frozen=True)
class HandlerRecord:
    """One route on one controller method."""

    http_method: str
    path: str
    method_name: str
    guards: Tuple[Component, ...] = ()
    pipes: Tuple[Component, ...] = ()
    interceptors: Tuple[Component, ...] = ()
    filters: Tuple[Component, ...] = ()
    params: Tuple[ParamBinding, ...] = ()
    arity: int = 0


@dataclass(frozen=True)
class ControllerRecord:
    controller_class: type
    prefix: str
    routes: Tuple[HandlerRecord, ...] = ()
    guards: Tuple[Component, ...] = ()
    pipes: Tuple[Component, ...] = ()
    interceptors: Tuple[Component, ...] = ()
    filters: Tuple[Component, ...] = ()


@dataclass(frozen=True)
class ModuleRecord:
    module_class: type
    imports: Tuple[type, ...] = ()
    controllers: Tuple[type, ...] = ()
    providers: Tuple[type, ...] = ()


def is_module(cls: Any) -> bool:
    return isinstance(cls, type) and MODULE_ATTR in vars(cls)


def is_controller(cls: Any) -> bool:
    return isinstance(cls, type) and CONTROLLER_ATTR in vars(cls)


def _own(target: Any, attr: str) -> List[Any]:
    return list(vars(target).get(attr, []))


def _marker(annotation: Any) -> Optional[ParamMarker]:
    """The ParamMarker inside an ``Annotated[...]`` annotation, if any."""
    if get_origin(annotation) is not Annotated:
        return None
    return next((m for m in get_args(annotation)[1:] if isinstance(m, ParamMarker)), None)


class MetadataStore:
    """
    Registration table for modules, controllers and handlers.

    Records are compiled on first access and cached; lookups after
    bootstrap never inspect classes again.
    """

    def __init__(self, container: Optional[Container] = None):
        self.container = container
        self._modules: Dict[type, ModuleRecord] = {}
        self._controllers: Dict[type, ControllerRecord] = {}
        self._handlers: Dict[Tuple[type, str], HandlerRecord] = {}

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def module(self, cls: type) -> ModuleRecord:
        record = self._modules.get(cls)
        if record is not None:
            return record

        if not is_module(cls):
            raise TypeError(f"{getattr(cls, '__name__', cls)!r} is not a valid module")

        raw = vars(cls)[MODULE_ATTR]
        record = ModuleRecord(
            module_class=cls,
            imports=tuple(raw["imports"]),
            controllers=tuple(raw["controllers"]),
            providers=tuple(raw["providers"]),
        )
        self._modules[cls] = record
        return record

    # ------------------------------------------------------------------
    # Controllers
    # ------------------------------------------------------------------

    def controller(self, cls: type) -> ControllerRecord:
        record = self._controllers.get(cls)
        if record is not None:
            return record

        if not is_controller(cls):
            raise TypeError(f"{getattr(cls, '__name__', cls)!r} is not a valid controller")

        routes: List[HandlerRecord] = []
        for name, func in self._route_functions(cls):
            for route in getattr(func, ROUTE_ATTR):
                handler = self._compile_handler(cls, name, func, route)
                routes.append(handler)
                self._handlers.setdefault((cls, name), handler)

        record = ControllerRecord(
            controller_class=cls,
            prefix=vars(cls)[CONTROLLER_ATTR]["prefix"],
            routes=tuple(routes),
            guards=self._compile(cls, GUARDS_ATTR, Role.GUARD),
            pipes=self._compile(cls, PIPES_ATTR, Role.PIPE),
            interceptors=self._compile(cls, INTERCEPTORS_ATTR, Role.INTERCEPTOR),
            filters=self._compile(cls, FILTERS_ATTR, Role.FILTER),
        )
        self._controllers[cls] = record
        return record

    def handler(self, cls: type, method_name: str) -> HandlerRecord:
        """Record for ``cls.method_name``; the first route wins for stacked decorators."""
        key = (cls, method_name)
        if key not in self._handlers:
            self.controller(cls)
        try:
            return self._handlers[key]
        except KeyError:
            raise LookupError(f"{cls.__name__}.{method_name} is not a route handler") from None

    @staticmethod
    def _route_functions(cls: type) -> List[Tuple[str, Callable]]:
        """Route-decorated functions in declaration order, base classes first."""
        found: Dict[str, Callable] = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                func = attr.__func__ if isinstance(attr, (staticmethod, classmethod)) else attr
                if callable(func) and hasattr(func, ROUTE_ATTR):
                    found[name] = func
                elif name in found:
                    # Overridden without a route decorator
                    del found[name]
        return list(found.items())

    def _compile(self, target: Any, attr: str, role: Role) -> Tuple[Component, ...]:
        return compile_components(_own(target, attr), role, self.container)

    def _compile_handler(self, cls: type, name: str, func: Callable, route: dict) -> HandlerRecord:
        params, arity = self._compile_params(cls, func)
        return HandlerRecord(
            http_method=route["http_method"],
            path=route["path"],
            method_name=name,
            guards=self._compile(func, GUARDS_ATTR, Role.GUARD),
            pipes=self._compile(func, PIPES_ATTR, Role.PIPE),
            interceptors=self._compile(func, INTERCEPTORS_ATTR, Role.INTERCEPTOR),
            filters=self._compile(func, FILTERS_ATTR, Role.FILTER),
            params=params,
            arity=arity,
        )

    def _compile_params(self, cls: type, func: Callable) -> Tuple[Tuple[ParamBinding, ...], int]:
        sig = inspect.signature(func)
        try:
            hints = inspect.get_annotations(func, eval_str=True)
        except (NameError, TypeError, SyntaxError) as exc:
            logger.warning(
                "Could not evaluate annotations of %s.%s: %s",
                cls.__name__, func.__name__, exc,
            )
            hints = dict(getattr(func, "__annotations__", {}))

        positional = [
            p for p in sig.parameters.values()
            if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]
        # Drop the bound instance
        if positional and positional[0].name in ("self", "cls"):
            positional = positional[1:]

        # Handlers are called with positional arguments only
        for param in sig.parameters.values():
            if param.kind is not inspect.Parameter.KEYWORD_ONLY:
                continue
            if param.default is inspect.Parameter.empty or _marker(hints.get(param.name)) is not None:
                raise TypeError(
                    f"{cls.__name__}.{func.__name__}: keyword-only parameter "
                    f"'{param.name}' cannot be bound; declare it before '*'"
                )

        bindings: List[ParamBinding] = []
        for index, param in enumerate(positional):
            annotation = hints.get(param.name, param.annotation)
            marker = _marker(annotation)
            if marker is None:
                continue
            declared = get_args(annotation)[0]
            bindings.append(ParamBinding(
                index=index,
                name=param.name,
                kind=marker.kind,
                key=marker.key,
                declared_type=declared,
                pipes=compile_components(marker.pipes, Role.PIPE, self.container),
                factory=marker.factory,
            ))
        return tuple(bindings), len(positional)

    def controllers(self) -> List[ControllerRecord]:
        return list(self._controllers.values())

    def modules(self) -> List[ModuleRecord]:
        return list(self._modules.values())
