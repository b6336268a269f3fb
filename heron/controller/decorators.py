"""
Controller, module and route decorators.

Decorators only attach raw attributes; nothing is registered at import
time. ``MetadataStore`` compiles the attributes into records when the
application is assembled.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional, Sequence, TypeVar

from ..di.scopes import ServiceScope


F = TypeVar("F", bound=Callable[..., Any])
T = TypeVar("T")

MODULE_ATTR = "__heron_module__"
CONTROLLER_ATTR = "__heron_controller__"
ROUTE_ATTR = "__route_metadata__"
GUARDS_ATTR = "__heron_guards__"
PIPES_ATTR = "__heron_pipes__"
INTERCEPTORS_ATTR = "__heron_interceptors__"
FILTERS_ATTR = "__heron_filters__"


def module(
    *,
    imports: Optional[Sequence[type]] = None,
    controllers: Optional[Sequence[type]] = None,
    providers: Optional[Sequence[type]] = None,
) -> Callable[[type], type]:
    """
    Declare a module: the controllers it serves, the providers it
    registers, and the modules it imports.

    A module class may define ``configure(self, consumer)`` to attach
    middleware.
    """
    def decorator(cls: type) -> type:
        setattr(cls, MODULE_ATTR, {
            "imports": list(imports or []),
            "controllers": list(controllers or []),
            "providers": list(providers or []),
        })
        return cls
    return decorator


def controller(prefix: Any = "") -> Any:
    """
    Declare a controller with an optional path prefix.

    Works bare (``@controller``) or with a prefix (``@controller("users")``).
    Controllers are singletons resolved through the container.
    """
    if isinstance(prefix, type):
        return controller("")(prefix)

    def decorator(cls: type) -> type:
        setattr(cls, CONTROLLER_ATTR, {"prefix": prefix or ""})
        if "__di_scope__" not in vars(cls):
            cls.__di_scope__ = ServiceScope.SINGLETON  # type: ignore
        return cls
    return decorator


class RouteDecorator:
    """
    Base route decorator.

    Attaches metadata to controller methods for later compilation. One
    method may carry several route decorators.
    """

    method: Optional[str] = None

    def __init__(self, path: str = ""):
        if callable(path):
            raise TypeError(
                f"@{type(self).__name__} must be called: use @{type(self).__name__}() "
                f"or @{type(self).__name__}('/path')"
            )
        self.path = path or ""

    def __call__(self, func: F) -> F:
        routes: List[dict] = list(getattr(func, ROUTE_ATTR, []))
        routes.append({
            "http_method": self.method,
            "path": self.path,
            "func_name": func.__name__,
        })
        setattr(func, ROUTE_ATTR, routes)
        return func


class GET(RouteDecorator):
    method = "GET"


class POST(RouteDecorator):
    method = "POST"


class PUT(RouteDecorator):
    method = "PUT"


class PATCH(RouteDecorator):
    method = "PATCH"


class DELETE(RouteDecorator):
    method = "DELETE"


class OPTIONS(RouteDecorator):
    method = "OPTIONS"


class HEAD(RouteDecorator):
    method = "HEAD"


def _prepend(target: Any, attr: str, items: Iterable[Any]) -> None:
    # vars() keeps subclasses from sharing a base class list
    existing = vars(target).get(attr, [])
    setattr(target, attr, [*items, *existing])


def _attach(attr: str, components: Sequence[Any]) -> Callable[[T], T]:
    if not components:
        raise TypeError(f"{attr.strip('_')} needs at least one component")

    def decorator(target: T) -> T:
        _prepend(target, attr, components)
        return target
    return decorator


def use_guards(*guards: Any) -> Callable[[T], T]:
    """Attach guards to a controller class or handler method."""
    return _attach(GUARDS_ATTR, guards)


def use_pipes(*pipes: Any) -> Callable[[T], T]:
    """Attach pipes to a controller class or handler method."""
    return _attach(PIPES_ATTR, pipes)


def use_interceptors(*interceptors: Any) -> Callable[[T], T]:
    """Attach interceptors to a controller class or handler method."""
    return _attach(INTERCEPTORS_ATTR, interceptors)


def use_filters(*filters: Any) -> Callable[[T], T]:
    """Attach exception filters to a controller class or handler method."""
    return _attach(FILTERS_ATTR, filters)
