"""
Component descriptors - uniform producers for guards, pipes, interceptors,
filters and middleware.

A descriptor is declared as one of:
- TYPE      a class; resolved through the container, falling back to
            direct instantiation
- INSTANCE  an object that already implements the role's method
- FACTORY   a zero-argument callable (sync or async) invoked per request

Descriptors are classified once, when the controller or application is
registered, so request handling never probes types again.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple

from .di import Container, DIError


logger = logging.getLogger("heron.components")


class ComponentKind(str, Enum):
    TYPE = "type"
    INSTANCE = "instance"
    FACTORY = "factory"


class Role(str, Enum):
    """Component roles and the method each must implement."""

    GUARD = "can_activate"
    PIPE = "transform"
    INTERCEPTOR = "intercept"
    FILTER = "catch"
    MIDDLEWARE = "use"

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Component:
    """A classified descriptor with its producer."""

    kind: ComponentKind
    role: Role
    source: Any
    producer: Callable[[], Awaitable[Any]]

    async def get(self) -> Any:
        """Produce the component instance for the current request."""
        return await self.producer()

    @property
    def name(self) -> str:
        target = self.source if self.kind is not ComponentKind.INSTANCE else type(self.source)
        return getattr(target, "__qualname__", repr(target))

    def __repr__(self) -> str:
        return f"<Component {self.role.label} {self.kind.value} {self.name}>"


def _implements(target: Any, role: Role) -> bool:
    return callable(getattr(target, role.value, None))


def _is_zero_arg(func: Callable) -> bool:
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    return all(
        p.default is not inspect.Parameter.empty
        or p.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        for p in sig.parameters.values()
    )


def compile_component(
    descriptor: Any,
    role: Role,
    container: Optional[Container] = None,
) -> Component:
    """
    Classify a descriptor into a Component.

    Raises:
        TypeError: the descriptor is neither a class nor an instance
            implementing the role's method, nor a zero-argument factory.
    """
    if isinstance(descriptor, Component):
        return descriptor

    if isinstance(descriptor, type):
        if not _implements(descriptor, role):
            raise TypeError(
                f"{descriptor.__qualname__} cannot be used as a {role.label}: "
                f"missing method '{role.value}'"
            )
        return Component(ComponentKind.TYPE, role, descriptor, _type_producer(descriptor, container))

    if _implements(descriptor, role):
        async def instance_producer(instance=descriptor):
            return instance
        return Component(ComponentKind.INSTANCE, role, descriptor, instance_producer)

    if callable(descriptor) and _is_zero_arg(descriptor):
        return Component(ComponentKind.FACTORY, role, descriptor, _factory_producer(descriptor, role))

    raise TypeError(
        f"Invalid {role.label} descriptor {descriptor!r}: expected a class or instance "
        f"implementing '{role.value}', or a zero-argument factory"
    )


def compile_components(
    descriptors: Iterable[Any],
    role: Role,
    container: Optional[Container] = None,
) -> Tuple[Component, ...]:
    return tuple(compile_component(d, role, container) for d in descriptors)


def _type_producer(cls: type, container: Optional[Container]) -> Callable[[], Awaitable[Any]]:
    async def produce():
        if container is not None:
            try:
                return await container.resolve_async(cls)
            except DIError as exc:
                logger.debug(
                    "Container could not resolve %s (%s); instantiating directly",
                    cls.__qualname__, exc,
                )
        return cls()
    return produce


def _factory_producer(factory: Callable, role: Role) -> Callable[[], Awaitable[Any]]:
    async def produce():
        instance = factory()
        if inspect.isawaitable(instance):
            instance = await instance
        if not _implements(instance, role):
            raise TypeError(
                f"Factory {getattr(factory, '__qualname__', factory)!r} produced "
                f"{instance!r}, which has no '{role.value}' method"
            )
        return instance
    return produce
