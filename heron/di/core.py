"""
Core DI container.

The container owns two tables:
- token -> constructor (registrations, plus pre-built values)
- constructor -> singleton instance (cache)

Constructors are always resolvable; registration is only required to look
a service up by string token. Dependencies are read from ``__init__``
annotations.
"""

from __future__ import annotations

import inspect
import logging
import types
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

from .decorators import Inject
from .errors import DIError, DependencyCycleError, ProviderNotFoundError
from .scopes import ServiceScope, scope_of


logger = logging.getLogger("heron.di")

T = TypeVar("T")

Token = Union[Type, str]

# Module-level cache: type -> "module.qualname" string
_type_key_cache: Dict[type, str] = {}

# Parameters of these types cannot be resolved and receive None
PRIMITIVE_TYPES = frozenset((str, int, float, bool, bytes))

_EMPTY = inspect.Parameter.empty

_UNION_TYPES = (Union, types.UnionType)


class _Dependency:
    """One constructor parameter and how to fill it."""

    __slots__ = ("name", "kind", "token", "has_default")

    def __init__(self, name: str, kind: Any, token: Optional[Token], has_default: bool):
        self.name = name
        self.kind = kind
        self.token = token
        self.has_default = has_default


class ResolveCtx:
    """
    Context for one resolution call.

    Tracks the constructor stack for cycle detection.
    """

    __slots__ = ("stack",)

    def __init__(self):
        self.stack: List[type] = []

    def push(self, ctor: type) -> None:
        if ctor in self.stack:
            start = self.stack.index(ctor)
            cycle = [c.__qualname__ for c in self.stack[start:]] + [ctor.__qualname__]
            raise DependencyCycleError(cycle)
        self.stack.append(ctor)

    def pop(self) -> None:
        self.stack.pop()

    def requester(self) -> Optional[str]:
        return self.stack[-1].__qualname__ if self.stack else None


class Container:
    """
    Dependency container.

    Example:
        container = Container()
        container.register("users", UserService)
        service = container.resolve("users")
        assert service is container.resolve(UserService)
    """

    def __init__(self):
        self._providers: Dict[str, type] = {}
        self._instances: Dict[str, Any] = {}
        self._cache: Dict[type, Any] = {}
        self._deps_cache: Dict[type, List[_Dependency]] = {}
        self._pending_init: List[Any] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, token: Token, ctor: Optional[type] = None) -> None:
        """
        Register a constructor under a token.

        ``register(Cls)`` registers a class under its own identity.
        Registering the same token again overwrites the previous entry.
        """
        if ctor is None:
            if not isinstance(token, type):
                raise DIError(f"register({token!r}) needs a constructor")
            ctor = token
        if not isinstance(ctor, type):
            raise DIError(f"Provider for {token!r} must be a class, got {ctor!r}")

        key = self._token_to_key(token)
        if key in self._providers and self._providers[key] is not ctor:
            logger.debug("Overwriting provider for %s", key)
        self._providers[key] = ctor
        self._instances.pop(key, None)

    def register_instance(self, token: Token, value: Any) -> None:
        """Register a pre-built value resolvable by token."""
        key = self._token_to_key(token)
        self._providers.pop(key, None)
        self._instances[key] = value

    def has(self, token: Token) -> bool:
        """Check whether a token is registered."""
        key = self._token_to_key(token)
        return key in self._providers or key in self._instances

    def tokens(self) -> List[str]:
        """All registered token keys."""
        return sorted(set(self._providers) | set(self._instances))

    def instances(self) -> List[Any]:
        """Cached singleton instances, in creation order."""
        return list(self._cache.values())

    def clear(self) -> None:
        """Drop all registrations and cached instances."""
        self._providers.clear()
        self._instances.clear()
        self._cache.clear()
        self._deps_cache.clear()
        self._pending_init.clear()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(self, token: Token) -> Any:
        """
        Resolve a service synchronously.

        Raises:
            ProviderNotFoundError: unregistered string token
            DependencyCycleError: constructor graph contains a cycle
        """
        return self._resolve(token, ResolveCtx())

    async def resolve_async(self, token: Token) -> Any:
        """
        Resolve a service and await ``async_init()`` on every instance
        still waiting for it, in creation order (dependencies first).

        Instances built earlier by ``resolve`` are initialized here too.
        """
        instance = self._resolve(token, ResolveCtx())
        while self._pending_init:
            await self._pending_init.pop(0).async_init()
        return instance

    def _resolve(self, token: Token, ctx: ResolveCtx) -> Any:
        key = self._token_to_key(token)

        if key in self._instances:
            return self._instances[key]

        ctor = self._providers.get(key)
        if ctor is None:
            if not isinstance(token, type):
                self._raise_not_found(key, ctx)
            ctor = token

        return self._instantiate(ctor, ctx)

    def _instantiate(self, ctor: type, ctx: ResolveCtx) -> Any:
        scope = scope_of(ctor)

        if scope is ServiceScope.SINGLETON:
            cached = self._cache.get(ctor)
            if cached is not None:
                return cached

        ctx.push(ctor)
        try:
            args: List[Any] = []
            kwargs: Dict[str, Any] = {}
            for dep in self._dependencies(ctor):
                if dep.token is None:
                    if dep.has_default:
                        continue
                    value = None
                else:
                    value = self._resolve(dep.token, ctx)

                if dep.kind is inspect.Parameter.POSITIONAL_ONLY:
                    args.append(value)
                else:
                    kwargs[dep.name] = value

            instance = ctor(*args, **kwargs)
        finally:
            ctx.pop()

        if inspect.iscoroutinefunction(getattr(instance, "async_init", None)):
            self._pending_init.append(instance)
        if scope is ServiceScope.SINGLETON:
            # No lock: a concurrent first resolution may build a duplicate,
            # the last one stored wins.
            self._cache[ctor] = instance
        logger.debug("Instantiated %s (%s)", ctor.__qualname__, scope.value)
        return instance

    def _dependencies(self, ctor: type) -> List[_Dependency]:
        deps = self._deps_cache.get(ctor)
        if deps is None:
            deps = self._extract_dependencies(ctor)
            self._deps_cache[ctor] = deps
        return deps

    def _extract_dependencies(self, ctor: type) -> List[_Dependency]:
        """Read constructor parameters and decide a token for each."""
        deps: List[_Dependency] = []

        if ctor.__init__ is object.__init__:
            return deps

        try:
            sig = inspect.signature(ctor.__init__)
        except (TypeError, ValueError):
            return deps

        try:
            hints = inspect.get_annotations(ctor.__init__, eval_str=True)
        except (NameError, TypeError, SyntaxError):
            hints = getattr(ctor.__init__, "__annotations__", {})

        for name, param in list(sig.parameters.items())[1:]:
            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue
            annotation = hints.get(name, param.annotation)
            deps.append(
                _Dependency(
                    name=name,
                    kind=param.kind,
                    token=self._parse_annotation(annotation),
                    has_default=param.default is not _EMPTY,
                )
            )
        return deps

    @staticmethod
    def _parse_annotation(annotation: Any) -> Optional[Token]:
        """
        Token for an annotation, or None when it cannot be resolved
        (missing, primitive, or not a class).

        ``Optional[T]`` and ``T | None`` resolve as ``T``.
        """
        if annotation is _EMPTY:
            return None

        if get_origin(annotation) is Annotated:
            base, *metadata = get_args(annotation)
            for meta in metadata:
                if isinstance(meta, Inject) and meta.token is not None:
                    return meta.token
            annotation = base

        if get_origin(annotation) in _UNION_TYPES:
            members = [a for a in get_args(annotation) if a is not type(None)]
            if len(members) != 1:
                return None
            return Container._parse_annotation(members[0])

        if isinstance(annotation, str):
            # Unevaluated forward reference
            return None
        if not isinstance(annotation, type) or annotation in PRIMITIVE_TYPES:
            return None
        return annotation

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _token_to_key(self, token: Token) -> str:
        if isinstance(token, str):
            return token

        if isinstance(token, type):
            key = _type_key_cache.get(token)
            if key is None:
                key = f"{token.__module__}.{token.__qualname__}"
                _type_key_cache[token] = key
            return key

        raise DIError(f"Invalid token {token!r}: expected a class or a string")

    def _raise_not_found(self, key: str, ctx: ResolveCtx) -> None:
        candidates = [
            registered for registered in self.tokens()
            if key.lower() in registered.lower() or registered.lower() in key.lower()
        ]
        raise ProviderNotFoundError(
            token=key,
            candidates=candidates,
            requested_by=ctx.requester(),
        )

    def __repr__(self) -> str:
        return (
            f"<Container providers={len(self._providers)} "
            f"instances={len(self._instances)} cached={len(self._cache)}>"
        )
