"""
Heron DI - constructor-based dependency injection.

Features:
- String or class tokens
- Singleton (default) and transient scopes
- Recursive constructor resolution from ``__init__`` annotations
- ``Annotated[T, Inject("token")]`` for explicit string tokens
- Cycle detection with readable diagnostics
"""

from .core import Container, ResolveCtx, PRIMITIVE_TYPES
from .decorators import Inject, injectable
from .errors import DIError, DependencyCycleError, ProviderNotFoundError
from .scopes import ServiceScope, scope_of

__all__ = [
    "Container",
    "ResolveCtx",
    "PRIMITIVE_TYPES",
    "Inject",
    "injectable",
    "DIError",
    "DependencyCycleError",
    "ProviderNotFoundError",
    "ServiceScope",
    "scope_of",
]
