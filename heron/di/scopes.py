"""
Scope definitions.
"""

from enum import Enum


class ServiceScope(str, Enum):
    """Service lifetime scopes."""

    SINGLETON = "singleton"  # One instance per container
    TRANSIENT = "transient"  # New instance every resolve


DEFAULT_SCOPE = ServiceScope.SINGLETON


def scope_of(target) -> ServiceScope:
    """Read the scope marker a class carries, defaulting to singleton."""
    raw = getattr(target, "__di_scope__", DEFAULT_SCOPE)
    try:
        return ServiceScope(raw)
    except ValueError:
        raise ValueError(
            f"Unknown scope {raw!r} on {getattr(target, '__qualname__', target)}"
        ) from None
