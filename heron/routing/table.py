"""
Route table - ordered list of registered routes.

The first route in registration order whose method and pattern both match
wins. The table is filled during bootstrap and treated as read-only once
the application serves traffic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .pattern import PathPattern


logger = logging.getLogger("heron.routing")


@dataclass(frozen=True)
class RouteEntry:
    """One registered handler. Immutable after creation."""

    method: str
    path: str
    handler: Callable[..., Any]
    controller: Any
    controller_class: type
    method_name: str
    pattern: PathPattern = field(default=None)  # type: ignore[assignment]

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        if self.pattern is None:
            object.__setattr__(self, "pattern", PathPattern.parse(self.path))

    @property
    def key(self) -> str:
        return f"{self.controller_class.__name__}.{self.method_name}"

    def __repr__(self) -> str:
        return f"<RouteEntry {self.method} {self.path} -> {self.key}>"


@dataclass
class RouteMatch:
    """Result of a successful route match."""

    route: RouteEntry
    params: Dict[str, str]


class RouteTable:
    """
    Ordered route registry with a segment-based matcher.

    Example:
        table = RouteTable()
        table.add(RouteEntry("GET", "/users/:id", handler, ctrl, UserController, "get"))
        found = table.match("GET", "/users/42")
        found.params  # {"id": "42"}
    """

    def __init__(self):
        self._routes: List[RouteEntry] = []

    def add(self, entry: RouteEntry) -> None:
        for existing in self._routes:
            if existing.method == entry.method and existing.path == entry.path:
                logger.warning(
                    "Route %s %s (%s) is shadowed by %s registered earlier",
                    entry.method, entry.path, entry.key, existing.key,
                )
                break
        self._routes.append(entry)
        logger.debug("Added route %s %s -> %s", entry.method, entry.path, entry.key)

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        method = method.upper()
        for entry in self._routes:
            if entry.method != method:
                continue
            params = entry.pattern.match(path)
            if params is not None:
                return RouteMatch(route=entry, params=params)
        return None

    def routes(self) -> List[RouteEntry]:
        return list(self._routes)

    def clear(self) -> None:
        self._routes.clear()

    def __len__(self) -> int:
        return len(self._routes)

    def __iter__(self):
        return iter(self._routes)
