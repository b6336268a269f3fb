"""
Path patterns - segment-based URL templates.

Segment kinds:
- static      ``users``      exact string equality
- param       ``:id``        binds the request segment to ``id``
- wildcard    ``*``          matches any one segment, binds nothing
- wildcard    ``**``         final segment only, captures the remainder
                             joined by "/" under the key ``"**"``
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple


_SLASHES = re.compile(r"/+")

WILDCARD_MANY_KEY = "**"


def split_path(path: str) -> List[str]:
    """Split a path on "/" ignoring empty segments."""
    return [segment for segment in path.split("/") if segment]


def combine_paths(*parts: Optional[str]) -> str:
    """
    Join route fragments into one normalized absolute path.

    Empty fragments are skipped, duplicate slashes collapse and the result
    always has exactly one leading slash and no trailing slash.

    Example:
        combine_paths("api", "/users/", ":id")  # "/api/users/:id"
        combine_paths("", "", "")               # "/"
    """
    cleaned = [part.strip("/") for part in parts if part]
    joined = "/".join(part for part in cleaned if part)
    return "/" + _SLASHES.sub("/", joined)


class SegmentKind(str, Enum):
    STATIC = "static"
    PARAM = "param"
    WILDCARD_ONE = "wildcard_one"
    WILDCARD_MANY = "wildcard_many"


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    value: str = ""

    def __str__(self) -> str:
        if self.kind is SegmentKind.PARAM:
            return f":{self.value}"
        if self.kind is SegmentKind.WILDCARD_ONE:
            return "*"
        if self.kind is SegmentKind.WILDCARD_MANY:
            return "**"
        return self.value


@dataclass(frozen=True)
class PathPattern:
    """Parsed, immutable path template."""

    raw: str
    segments: Tuple[Segment, ...]

    @classmethod
    def parse(cls, path: str) -> "PathPattern":
        """
        Parse a path template.

        Raises:
            ValueError: ``**`` anywhere but the last segment, or an empty
                parameter name.
        """
        parts = split_path(path)
        segments: List[Segment] = []
        for index, part in enumerate(parts):
            if part == "**":
                if index != len(parts) - 1:
                    raise ValueError(
                        f"'**' must be the final segment in route pattern {path!r}"
                    )
                segments.append(Segment(SegmentKind.WILDCARD_MANY))
            elif part == "*":
                segments.append(Segment(SegmentKind.WILDCARD_ONE))
            elif part.startswith(":"):
                name = part[1:]
                if not name:
                    raise ValueError(f"Empty parameter name in route pattern {path!r}")
                segments.append(Segment(SegmentKind.PARAM, name))
            else:
                segments.append(Segment(SegmentKind.STATIC, part))
        return cls(raw=path, segments=tuple(segments))

    @property
    def param_names(self) -> List[str]:
        return [s.value for s in self.segments if s.kind is SegmentKind.PARAM]

    @property
    def is_static(self) -> bool:
        return all(s.kind is SegmentKind.STATIC for s in self.segments)

    @property
    def has_wildcard_many(self) -> bool:
        return bool(self.segments) and self.segments[-1].kind is SegmentKind.WILDCARD_MANY

    def match(self, path: str) -> Optional[Dict[str, str]]:
        """
        Match a request path.

        Returns the parameter bindings (empty for a static pattern), or
        None when the path does not match.
        """
        incoming = split_path(path)

        if self.has_wildcard_many:
            fixed = self.segments[:-1]
            if len(incoming) < len(fixed):
                return None
            params = self._match_fixed(fixed, incoming[:len(fixed)])
            if params is None:
                return None
            params[WILDCARD_MANY_KEY] = "/".join(incoming[len(fixed):])
            return params

        if len(incoming) != len(self.segments):
            return None
        return self._match_fixed(self.segments, incoming)

    @staticmethod
    def _match_fixed(
        segments: Tuple[Segment, ...], incoming: List[str]
    ) -> Optional[Dict[str, str]]:
        params: Dict[str, str] = {}
        for segment, value in zip(segments, incoming):
            if segment.kind is SegmentKind.STATIC:
                if segment.value != value:
                    return None
            elif segment.kind is SegmentKind.PARAM:
                params[segment.value] = value
        return params

    def __str__(self) -> str:
        return "/" + "/".join(str(s) for s in self.segments)
