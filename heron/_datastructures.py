"""
Core data structures for Heron request handling.

Provides:
- Headers: Case-insensitive header access
- ParsedContentType: Content-Type parsing helper
- parse_query: query string to a flat mapping
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union
from urllib.parse import parse_qsl


RawHeaders = List[Tuple[bytes, bytes]]


# ============================================================================
# Headers
# ============================================================================

@dataclass
class Headers:
    """
    Case-insensitive header access with raw preservation.

    Normalizes header names while preserving original casing.
    """

    raw: RawHeaders = field(default_factory=list)
    _index: Dict[str, List[Tuple[bytes, bytes]]] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        self._index = {}
        for name, value in self.raw:
            key = name.decode("latin-1").lower()
            self._index.setdefault(key, []).append((name, value))

    @classmethod
    def from_mapping(cls, headers: Optional[Union[Mapping[str, str], RawHeaders]]) -> "Headers":
        """Build from a ``{name: value}`` mapping or ASGI raw pairs."""
        if headers is None:
            return cls()
        if isinstance(headers, Mapping):
            return cls([
                (name.encode("latin-1"), str(value).encode("latin-1"))
                for name, value in headers.items()
            ])
        return cls(list(headers))

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for header (case-insensitive)."""
        pairs = self._index.get(name.lower())
        if pairs:
            return pairs[0][1].decode("latin-1")
        return default

    def get_all(self, name: str) -> List[str]:
        pairs = self._index.get(name.lower(), [])
        return [value.decode("latin-1") for _, value in pairs]

    def has(self, name: str) -> bool:
        return name.lower() in self._index

    def items(self) -> Iterator[Tuple[str, str]]:
        for name, value in self.raw:
            yield name.decode("latin-1"), value.decode("latin-1")

    def to_dict(self) -> Dict[str, str]:
        """Lower-cased name -> value; later duplicates win."""
        return {name.lower(): value for name, value in self.items()}

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __getitem__(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise KeyError(f"Header '{name}' not found")
        return value

    def __repr__(self) -> str:
        return f"Headers({list(self.items())})"


# ============================================================================
# Content-Type
# ============================================================================

@dataclass
class ParsedContentType:
    """
    Parsed Content-Type header.

    Extracts media type and parameters (e.g., charset).
    """

    media_type: str
    params: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, content_type: Optional[str]) -> Optional["ParsedContentType"]:
        if not content_type:
            return None

        parts = content_type.split(";")
        media_type = parts[0].strip().lower()

        params = {}
        for part in parts[1:]:
            if "=" in part:
                key, value = part.split("=", 1)
                params[key.strip().lower()] = value.strip().strip('"')

        return cls(media_type=media_type, params=params)

    @property
    def charset(self) -> str:
        return self.params.get("charset", "utf-8")

    @property
    def is_json(self) -> bool:
        return self.media_type == "application/json" or self.media_type.endswith("+json")

    @property
    def is_form(self) -> bool:
        return self.media_type == "application/x-www-form-urlencoded"


# ============================================================================
# Query strings
# ============================================================================

def parse_query(query_string: Union[str, bytes]) -> Dict[str, str]:
    """Parse a query string; for repeated keys the last value wins."""
    if isinstance(query_string, bytes):
        query_string = query_string.decode("latin-1")
    return dict(parse_qsl(query_string, keep_blank_values=True))
