"""
Heron routing - path patterns and the ordered route table.
"""

from .pattern import (
    PathPattern,
    Segment,
    SegmentKind,
    WILDCARD_MANY_KEY,
    combine_paths,
    split_path,
)
from .table import RouteEntry, RouteMatch, RouteTable

__all__ = [
    "PathPattern",
    "Segment",
    "SegmentKind",
    "WILDCARD_MANY_KEY",
    "combine_paths",
    "split_path",
    "RouteEntry",
    "RouteMatch",
    "RouteTable",
]
