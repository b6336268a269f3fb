"""
Routing (heron.routing)

Tests path combination, pattern parsing, matching and the route table.
"""

import pytest

from heron.routing import (
    PathPattern,
    RouteEntry,
    RouteTable,
    SegmentKind,
    WILDCARD_MANY_KEY,
    combine_paths,
)


def entry(method: str, path: str, name: str = "handler") -> RouteEntry:
    def handler():
        return name

    return RouteEntry(method, path, handler, None, object, name)


# ============================================================================
# combine_paths
# ============================================================================

class TestCombinePaths:

    @pytest.mark.parametrize("parts,expected", [
        (("api", "/users/", ":id"), "/api/users/:id"),
        (("", "users", ""), "/users"),
        (("/api//", "//v1", "items//all"), "/api/v1/items/all"),
        (("", "", ""), "/"),
        (("/", "/"), "/"),
    ])
    def test_normalization(self, parts, expected):
        assert combine_paths(*parts) == expected


# ============================================================================
# PathPattern
# ============================================================================

class TestPathPattern:

    def test_parse_segment_kinds(self):
        pattern = PathPattern.parse("/files/:id/*/**")
        kinds = [s.kind for s in pattern.segments]
        assert kinds == [
            SegmentKind.STATIC,
            SegmentKind.PARAM,
            SegmentKind.WILDCARD_ONE,
            SegmentKind.WILDCARD_MANY,
        ]
        assert pattern.param_names == ["id"]

    def test_wildcard_many_must_be_last(self):
        with pytest.raises(ValueError):
            PathPattern.parse("/files/**/meta")

    def test_empty_param_name_rejected(self):
        with pytest.raises(ValueError):
            PathPattern.parse("/users/:")

    def test_static_exact_match(self):
        pattern = PathPattern.parse("/health/live")
        assert pattern.is_static
        assert pattern.match("/health/live") == {}
        assert pattern.match("/health/live/") == {}
        assert pattern.match("/health") is None
        assert pattern.match("/health/ready") is None

    def test_param_binding(self):
        pattern = PathPattern.parse("/users/:id/posts/:post")
        assert pattern.match("/users/42/posts/7") == {"id": "42", "post": "7"}

    def test_segment_count_mismatch(self):
        pattern = PathPattern.parse("/users/:id")
        assert pattern.match("/users") is None
        assert pattern.match("/users/1/extra") is None

    def test_wildcard_one_binds_nothing(self):
        pattern = PathPattern.parse("/assets/*/logo")
        assert pattern.match("/assets/v2/logo") == {}
        assert pattern.match("/assets/v2/x/logo") is None

    def test_wildcard_many_captures_remainder(self):
        pattern = PathPattern.parse("/files/**")
        assert pattern.match("/files/a/b.txt") == {WILDCARD_MANY_KEY: "a/b.txt"}

    def test_wildcard_many_zero_segments(self):
        pattern = PathPattern.parse("/files/**")
        assert pattern.match("/files") == {WILDCARD_MANY_KEY: ""}

    def test_wildcard_many_prefix_must_match(self):
        pattern = PathPattern.parse("/files/:bucket/**")
        assert pattern.match("/files/docs/x/y") == {"bucket": "docs", WILDCARD_MANY_KEY: "x/y"}
        assert pattern.match("/other/docs/x") is None

    def test_bare_wildcard_many(self):
        pattern = PathPattern.parse("/**")
        assert pattern.match("/") == {WILDCARD_MANY_KEY: ""}
        assert pattern.match("/a/b/c") == {WILDCARD_MANY_KEY: "a/b/c"}


# ============================================================================
# RouteTable
# ============================================================================

class TestRouteTable:

    def test_first_registered_wins(self):
        table = RouteTable()
        table.add(entry("GET", "/users/:id", "by_id"))
        table.add(entry("GET", "/users/me", "me"))
        match = table.match("GET", "/users/me")
        assert match.route.method_name == "by_id"
        assert match.params == {"id": "me"}

    def test_method_must_match(self):
        table = RouteTable()
        table.add(entry("POST", "/users"))
        assert table.match("GET", "/users") is None
        assert table.match("post", "/users") is not None

    def test_no_match_returns_none(self):
        table = RouteTable()
        table.add(entry("GET", "/a"))
        assert table.match("GET", "/b") is None

    def test_entry_uppercases_method_and_parses_pattern(self):
        route = entry("get", "/x/:y")
        assert route.method == "GET"
        assert route.pattern.param_names == ["y"]

    def test_routes_listing_in_order(self):
        table = RouteTable()
        table.add(entry("GET", "/a", "a"))
        table.add(entry("GET", "/b", "b"))
        assert [r.method_name for r in table.routes()] == ["a", "b"]
        assert len(table) == 2
        table.clear()
        assert len(table) == 0
