"""
Request (heron.request / heron._datastructures)

Tests request properties, header access, body reading and parsing.
"""

import pytest

from heron._datastructures import Headers, ParsedContentType, parse_query
from heron.request import ClientDisconnect, InvalidJSON, Request

from tests.conftest import make_receive, make_request, make_scope


# ============================================================================
# Properties
# ============================================================================

class TestRequestProperties:

    def test_method_path_url(self):
        request = Request(make_scope("POST", "/users", query_string="a=1"))
        assert request.method == "POST"
        assert request.path == "/users"
        assert request.url == "/users?a=1"

    def test_build_splits_query(self):
        request = Request.build("get", "/search?q=heron")
        assert request.method == "GET"
        assert request.path == "/search"
        assert request.query_params == {"q": "heron"}
        assert request.url == "/search?q=heron"

    def test_query_last_value_wins(self):
        assert parse_query("page=1&page=2&empty=") == {"page": "2", "empty": ""}

    def test_headers_case_insensitive(self):
        request = Request(make_scope(headers=[("X-Token", "abc"), ("Accept", "a"), ("accept", "b")]))
        assert request.header("x-token") == "abc"
        assert request.header("missing", "fallback") == "fallback"
        assert request.headers.get_all("ACCEPT") == ["a", "b"]
        assert "X-TOKEN" in request.headers

    def test_headers_getitem(self):
        headers = Headers.from_mapping({"Content-Type": "text/plain"})
        assert headers["content-type"] == "text/plain"
        with pytest.raises(KeyError):
            headers["missing"]

    def test_client_and_state(self):
        request = Request(make_scope(client=("10.0.0.1", 5000)))
        assert request.client == ("10.0.0.1", 5000)
        assert request.params == {}
        assert request.state == {}


class TestContentType:

    def test_parse(self):
        parsed = ParsedContentType.parse('application/vnd.api+json; charset="latin-1"')
        assert parsed.media_type == "application/vnd.api+json"
        assert parsed.charset == "latin-1"
        assert parsed.is_json

    def test_form_and_missing(self):
        assert ParsedContentType.parse("application/x-www-form-urlencoded").is_form
        assert ParsedContentType.parse(None) is None


# ============================================================================
# Body
# ============================================================================

class TestRequestBody:

    @pytest.mark.asyncio
    async def test_chunked_body_is_cached(self):
        request = Request(make_scope("POST"), make_receive(chunks=[b"hel", b"lo"]))
        assert await request.body() == b"hello"
        assert await request.body() == b"hello"

    @pytest.mark.asyncio
    async def test_no_receive_is_empty(self):
        assert await Request(make_scope()).body() == b""

    @pytest.mark.asyncio
    async def test_disconnect(self):
        async def receive():
            return {"type": "http.disconnect"}

        with pytest.raises(ClientDisconnect):
            await Request(make_scope("POST"), receive).body()

    @pytest.mark.asyncio
    async def test_json(self):
        request = make_request("POST", "/", json_body={"a": [1, 2]})
        assert await request.json() == {"a": [1, 2]}

    @pytest.mark.asyncio
    async def test_empty_json_is_none(self):
        assert await make_request("POST", "/").json() is None

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        request = make_request("POST", "/", body=b"{nope")
        with pytest.raises(InvalidJSON) as exc_info:
            await request.json()
        assert exc_info.value.status == 400

    @pytest.mark.asyncio
    async def test_form(self):
        request = make_request("POST", "/", body=b"name=ada&tag=a&tag=b&blank=")
        assert await request.form() == {"name": "ada", "tag": "b", "blank": ""}

    @pytest.mark.asyncio
    async def test_text_uses_charset(self):
        request = make_request(
            "POST", "/",
            body="café".encode("latin-1"),
            headers={"content-type": "text/plain; charset=latin-1"},
        )
        assert await request.text() == "café"
