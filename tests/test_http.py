"""Tests for switchyard.http — headers, query params, and the request type."""

import pytest

from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams
from switchyard.http.request import Request


class TestHeaders:
    def test_case_insensitive(self) -> None:
        headers = Headers(((b"content-type", b"text/html"),))
        assert headers["Content-Type"] == "text/html"
        assert "CONTENT-TYPE" in headers
        assert headers.get("missing") is None

    def test_repeated_values(self) -> None:
        headers = Headers(((b"accept", b"text/html"), (b"Accept", b"application/json")))
        assert headers["accept"] == "text/html"
        assert headers.get_list("accept") == ["text/html", "application/json"]
        assert len(headers) == 1

    def test_from_dict(self) -> None:
        headers = Headers.from_dict({"X-Token": "abc"})
        assert headers["x-token"] == "abc"
        assert headers.raw == ((b"x-token", b"abc"),)

    def test_missing_key_raises(self) -> None:
        with pytest.raises(KeyError):
            Headers()["nope"]

    def test_non_string_not_contained(self) -> None:
        assert 1 not in Headers(((b"a", b"b"),))


class TestQueryParams:
    def test_first_value(self) -> None:
        query = QueryParams(b"tag=a&tag=b&page=2")
        assert query["tag"] == "a"
        assert query.get_list("tag") == ["a", "b"]
        assert query.get("page") == "2"
        assert query.get("missing", "x") == "x"

    def test_blank_values_kept(self) -> None:
        assert QueryParams(b"flag=")["flag"] == ""

    def test_raw(self) -> None:
        assert QueryParams(b"a=1").raw == b"a=1"

    def test_empty(self) -> None:
        assert len(QueryParams()) == 0


class TestRequest:
    def _scope(self, **overrides: object) -> dict[str, object]:
        base: dict[str, object] = {
            "type": "http",
            "method": "get",
            "path": "/user/alice",
            "query_string": b"x=1",
            "headers": [(b"host", b"example.com")],
            "server": ("localhost", 8000),
            "client": ("127.0.0.1", 5000),
        }
        base.update(overrides)
        return base

    async def _receive(self) -> dict[str, object]:
        return {"type": "http.request", "body": b"", "more_body": False}

    def test_from_asgi(self) -> None:
        request = Request.from_asgi(self._scope(), self._receive)
        assert request.method == "GET"
        assert request.path == "/user/alice"
        assert request.query["x"] == "1"
        assert request.scheme == "http"
        assert request.client == ("127.0.0.1", 5000)
        assert request.url == "http://example.com/user/alice?x=1"

    def test_host_falls_back_to_server(self) -> None:
        request = Request.from_asgi(self._scope(headers=[]), self._receive)
        assert request.host == "localhost:8000"

    def test_host_default_port_omitted(self) -> None:
        request = Request.from_asgi(self._scope(headers=[], server=("site", 80)), self._receive)
        assert request.host == "site"

    async def test_streamed_body(self) -> None:
        chunks = [
            {"type": "http.request", "body": b"hello ", "more_body": True},
            {"type": "http.request", "body": b"world", "more_body": False},
        ]

        async def receive() -> dict[str, object]:
            return chunks.pop(0)

        request = Request.from_asgi(self._scope(method="POST"), receive)
        assert await request.text() == "hello world"
        assert await request.body() == b"hello world"
