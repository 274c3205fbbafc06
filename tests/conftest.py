"""Shared fixtures for switchyard tests.

``make_ctx`` builds a Context around an in-memory Request, so routing,
chain and dispatch tests can run without going through ASGI.
"""

from typing import Any

import pytest

from switchyard.config import AppConfig
from switchyard.context import Context
from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams
from switchyard.http.request import Request


def build_request(
    method: str = "GET",
    path: str = "/",
    *,
    headers: dict[str, str] | None = None,
    query: bytes = b"",
    body: bytes = b"",
) -> Request:
    """Build a Request whose body is delivered in a single message."""

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(
        method=method.upper(),
        path=path,
        headers=Headers.from_dict(headers or {}),
        query=QueryParams(query),
        scheme="http",
        http_version="1.1",
        server=("testserver", 80),
        client=("127.0.0.1", 0),
        _receive=receive,
    )


@pytest.fixture
def make_ctx():
    """Factory for fresh per-request contexts."""

    def factory(
        method: str = "GET",
        path: str = "/",
        *,
        headers: dict[str, str] | None = None,
        query: bytes = b"",
        body: bytes = b"",
        config: AppConfig | None = None,
        locals: Any = None,  # noqa: A002
    ) -> Context[Any]:
        request = build_request(method, path, headers=headers, query=query, body=body)
        return Context(request, config, locals=locals)

    return factory
