"""Immutable HTTP request.

Frozen metadata with async body access. This is the abstract request the
transport hands to the core: method, URL, headers, and a body stream.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

from switchyard._internal.asgi import Receive, Scope
from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation.
    Body is accessed asynchronously via ``.body()``, ``.text()``, ``.json()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    scheme: str
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: body cache (the dict is mutable, the field reference is not)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def host(self) -> str | None:
        """``Host`` header, falling back to the ASGI server address."""
        host = self.headers.get("host")
        if host:
            return host
        if self.server is None:
            return None
        name, port = self.server
        default_port = 443 if self.scheme == "https" else 80
        return name if port == default_port else f"{name}:{port}"

    @property
    def url(self) -> str:
        """Absolute request URL (scheme, host, path, and query string)."""
        qs = self.query.raw
        base = f"{self.scheme}://{self.host or 'localhost'}{self.path}"
        if qs:
            return f"{base}?{qs.decode('latin-1')}"
        return base

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive channel is consumed once; later calls return
        the cached bytes.
        """
        if "_body" not in self._cache:
            self._cache["_body"] = b"".join([chunk async for chunk in self.stream()])
        return self._cache["_body"]

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        """Read the body as UTF-8 text."""
        return (await self.body()).decode("utf-8")

    async def json(self) -> Any:
        """Parse the body as JSON."""
        import json as json_module

        return json_module.loads(await self.body())

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=Headers(tuple(scope.get("headers", ()))),
            query=QueryParams(scope.get("query_string", b"")),
            scheme=scope.get("scheme", "http"),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
        )
