"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. The module-level factories
(``json``, ``text``, ``html``, ``head``, ``send``, ``redirect``) turn a
body value plus response metadata into a Response; the Context wraps
them so handlers inherit the headers and status built up by middleware.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from http import HTTPStatus
from typing import Any
from urllib.parse import quote

type HeaderItems = tuple[tuple[str, str], ...]


def reason_phrase(status: int) -> str:
    """Standard reason phrase for *status* (``""`` for unknown codes)."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Construct with a body, then chain ``.with_*()`` calls to set
    status and headers. Each call returns a new ``Response``.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: HeaderItems = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> Response:
        """Return a new Response with additional headers."""
        items = headers.items() if isinstance(headers, Mapping) else headers
        return replace(self, headers=(*self.headers, *items))

    def with_header_replaced(self, name: str, value: str) -> Response:
        """Return a new Response where *name* has exactly one value.

        ``Content-Type`` goes to ``content_type`` instead of the header list.
        """
        lowered = name.lower()
        kept = tuple((k, v) for k, v in self.headers if k.lower() != lowered)
        if lowered == "content-type":
            return replace(self, content_type=value, headers=kept)
        return replace(self, headers=(*kept, (name, value)))

    def with_headers_replaced(
        self, headers: Mapping[str, str] | Iterable[tuple[str, str]]
    ) -> Response:
        """Return a new Response where each of *headers* overrides any earlier value."""
        items = headers.items() if isinstance(headers, Mapping) else headers
        response = self
        for name, value in items:
            response = response.with_header_replaced(name, value)
        return response

    def with_content_type(self, content_type: str) -> Response:
        """Return a new Response with a different content type."""
        return replace(self, content_type=content_type)

    def get_header(self, name: str) -> str | None:
        """Return the last value set for *name*, or None."""
        lowered = name.lower()
        if lowered == "content-type":
            return self.content_type
        for key, value in reversed(self.headers):
            if key.lower() == lowered:
                return value
        return None

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


# -- Factories --


def json(body: Any, *, status: int = 200, headers: HeaderItems = ()) -> Response:
    """Serialize *body* as a JSON response."""
    return Response(
        body=json_module.dumps(body),
        status=status,
        content_type="application/json",
        headers=headers,
    )


def text(body: str, *, status: int = 200, headers: HeaderItems = ()) -> Response:
    """Plain-text response."""
    return Response(body=body, status=status, headers=headers)


def html(body: str, *, status: int = 200, headers: HeaderItems = ()) -> Response:
    """HTML response."""
    return Response(
        body=body,
        status=status,
        content_type="text/html; charset=utf-8",
        headers=headers,
    )


def head(*, status: int = 200, headers: HeaderItems = ()) -> Response:
    """Body-less response carrying only status and headers."""
    return Response(body=b"", status=status, headers=headers)


def send(body: Any, *, status: int = 200, headers: HeaderItems = ()) -> Response:
    """Pick a representation from the type of *body*.

    - ``Response`` -> returned unchanged
    - ``str``      -> text/plain
    - ``bytes``    -> application/octet-stream
    - ``None``     -> empty body
    - anything else -> JSON
    """
    match body:
        case Response():
            return body
        case str():
            return text(body, status=status, headers=headers)
        case bytes() | bytearray():
            return Response(
                body=bytes(body),
                status=status,
                content_type="application/octet-stream",
                headers=headers,
            )
        case None:
            return head(status=status, headers=headers)
        case _:
            return json(body, status=status, headers=headers)


def redirect(url: str, *, status: int = 302, headers: HeaderItems = ()) -> Response:
    """Redirect to *url* via the ``Location`` header."""
    location = quote(url, safe=":/?#[]@!$&'()*+,;=%~")
    return Response(body="", status=status, headers=headers).with_header_replaced(
        "Location", location
    )
