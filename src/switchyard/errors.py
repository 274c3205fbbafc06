"""Switchyard exception hierarchy.

Shared across Router, App, dispatcher, and middleware so every module
raises and catches the same types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from switchyard.http.response import Response


class SwitchyardError(Exception):
    """Base for all switchyard-specific errors."""


class ConfigurationError(SwitchyardError):
    """Raised when app configuration is invalid.

    Raised while routes are being registered (malformed patterns, bad
    middleware phases). Fatal to startup, never raised per request.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(SwitchyardError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, middleware, or handlers. The dispatcher
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route matched the request method and path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class Halt(BaseException):  # noqa: N818
    """Raised by ``Context.halt()`` to finish the request immediately.

    Carries the fully built response. It derives from ``BaseException``
    (like ``asyncio.CancelledError``) so ``except Exception`` blocks in
    handlers do not swallow it. The middleware chain converts it into a
    ``Respond`` outcome; the error pipeline sends it when an error
    handler halts.
    """

    def __init__(self, response: Response) -> None:
        super().__init__(response.status)
        self.response = response
