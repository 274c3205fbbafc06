"""Per-request execution context.

One ``Context`` is created for every incoming request and threaded
through every middleware and the handler. It is never shared between
requests and is dropped once the response has been sent.

The context of the running request is also published through a
``ContextVar`` so collaborators deeper in the call stack can reach it::

    from switchyard.context import get_context

    def load_user(user_id: str) -> User:
        user = users.get(user_id)
        if user is None:
            get_context().halt(404, "No such user")
        return user

``ContextVar`` is task-local under asyncio, so concurrent requests never
see each other's context. No locks needed.
"""

from __future__ import annotations

import mimetypes
import time
from collections.abc import Callable, Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from typing import Any, NoReturn, cast

from switchyard.config import AppConfig
from switchyard.errors import Halt
from switchyard.http import response as responses
from switchyard.http.headers import Headers
from switchyard.http.query import QueryParams
from switchyard.http.request import Request
from switchyard.http.response import Response, reason_phrase
from switchyard.routing.pattern import normalize_path


class DispatchState(Enum):
    """Where a request is in the dispatch pipeline."""

    MATCHING = "matching"
    RUNNING_BEFORE = "running_before"
    RUNNING_HANDLER = "running_handler"
    RUNNING_AFTER = "running_after"
    RESOLVED = "resolved"


@dataclass(slots=True)
class ContextMeta:
    """Timing facts about the request."""

    start_time: float  # wall clock, seconds since the epoch
    start_monotonic: float

    @property
    def elapsed(self) -> float:
        """Seconds since the context was created."""
        return time.monotonic() - self.start_monotonic


def _resolve_type(value: str) -> str | None:
    """Map ``"json"``, ``".html"`` or ``"text/plain"`` to a MIME type."""
    if "/" in value:
        return value
    mime, _ = mimetypes.guess_type(f"file.{value.lstrip('.')}")
    return mime


class Context[S]:
    """Execution context for middleware and handlers.

    ``S`` is the application's type for ``ctx.locals``, the per-request
    scratch space middleware uses to hand data to handlers::

        class Locals(TypedDict, total=False):
            user: str

        app: App[Locals] = App()

        async def auth(ctx: Context[Locals], next: Next) -> Any:
            ctx.locals["user"] = "alice"
            return await next()
    """

    __slots__ = (
        "_after",
        "_error",
        "_immediate",
        "_locals",
        "_path",
        "_request",
        "_response",
        "_state",
        "meta",
        "params",
    )

    def __init__(
        self,
        request: Request,
        config: AppConfig | None = None,
        *,
        locals: S | None = None,  # noqa: A002
    ) -> None:
        cfg = config or AppConfig()
        self._request = request
        self._path = normalize_path(request.path, strict=cfg.strict_routing)
        self.meta = ContextMeta(start_time=time.time(), start_monotonic=time.monotonic())

        self._response = Response(body="")
        if cfg.server_header:
            self._response = self._response.with_header_replaced("Server", cfg.server_header)

        self._error: BaseException | None = None
        self._locals: S = locals if locals is not None else cast(S, {})
        self._immediate = False
        self._after: list[Callable[..., Any]] = []
        self._state = DispatchState.MATCHING
        self.params: dict[str, str | None] = {}

    # -- Request facts (read-only) --

    @property
    def request(self) -> Request:
        """The raw request as received from the transport."""
        return self._request

    @property
    def method(self) -> str:
        return self._request.method

    @property
    def path(self) -> str:
        """Request path, trailing slash folded unless routing is strict."""
        return self._path

    @property
    def url(self) -> str:
        return self._request.url

    @property
    def host(self) -> str | None:
        return self._request.host

    @property
    def query(self) -> QueryParams:
        return self._request.query

    @property
    def headers(self) -> Headers:
        return self._request.headers

    def get_header(self, name: str, default: str | None = None) -> str | None:
        """Return a request header (case-insensitive), or *default*."""
        return self._request.headers.get(name, default)

    def get_query(self, name: str, default: str | None = None) -> str | None:
        """Return the first value of a query parameter, or *default*."""
        return self._request.query.get(name, default)

    # -- Mutable request state --

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def response(self) -> Response:
        """The response built up so far by middleware."""
        return self._response

    @response.setter
    def response(self, value: Response) -> None:
        self._response = value

    @property
    def status(self) -> int:
        return self._response.status

    @status.setter
    def status(self, code: int) -> None:
        self._response = self._response.with_status(code)

    @property
    def error(self) -> BaseException | None:
        return self._error

    @error.setter
    def error(self, value: BaseException | None) -> None:
        self._error = value

    @property
    def locals(self) -> S:
        return self._locals

    @locals.setter
    def locals(self, value: S) -> None:
        self._locals = value

    @property
    def is_immediate(self) -> bool:
        """True once ``redirect()`` has been used for this request."""
        return self._immediate

    # -- Header helpers --

    def set_header(self, name: str, value: str) -> None:
        """Set a header on the in-progress response, replacing any previous value."""
        if name.lower() == "content-type":
            self._response = self._response.with_content_type(value)
        else:
            self._response = self._response.with_header_replaced(name, value)

    def set_type(self, value: str) -> None:
        """Set Content-Type from an extension (``"json"``) or a MIME type."""
        content_type = _resolve_type(value)
        if content_type:
            self.set_header("Content-Type", content_type)

    def is_type(self, value: str) -> bool:
        """Whether the request body has the given content type."""
        expected = _resolve_type(value)
        actual = self._request.content_type
        if expected is None or actual is None:
            return False
        return actual.split(";", 1)[0].strip().lower() == expected

    def accepts(self, value: str) -> bool:
        """Whether the request's ``Accept`` header lists the given type."""
        wanted = _resolve_type(value)
        accept = self.get_header("accept")
        if wanted is None or accept is None:
            return False
        offered = {part.split(";", 1)[0].strip().lower() for part in accept.split(",")}
        return wanted in offered or "*/*" in offered

    def set_vary(self, *names: str) -> None:
        """Add names to the response ``Vary`` header without duplicates."""
        if not names:
            return
        current = self._response.get_header("Vary") or ""
        merged: list[str] = []
        for name in (*current.split(","), *names):
            name = name.strip()
            if name and name not in merged:
                merged.append(name)
        self.set_header("Vary", ", ".join(merged))

    # -- Response factories --

    def _status(self, status: int | None) -> int:
        return status if status is not None else self._response.status

    def _finish(self, response: Response, headers: Mapping[str, str] | None) -> Response:
        """Apply caller *headers* over the inherited ones; the caller's value wins."""
        return response.with_headers_replaced(headers) if headers else response

    def send(
        self, body: Any, *, status: int | None = None, headers: Mapping[str, str] | None = None
    ) -> Response:
        """Send *body* in whatever representation its type calls for."""
        if self.method == "HEAD":
            return self.head(status=status, headers=headers)
        response = responses.send(body, status=self._status(status), headers=self._response.headers)
        return self._finish(response, headers)

    def json(
        self, body: Any, *, status: int | None = None, headers: Mapping[str, str] | None = None
    ) -> Response:
        response = responses.json(body, status=self._status(status), headers=self._response.headers)
        return self._finish(response, headers)

    def text(
        self, body: str, *, status: int | None = None, headers: Mapping[str, str] | None = None
    ) -> Response:
        response = responses.text(body, status=self._status(status), headers=self._response.headers)
        return self._finish(response, headers)

    def html(
        self, body: str, *, status: int | None = None, headers: Mapping[str, str] | None = None
    ) -> Response:
        response = responses.html(body, status=self._status(status), headers=self._response.headers)
        return self._finish(response, headers)

    def head(
        self, *, status: int | None = None, headers: Mapping[str, str] | None = None
    ) -> Response:
        response = responses.head(status=self._status(status), headers=self._response.headers)
        return self._finish(response, headers)

    def redirect(self, url: str, status: int = 302) -> Response:
        """Redirect to *url*. ``"back"`` means the Referer, or ``/``."""
        self._immediate = True
        location = url
        if location == "back":
            location = self.get_header("referer") or "/"
        return responses.redirect(location, status=status, headers=self._response.headers)

    # -- Control flow --

    def halt(self, status: int, body: Any = None) -> NoReturn:
        """Stop the request now and answer with *status* and *body*.

        Nothing after the call runs: not the rest of the middleware, not
        the handler. The body defaults to the status reason phrase.
        Middleware queued with ``after()`` still runs.

        Usage::

            @app.get("/admin")
            def admin(ctx):
                if not ctx.locals.get("is_admin"):
                    ctx.halt(401, "You shall not pass")
                return ctx.text("Welcome")
        """
        payload = body if body is not None else reason_phrase(status)
        response = responses.send(payload, status=status, headers=self._response.headers)
        raise Halt(response)

    def after(self, func: Callable[..., Any]) -> None:
        """Queue *func* to run after the response is decided, for this request only.

        Queued middleware runs even when the request was halted, and is
        skipped when the request failed with an error.
        """
        if self._state in (DispatchState.RUNNING_AFTER, DispatchState.RESOLVED):
            msg = "Cannot queue after-middleware once the after phase has started."
            raise RuntimeError(msg)
        self._after.append(func)

    @property
    def after_middleware(self) -> tuple[Callable[..., Any], ...]:
        return tuple(self._after)

    # -- Dispatcher hooks --

    def _transition(self, state: DispatchState) -> None:
        self._state = state

    def _enter_handler(self) -> None:
        self._state = DispatchState.RUNNING_HANDLER

    def __repr__(self) -> str:
        return f"<Context {self.method} {self.path!r} {self._state.value}>"


# -- Current context --

context_var: ContextVar[Context[Any]] = ContextVar("switchyard_context")
"""The context of the running request. Set by the dispatcher."""


def get_context() -> Context[Any]:
    """Return the context of the running request.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()
