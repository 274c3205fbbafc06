"""Error handling pipeline for switchyard requests.

Maps HTTPError exceptions and unexpected failures to Response objects,
using registered error handlers or plain-text defaults.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from switchyard._internal.invoke import invoke, positional_arity
from switchyard.errors import Halt, HTTPError
from switchyard.http.response import Response
from switchyard.server.negotiation import to_response

if TYPE_CHECKING:
    from switchyard.context import Context

logger = logging.getLogger("switchyard.server")

type ErrorHandlers = dict[int | type, Callable[..., Any]]


def _find_handler(handlers: ErrorHandlers, exc: Exception, status: int) -> Callable[..., Any] | None:
    """Exact exception type, then status code, then base classes (MRO order)."""
    handler = handlers.get(type(exc)) or handlers.get(status)
    if handler is not None:
        return handler
    for klass in type(exc).__mro__[1:]:
        if klass in handlers:
            return handlers[klass]
    return None


async def call_error_handler(
    handler: Callable[..., Any],
    ctx: Context[Any],
    exc: Exception,
) -> Response:
    """Invoke a user-registered error handler.

    Error handlers may accept zero, one (ctx), or two (ctx, exc) args,
    and may be sync or async.
    """
    args = (ctx, exc)[: positional_arity(handler, 2)]
    result = await invoke(handler, *args)
    return to_response(result, ctx)


async def handle_http_error(
    exc: HTTPError,
    ctx: Context[Any],
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    logger.debug("%d %s %s: %s", exc.status, ctx.method, ctx.path, exc.detail)

    handler = _find_handler(error_handlers, exc, exc.status)
    if handler is not None:
        response = await call_error_handler(handler, ctx, exc)
        # Keep the error's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    response = Response(body=detail, status=exc.status, headers=ctx.response.headers)
    for name, value in exc.headers:
        response = response.with_header_replaced(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    ctx: Context[Any],
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.error("500 %s %s", ctx.method, ctx.path, exc_info=exc)

    handler = _find_handler(error_handlers, exc, 500)
    if handler is not None:
        response = await call_error_handler(handler, ctx, exc)
        if response.status == 200:
            response = response.with_status(500)
        return response

    if debug:
        body = "".join(traceback.format_exception(exc))
        return Response(body=body, status=500, headers=ctx.response.headers)

    return Response(body="Internal Server Error", status=500, headers=ctx.response.headers)


async def handle_error(
    exc: Exception,
    ctx: Context[Any],
    error_handlers: ErrorHandlers,
    debug: bool,
) -> Response:
    """Route *exc* to the matching pipeline; never raises.

    An error handler may call ``ctx.halt()``; its response is sent as is.
    """
    try:
        if isinstance(exc, HTTPError):
            return await handle_http_error(exc, ctx, error_handlers, debug)
        return await handle_internal_error(exc, ctx, error_handlers, debug)
    except Halt as halt:
        return halt.response
    except Exception:
        logger.exception("Error handler failed for %s %s", ctx.method, ctx.path)
        return Response(body="Internal Server Error", status=500, headers=ctx.response.headers)
