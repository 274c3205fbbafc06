"""ASGI handler — translates ASGI scope/messages to switchyard types.

The only component that touches raw ASGI directly. Builds the Request
and its Context, hands them to the dispatcher, and sends the decided
Response back through ASGI ``send()``.
"""

import logging
from collections.abc import Callable
from typing import Any

from switchyard._internal.asgi import Receive, Scope, Send
from switchyard.config import AppConfig
from switchyard.context import Context
from switchyard.http.request import Request
from switchyard.http.response import Response
from switchyard.server.dispatch import Dispatcher
from switchyard.server.sender import send_response

logger = logging.getLogger("switchyard.server")


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    config: AppConfig,
    locals_factory: Callable[[], Any] | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)
    ctx: Context[Any] = Context(
        request,
        config,
        locals=locals_factory() if locals_factory is not None else None,
    )

    try:
        response = await dispatcher.dispatch(ctx)
    except Exception:
        # The dispatcher converts request faults itself; reaching this
        # means the pipeline is broken. Answer 500 and keep serving.
        logger.exception("Dispatch failed for %s %s", request.method, request.path)
        response = Response(body="Internal Server Error", status=500)

    await send_response(response, send, method=request.method)
