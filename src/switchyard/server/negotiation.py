"""Return-value conversion — maps whatever a chain returned to a Response.

isinstance-based dispatch, no magic, fully predictable:

1. ``Response``            -> pass through
2. ``None``                -> the context's in-progress response (empty body)
3. ``(value, int)``        -> convert value, override status
4. ``(value, int, dict)``  -> convert value, override status and headers
5. anything else           -> ``ctx.send(value)`` (str, bytes, JSON values)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from switchyard.http.response import Response

if TYPE_CHECKING:
    from switchyard.context import Context


def to_response(value: Any, ctx: Context[Any]) -> Response:
    """Convert a chain's result into the Response to send."""
    match value:
        case Response():
            return value
        case None:
            return ctx.response
        case tuple((body, int() as status)):
            return to_response(body, ctx).with_status(status)
        case tuple((body, int() as status, dict() as headers)):
            return to_response(body, ctx).with_status(status).with_headers_replaced(headers)
        case _:
            return ctx.send(value)
