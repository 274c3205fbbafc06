"""ASGI response sending — translates a Response into ASGI messages."""

from switchyard._internal.asgi import Send
from switchyard.http.response import Response


def _body_allowed(status: int, method: str) -> bool:
    """Whether the response may carry a body."""
    # RFC 9110: 1xx, 204, 304 and any answer to HEAD have no message body.
    if method == "HEAD":
        return False
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send, *, method: str = "GET") -> None:
    """Translate a Response into ASGI ``http.response.*`` calls.

    Exactly one ``content-type`` is sent. A ``Content-Type`` entry added
    to the header list with ``with_header()`` wins over ``content_type``.
    """
    body = response.body_bytes
    content_type = response.content_type
    raw_headers: list[tuple[bytes, bytes]] = []
    for name, value in response.headers:
        if name.lower() == "content-type":
            content_type = value
            continue
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    raw_headers.insert(0, (b"content-type", content_type.encode("latin-1")))
    raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))

    await send(
        {
            "type": "http.response.start",
            "status": response.status,
            "headers": raw_headers,
        }
    )
    await send(
        {
            "type": "http.response.body",
            "body": body if _body_allowed(response.status, method) else b"",
        }
    )
