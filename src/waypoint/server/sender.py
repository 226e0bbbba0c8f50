"""ASGI response sending: translates a finished Response to ASGI messages."""

from waypoint._internal.asgi import Send
from waypoint.http.response import Response


def _body_allowed(status: int) -> bool:
    """Whether an HTTP status code permits a response body."""
    # 1xx, 204, and 304 responses do not include a message body
    return not (100 <= status < 200 or status in {204, 304})


async def send_response(response: Response, send: Send, *, method: str = "GET") -> None:
    """Translate a waypoint Response into ASGI send() calls.

    HEAD responses keep the ``content-length`` of the body a GET would
    have produced but send no bytes.
    """
    raw_headers = response.headers.raw()

    body = response.body if _body_allowed(response.status) else b""
    if "content-length" not in response.headers:
        raw_headers.append((b"content-length", str(len(body)).encode("latin-1")))
    if method == "HEAD":
        body = b""

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
            "body": body,
        }
    )
