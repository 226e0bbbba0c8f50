"""Write-only response sink.

Handlers write status, headers and a body, then end the response. Ending
it is what terminates the chain for a request: the ASGI pipeline waits
for it and then sends the result.
"""

from __future__ import annotations

import json as json_module
from typing import Any

import anyio

from waypoint.errors import ResponseAlreadySent
from waypoint.http.headers import MutableHeaders


class Response:
    """The response being built for one request.

    Usage::

        async def show(request, response, next):
            response.status = 201
            response.set_header("X-Request-Id", request.state.request_id)
            response.json({"id": request.params["id"]})
    """

    __slots__ = ("_body", "_event", "_finished", "headers", "status")

    def __init__(self) -> None:
        self.status: int = 200
        self.headers = MutableHeaders()
        self._body: bytes = b""
        self._finished = False
        self._event: anyio.Event | None = None

    # -- Headers --

    def set_header(self, name: str, value: str) -> Response:
        self._check_open()
        self.headers.set(name, value)
        return self

    def append_header(self, name: str, value: str) -> Response:
        self._check_open()
        self.headers.append(name, value)
        return self

    def get_header(self, name: str) -> str | None:
        return self.headers.get(name)

    def with_status(self, status: int) -> Response:
        """Set the status code; chainable."""
        self._check_open()
        self.status = status
        return self

    # -- Body --

    def send(self, body: str | bytes = b"", *, content_type: str | None = None) -> None:
        """Write *body* and end the response.

        ``str`` bodies default to ``text/html``, ``bytes`` bodies to
        ``application/octet-stream``, unless a content type is already set.
        """
        self._check_open()
        if isinstance(body, str):
            default_type = "text/html; charset=utf-8"
            body = body.encode("utf-8")
        else:
            default_type = "application/octet-stream"
        if content_type is not None:
            self.headers.set("Content-Type", content_type)
        elif body and "content-type" not in self.headers:
            self.headers.set("Content-Type", default_type)
        self.end(body)

    def text(self, body: str) -> None:
        self.send(body, content_type="text/plain; charset=utf-8")

    def json(self, data: Any) -> None:
        self.send(json_module.dumps(data), content_type="application/json")

    def redirect(self, url: str, status: int = 302) -> None:
        self._check_open()
        self.status = status
        self.headers.set("Location", url)
        self.end()

    def end(self, body: bytes = b"") -> None:
        """Finish the response. Nothing can be written afterwards."""
        self._check_open()
        self._body = body
        self._finished = True
        if self._event is not None:
            self._event.set()

    # -- State --

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def finished(self) -> bool:
        return self._finished

    async def wait_finished(self) -> None:
        """Wait until a handler ends the response. No timeout."""
        if self._finished:
            return
        if self._event is None:
            self._event = anyio.Event()
        await self._event.wait()

    def _check_open(self) -> None:
        if self._finished:
            msg = "The response has already been sent."
            raise ResponseAlreadySent(msg)

    def __repr__(self) -> str:
        state = "finished" if self._finished else "open"
        return f"<Response {self.status} {state}>"
