"""Read-only request view.

A ``Request`` pairs the transport data of one HTTP request (headers,
query, body) with the ``DispatchContext`` of the layer currently
handling it. Each layer gets its own view: ``request.path`` and
``request.base_url`` reflect that layer's mount point, while
``request.original_url`` never changes.

Data that handlers want to pass down the chain goes on ``request.state``,
which every view of the same request shares.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from types import SimpleNamespace
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, quote

from waypoint._internal.asgi import Receive
from waypoint.http.headers import Headers
from waypoint.routing.context import DispatchContext

if TYPE_CHECKING:
    from waypoint.app import App

# Characters left as they are when re-encoding a decoded ASGI path
_PATH_SAFE = "/:@!$&'()*+,;="


async def _no_body() -> dict[str, Any]:
    return {"type": "http.request", "body": b"", "more_body": False}


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable view of an HTTP request at one layer."""

    context: DispatchContext
    headers: Headers = field(default_factory=Headers)
    query_string: str = ""
    http_version: str = "1.1"
    server: tuple[str, int] | None = None
    client: tuple[str, int] | None = None
    app: App | None = field(default=None, repr=False, compare=False)

    # Shared by every view of the same request
    state: SimpleNamespace = field(default_factory=SimpleNamespace, repr=False, compare=False)

    # Private: ASGI receive callable for body streaming
    _receive: Receive = field(default=_no_body, repr=False, compare=False)

    # Private: body cache, shared by every view of the same request
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Dispatch context --

    @property
    def method(self) -> str:
        return self.context.method

    @property
    def path(self) -> str:
        """Path relative to the current mount point."""
        return self.context.path

    @property
    def base_url(self) -> str:
        """Mount prefix consumed so far ("" at the application root)."""
        return self.context.base_url

    @property
    def original_url(self) -> str:
        """The path as received, never rewritten by mounting."""
        return self.context.original_url

    @property
    def params(self) -> Mapping[str, str]:
        return self.context.params

    def at(self, context: DispatchContext) -> Request:
        """The view of this request for a layer with *context*."""
        return replace(self, context=context)

    # -- Transport data --

    @property
    def query(self) -> dict[str, list[str]]:
        """Parsed query string (field name -> values)."""
        if "_query" not in self._cache:
            self._cache["_query"] = parse_qs(self.query_string, keep_blank_values=True)
        return self._cache["_query"]

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def url(self) -> str:
        """Original URL including the query string."""
        if self.query_string:
            return f"{self.original_url}?{self.query_string}"
        return self.original_url

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive is consumed once; later calls (from any layer)
        return the cached bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def text(self) -> str:
        raw = await self.body()
        return raw.decode("utf-8")

    async def json(self) -> Any:
        import json as json_module

        raw = await self.body()
        return json_module.loads(raw)

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Mapping[str, Any],
        receive: Receive,
        *,
        app: App | None = None,
    ) -> Request:
        """Create the root view of a request from an ASGI scope.

        Routing runs on the path exactly as it was sent (``raw_path``), so
        each captured param is percent-decoded once and an encoded slash
        stays inside its segment. Servers that do not provide
        ``raw_path`` get their decoded ``path`` re-encoded.
        """
        raw_path = scope.get("raw_path")
        if raw_path:
            path = raw_path.decode("latin-1")
        else:
            path = quote(scope.get("path", "/"), safe=_PATH_SAFE)
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            context=DispatchContext.initial(scope["method"], path),
            headers=Headers(tuple(scope.get("headers", ()))),
            query_string=scope.get("query_string", b"").decode("latin-1"),
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            app=app,
            _receive=receive,
        )

    @classmethod
    def build(cls, method: str, path: str, **kwargs: Any) -> Request:
        """Create a root view directly, without an ASGI scope."""
        return cls(context=DispatchContext.initial(method, path), **kwargs)
