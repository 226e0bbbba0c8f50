"""Route: the handlers for one path, grouped by HTTP method.

Returned by ``router.route(path)`` for verb chaining::

    router.route("/users").get(list_users).post(create_user)

A Route is installed in its router's stack as a single exact-match layer.
The layer only matches requests whose method the route handles; inside
the route, handlers for that method run in registration order, each
passing control on with ``next()``. ``next(Signal.ROUTE)`` skips the rest
of the route's handlers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from waypoint._internal.types import HandlerFunc
from waypoint.routing.dispatch import Next, Outcome, Tail, call_handler
from waypoint.routing.endpoint import Handler, Signal, ensure_callable
from waypoint.routing.pattern import PathSpec

if TYPE_CHECKING:
    from waypoint.http.request import Request
    from waypoint.http.response import Response

METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")


class Route:
    """Method-dispatching endpoint for a single path."""

    __slots__ = ("_frozen", "_handles_all", "_stack", "path")

    handles_errors: ClassVar[bool] = False

    def __init__(self, path: PathSpec) -> None:
        self.path = path
        # (method or None for all(), handler)
        self._stack: list[tuple[str | None, Handler]] = []
        self._handles_all = False
        self._frozen = False

    @property
    def name(self) -> str:
        return f"route {self.path}"

    @property
    def methods(self) -> frozenset[str]:
        """Methods with at least one explicit handler (``all()`` excluded)."""
        return frozenset(method for method, _ in self._stack if method is not None)

    def handles_method(self, method: str) -> bool:
        if self._handles_all:
            return True
        method = method.upper()
        methods = self.methods
        if method == "HEAD" and "HEAD" not in methods:
            method = "GET"
        return method in methods

    # -- Registration --

    def add(self, method: str | None, *handlers: HandlerFunc) -> Route:
        """Append *handlers* for *method* (``None`` means every method)."""
        if self._frozen:
            msg = "Cannot add handlers to a route after the app has started."
            raise RuntimeError(msg)
        label = (method or "all").lower()
        if not handlers:
            msg = f"Route.{label}() requires at least one handler."
            raise TypeError(msg)
        for func in handlers:
            ensure_callable(func, f"Route.{label}")
            self._stack.append((method.upper() if method else None, Handler(func)))
        if method is None:
            self._handles_all = True
        return self

    def all(self, *handlers: HandlerFunc) -> Route:
        return self.add(None, *handlers)

    def get(self, *handlers: HandlerFunc) -> Route:
        return self.add("GET", *handlers)

    def post(self, *handlers: HandlerFunc) -> Route:
        return self.add("POST", *handlers)

    def put(self, *handlers: HandlerFunc) -> Route:
        return self.add("PUT", *handlers)

    def patch(self, *handlers: HandlerFunc) -> Route:
        return self.add("PATCH", *handlers)

    def delete(self, *handlers: HandlerFunc) -> Route:
        return self.add("DELETE", *handlers)

    def head(self, *handlers: HandlerFunc) -> Route:
        return self.add("HEAD", *handlers)

    def options(self, *handlers: HandlerFunc) -> Route:
        return self.add("OPTIONS", *handlers)

    def freeze(self) -> None:
        self._frozen = True

    # -- Dispatch --

    def _handlers_for(self, method: str) -> list[Handler]:
        method = method.upper()
        if method == "HEAD" and "HEAD" not in self.methods:
            method = "GET"
        return [handler for m, handler in self._stack if m is None or m == method]

    async def handle(
        self,
        error: BaseException | None,
        request: Request,
        response: Response,
        next: Next,  # noqa: A002
    ) -> Tail:
        return await self._step(self._handlers_for(request.method), 0, request, response, next)

    async def _step(
        self,
        handlers: list[Handler],
        position: int,
        request: Request,
        response: Response,
        done: Next,
    ) -> Tail:
        if position == len(handlers):
            done()
            return done

        async def proceed(outcome: Outcome) -> Tail:
            if outcome is Signal.ROUTE:
                done()
                return done
            if outcome is not None:
                done(outcome)
                return done
            return await self._step(handlers, position + 1, request, response, done)

        next_ = Next(proceed)
        handler = handlers[position]
        return await call_handler(next_, request, handler.handle, None, request, response, next_)

    def __repr__(self) -> str:
        return f"Route({self.path!r}, methods={sorted(self.methods)})"
