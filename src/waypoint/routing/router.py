"""Router: an ordered stack of layers plus its own param hooks.

Layers are appended at registration time and tried in that order for
every request. A router is itself an endpoint, so it can be mounted in a
parent's stack::

    api = Router()

    @api.get("/users/:id")
    async def show_user(request, response, next):
        response.json({"id": request.params["id"]})

    app.use("/api", api)

Inside ``show_user`` for ``GET /api/users/7``: ``request.base_url`` is
``"/api"``, ``request.path`` is ``"/users/7"`` and ``request.original_url``
is ``"/api/users/7"``.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar

from waypoint._internal.types import ErrorHandlerFunc, HandlerFunc, ParamHandlerFunc
from waypoint.routing.dispatch import Next, Tail, run_stack
from waypoint.routing.endpoint import Endpoint, ErrorHandler, Handler, ensure_callable
from waypoint.routing.layer import Layer
from waypoint.routing.params import ParamRegistry
from waypoint.routing.pattern import PathSpec, compile_pattern
from waypoint.routing.route import Route

if TYPE_CHECKING:
    from waypoint.http.request import Request
    from waypoint.http.response import Response


class Router:
    """A mountable stack of middleware, routes, and error handlers.

    Args:
        case_sensitive: Match literal path segments case-sensitively.
        strict: Treat ``/users`` and ``/users/`` as different routes.
        merge_params: When mounted, start from the params already captured
            by the parent (innermost capture wins on duplicate names). With
            ``False`` the router only sees its own captures.
    """

    __slots__ = ("_frozen", "_params", "_stack", "case_sensitive", "merge_params", "strict")

    handles_errors: ClassVar[bool] = False

    def __init__(
        self,
        *,
        case_sensitive: bool = False,
        strict: bool = False,
        merge_params: bool = True,
    ) -> None:
        self.case_sensitive = case_sensitive
        self.strict = strict
        self.merge_params = merge_params
        self._stack: list[Layer] | tuple[Layer, ...] = []
        self._params = ParamRegistry()
        self._frozen = False

    @property
    def stack(self) -> tuple[Layer, ...]:
        """The registered layers, in dispatch order."""
        return tuple(self._stack)

    @property
    def params(self) -> ParamRegistry:
        return self._params

    @property
    def name(self) -> str:
        return type(self).__name__

    # -- Registration --

    def use(self, path: Any = None, *handlers: Any) -> Any:
        """Add middleware, or mount a router or app.

        ``use(fn, ...)`` registers at ``/`` (every path). ``use(path, fn, ...)``
        registers at *path* and everything below it. ``use(path, router)``
        mounts *router* there. *path* may also be a compiled regex or a list
        of paths. Called with only a path (or nothing), returns a decorator.
        """
        if path is None or (is_path(path) and not handlers):
            mount = path or "/"

            def decorator(func: HandlerFunc) -> HandlerFunc:
                self.use(mount, func)
                return func

            return decorator

        if not is_path(path):
            handlers = (path, *handlers)
            path = "/"

        for handler in handlers:
            if isinstance(handler, Router) or _is_app(handler):
                self._add_layer(path, handler, exact=False)
            else:
                ensure_callable(handler, "use")
                self._add_layer(path, Handler(handler), exact=False)
        return self

    def use_error(self, path: Any = None, *handlers: ErrorHandlerFunc) -> Any:
        """Add error-handling middleware: ``(error, request, response, next)``.

        Error handlers only run while an error is unwinding; regular
        middleware is skipped until one of them calls ``next()`` without
        an argument.
        """
        if path is None or (is_path(path) and not handlers):
            mount = path or "/"

            def decorator(func: ErrorHandlerFunc) -> ErrorHandlerFunc:
                self.use_error(mount, func)
                return func

            return decorator

        if not is_path(path):
            handlers = (path, *handlers)
            path = "/"

        for handler in handlers:
            ensure_callable(handler, "use_error")
            self._add_layer(path, ErrorHandler(handler), exact=False)
        return self

    error = use_error

    def route(self, path: PathSpec) -> Route:
        """Create a route for *path* and return it for verb chaining."""
        route = Route(path)
        self._add_layer(path, route, exact=True, route=route)
        return route

    def param(self, name: str, handler: ParamHandlerFunc | None = None) -> Any:
        """Register a param hook: ``(request, response, next, value, name)``.

        Without *handler*, returns a decorator.
        """
        if handler is None:

            def decorator(func: ParamHandlerFunc) -> ParamHandlerFunc:
                self.param(name, func)
                return func

            return decorator

        self._check_not_frozen()
        self._params.add(name, handler)
        return self

    def add_route(self, method: str | None, path: PathSpec, *handlers: HandlerFunc) -> Any:
        """Register *handlers* for *method* at *path* (``None``: every method).

        Without handlers, returns a decorator.
        """
        if not handlers:

            def decorator(func: HandlerFunc) -> HandlerFunc:
                self.route(path).add(method, func)
                return func

            return decorator

        for handler in handlers:
            ensure_callable(handler, (method or "all").lower())
        self.route(path).add(method, *handlers)
        return self

    def all(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route(None, path, *handlers)

    def get(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("GET", path, *handlers)

    def post(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("POST", path, *handlers)

    def put(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("PUT", path, *handlers)

    def patch(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("PATCH", path, *handlers)

    def delete(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("DELETE", path, *handlers)

    def head(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("HEAD", path, *handlers)

    def options(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self.add_route("OPTIONS", path, *handlers)

    def _add_layer(
        self,
        path: PathSpec,
        endpoint: Endpoint,
        *,
        exact: bool,
        route: Route | None = None,
    ) -> None:
        self._check_not_frozen()
        pattern = compile_pattern(
            path,
            exact=exact,
            case_sensitive=self.case_sensitive,
            strict=self.strict,
        )
        self._stack.append(Layer(pattern=pattern, endpoint=endpoint, route=route))

    # -- Freeze --

    def freeze(self) -> None:
        """Make the stack read-only, recursively through routes and mounts."""
        if self._frozen:
            return
        self._frozen = True
        self._stack = tuple(self._stack)
        self._params.freeze()
        for layer in self._stack:
            freeze: Callable[[], None] | None = getattr(layer.endpoint, "freeze", None)
            if freeze is not None:
                freeze()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify a router after the app has started serving requests. "
                "Register routes, middleware, and param hooks first."
            )
            raise RuntimeError(msg)

    # -- Dispatch --

    async def handle(
        self,
        error: BaseException | None,
        request: Request,
        response: Response,
        next: Next,  # noqa: A002
    ) -> Tail:
        """Run this router's stack as a mounted endpoint.

        Exhausting the stack (or ``next(Signal.ROUTER)``) hands control
        back to the parent through *next*.
        """
        if not self.merge_params:
            request = request.at(request.context.without_params())
        return await run_stack(self._stack, self._params, request, response, next)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(layers={len(self._stack)})"


def is_path(obj: object) -> bool:
    """Whether *obj* is a route path rather than a handler."""
    if isinstance(obj, (str, re.Pattern)):
        return True
    return isinstance(obj, (list, tuple)) and all(isinstance(item, str) for item in obj)


def _is_app(obj: object) -> bool:
    from waypoint.app import App

    return isinstance(obj, App)
