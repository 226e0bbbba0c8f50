"""Waypoint application class.

An ``App`` is a root ``Router`` plus configuration, lifecycle hooks and
the ASGI entry point. Apps can be mounted inside other apps.

Mutable during setup (routes, middleware, param hooks, mounts).
Frozen at runtime when ``app.run()`` or ``__call__()`` is first invoked.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable
from dataclasses import replace
from typing import TYPE_CHECKING, Any, ClassVar

from waypoint._internal.asgi import Receive, Scope, Send
from waypoint._internal.invoke import invoke
from waypoint._internal.types import ErrorHandlerFunc, HandlerFunc, ParamHandlerFunc
from waypoint.config import AppConfig
from waypoint.routing.route import Route
from waypoint.routing.pattern import PathSpec
from waypoint.routing.router import Router, is_path
from waypoint.server.handler import handle_request

if TYPE_CHECKING:
    from waypoint.http.request import Request
    from waypoint.http.response import Response
    from waypoint.routing.dispatch import Next, Tail

logger = logging.getLogger("waypoint.server")


class App:
    """The waypoint application.

    Usage::

        app = App()

        @app.use()
        async def log(request, response, next):
            logger.info("%s %s", request.method, request.original_url)
            await next()

        @app.get("/users/:id")
        async def show_user(request, response, next):
            response.json({"id": request.params["id"]})

        app.run()

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread freezes the stacks, even when several ASGI workers call
        ``__call__()`` concurrently on the first request.
    """

    __slots__ = (
        "_freeze_lock",
        "_frozen",
        "_shutdown_hooks",
        "_startup_hooks",
        "config",
        "locals",
        "mountpath",
        "parent",
        "router",
    )

    handles_errors: ClassVar[bool] = False

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig = config or AppConfig()
        self.router = Router(
            case_sensitive=self.config.case_sensitive,
            strict=self.config.strict,
        )
        # Application-wide values, readable from handlers via request.app.locals
        self.locals: dict[str, Any] = {}
        self.mountpath: PathSpec = "/"
        self.parent: App | None = None
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

    @property
    def name(self) -> str:
        return f"app {self.mountpath}"

    def path(self) -> str:
        """The full path this app is mounted at ("" for the root app).

        A regex mount contributes its pattern text, a list mount its
        first path.
        """
        if self.parent is None:
            return ""
        mount = self.mountpath
        if isinstance(mount, re.Pattern):
            mount = mount.pattern
        elif not isinstance(mount, str):
            mount = mount[0]
        return self.parent.path() + mount

    # -- Registration (delegates to the root router) --

    def use(self, path: Any = None, *handlers: Any) -> Any:
        """Add middleware, or mount a router or sub-app.

        See ``Router.use``. Mounting an ``App`` also records its
        ``mountpath`` and ``parent``.
        """
        mount = path if is_path(path) else "/"
        candidates = handlers if is_path(path) else (path, *handlers)
        for handler in candidates:
            if isinstance(handler, App):
                if handler is self:
                    msg = "An app cannot be mounted inside itself."
                    raise ValueError(msg)
                handler.mountpath = mount
                handler.parent = self
        return self._chain(self.router.use(path, *handlers))

    def use_error(self, path: Any = None, *handlers: ErrorHandlerFunc) -> Any:
        """Add error-handling middleware. See ``Router.use_error``."""
        return self._chain(self.router.use_error(path, *handlers))

    error = use_error

    def route(self, path: PathSpec) -> Route:
        return self.router.route(path)

    def param(self, name: str, handler: ParamHandlerFunc | None = None) -> Any:
        return self._chain(self.router.param(name, handler))

    def all(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.all(path, *handlers))

    def get(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.get(path, *handlers))

    def post(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.post(path, *handlers))

    def put(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.put(path, *handlers))

    def patch(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.patch(path, *handlers))

    def delete(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.delete(path, *handlers))

    def head(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.head(path, *handlers))

    def options(self, path: PathSpec, *handlers: HandlerFunc) -> Any:
        return self._chain(self.router.options(path, *handlers))

    def _chain(self, result: Any) -> Any:
        # Registration returns the router for chaining, or a decorator
        return self if result is self.router else result

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        before the server begins accepting HTTP requests.

        Usage::

            @app.on_startup
            async def setup():
                await db.connect()
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator.

        Hooks run in registration order during ASGI lifespan shutdown.
        """
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Freeze the app and serve it with pounce.

        Args:
            host: Override bind host.
            port: Override bind port.

        Raises ``ConfigurationError`` if pounce is not installed.
        """
        from waypoint.server.serve import run_server

        self._ensure_frozen()
        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
            log_level=self.config.log_level,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()
        await handle_request(scope, receive, send, app=self)

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app at startup (before the first HTTP request), then
        runs registered startup/shutdown hooks and signals completion
        back to the server.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def startup(self) -> None:
        """Run the startup hooks in registration order."""
        for hook in self._startup_hooks:
            await invoke(hook)

    async def shutdown(self) -> None:
        """Run the shutdown hooks in registration order."""
        for hook in self._shutdown_hooks:
            await invoke(hook)

    # -- Mounted dispatch --

    async def handle(
        self,
        error: BaseException | None,
        request: Request,
        response: Response,
        next: Next,  # noqa: A002
    ) -> Tail:
        """Run this app's stack when it is mounted inside another app.

        Handlers inside see this app as ``request.app``; once the stack is
        exhausted the parent resumes with its own view of the request.
        """
        return await self.router.handle(error, replace(request, app=self), response, next)

    # -- Internal --

    def freeze(self) -> None:
        """Freeze this app's stacks now instead of on the first request."""
        self._ensure_frozen()

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self.router.freeze()
            self._frozen = True
            logger.debug("App frozen with %d layers", len(self.router.stack))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and hooks before calling app.run()."
            )
            raise RuntimeError(msg)

    def __repr__(self) -> str:
        return f"App(mountpath={self.mountpath!r}, layers={len(self.router.stack)})"
