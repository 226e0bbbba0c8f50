"""Waypoint: request routing and middleware dispatch for ASGI.

An ordered stack of path-scoped handlers (middleware, routes, error
handlers, mounted routers and sub-apps) driven by explicit ``next()``
continuations.

Basic usage::

    from waypoint import App

    app = App()

    @app.use()
    def log(request, response, next):
        print(request.method, request.original_url)
        next()

    @app.get("/users/:id")
    async def show_user(request, response, next):
        response.json({"id": request.params["id"]})

    app.run()

Serving with ``app.run()`` needs ``pip install waypoint[server]``; any
ASGI server can run ``app`` directly.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "BadRequest",
    "ConfigurationError",
    "Forbidden",
    "HTTPError",
    "Next",
    "NotFound",
    "Request",
    "Response",
    "ResponseAlreadySent",
    "Route",
    "Router",
    "Signal",
    "Unauthorized",
    "WaypointError",
    "current_params",
    "get_request",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    if name == "App":
        from waypoint.app import App

        return App

    if name == "AppConfig":
        from waypoint.config import AppConfig

        return AppConfig

    if name == "Request":
        from waypoint.http.request import Request

        return Request

    if name == "Response":
        from waypoint.http.response import Response

        return Response

    if name == "Router":
        from waypoint.routing.router import Router

        return Router

    if name == "Route":
        from waypoint.routing.route import Route

        return Route

    if name == "Next":
        from waypoint.routing.dispatch import Next

        return Next

    if name == "Signal":
        from waypoint.routing.endpoint import Signal

        return Signal

    if name in ("current_params", "get_request"):
        from waypoint import context as _ctx

        return getattr(_ctx, name)

    if name in (
        "BadRequest",
        "ConfigurationError",
        "Forbidden",
        "HTTPError",
        "NotFound",
        "ResponseAlreadySent",
        "Unauthorized",
        "WaypointError",
    ):
        from waypoint import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
