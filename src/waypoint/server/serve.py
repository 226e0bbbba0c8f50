"""Serve an App with pounce.

pounce is an optional dependency (``pip install waypoint[server]``); any
other ASGI server can run an ``App`` directly, since it is an ASGI
callable.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from waypoint.errors import ConfigurationError

if TYPE_CHECKING:
    from waypoint.app import App


def run_server(
    app: App,
    host: str,
    port: int,
    *,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """Start a single-worker pounce server with the live App object.

    Pounce's ``run()`` takes an import string (``"myapp:app"``), but we
    have a live ``App``, so ``pounce.Server`` is used directly with the
    ASGI callable.
    """
    try:
        from pounce.config import ServerConfig
        from pounce.server import Server
    except ImportError:
        msg = (
            "App.run() requires the 'pounce' ASGI server. "
            "Install it with: pip install waypoint[server]"
        )
        raise ConfigurationError(msg) from None

    config = ServerConfig(
        host=host,
        port=port,
        workers=1,
        reload=reload,
        log_level=log_level,
    )
    server = Server(config, app)
    server.run()
