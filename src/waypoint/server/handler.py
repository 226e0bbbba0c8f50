"""ASGI handler: translates ASGI scope/messages to waypoint types.

The only component that touches raw ASGI HTTP messages directly. Builds
the root Request view and an empty Response, walks the app's root stack,
waits for a handler to end the response, then sends it.
"""

from __future__ import annotations

from contextvars import Token
from typing import TYPE_CHECKING

from waypoint._internal.asgi import Receive, Scope, Send
from waypoint.context import request_var
from waypoint.http.request import Request
from waypoint.http.response import Response
from waypoint.routing.dispatch import Outcome, dispatch
from waypoint.server.errors import final_handler
from waypoint.server.sender import send_response

if TYPE_CHECKING:
    from waypoint.app import App

POWERED_BY = "Waypoint"


async def handle_request(scope: Scope, receive: Receive, send: Send, *, app: App) -> None:
    """Process a single HTTP request through the app's stack.

    Every request gets an answer: an error the chain could not deliver
    (raised after ``next()`` had resumed, or escaping the dispatcher) goes
    to the final handler if no handler has ended the response.
    """
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, app=app)
    response = Response()
    if app.config.x_powered_by:
        response.set_header("X-Powered-By", POWERED_BY)

    # Set request context var (reset after dispatch)
    token: Token[Request] = request_var.set(request)

    async def done(outcome: Outcome) -> None:
        error = outcome if isinstance(outcome, BaseException) else None
        await final_handler(error, request, response, debug=app.config.debug)

    try:
        router = app.router
        try:
            unhandled = await dispatch(router.stack, router.params, request, response, done)
        except Exception as exc:
            await final_handler(exc, request, response, debug=app.config.debug)
        else:
            # Already logged by the dispatcher; answer it if nobody did
            if unhandled is not None and not response.finished:
                await final_handler(unhandled, request, response, debug=app.config.debug)
        # A handler may end the response from a task it spawned
        await response.wait_finished()
    finally:
        request_var.reset(token)

    await send_response(response, send, method=request.method)
