"""The request view of the running handler, via ContextVar.

Every handler already receives its own ``Request`` view (with the params
and mount paths of its layer), and data meant for later layers goes on
``request.state``. ``get_request()`` is for code that has no request in
hand, such as logging filters or helpers deep in a call stack.

The dispatcher binds ``request_var`` to the exact view a handler receives
for the duration of that call, so a helper called from a mounted
router's handler sees the router-relative ``path`` and ``base_url``.
Between handlers (and in the final handler) it holds the root view.
Outside a request, ``get_request()`` raises ``LookupError``.
"""

from collections.abc import Mapping
from contextvars import ContextVar

from waypoint.http.request import Request

request_var: ContextVar[Request] = ContextVar("waypoint_request")
"""The request view of the handler currently running."""


def get_request() -> Request:
    """Return the request view of the handler currently running.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def current_params() -> Mapping[str, str]:
    """Route params visible to the handler currently running."""
    return request_var.get().params
