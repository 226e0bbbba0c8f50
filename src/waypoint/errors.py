"""Waypoint exception hierarchy.

Shared across Router, App, dispatcher, and the ASGI pipeline so every
module raises and catches the same types.
"""

from dataclasses import dataclass
from http import HTTPStatus


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when routes or app configuration are invalid.

    Typically raised at registration time (bad route pattern) or when
    an optional dependency is missing.
    """


class ResponseAlreadySent(WaypointError):  # noqa: N818
    """Raised when a handler writes to a response that has already ended."""


@dataclass(frozen=True, slots=True)
class HTTPError(WaypointError):
    """An error that maps directly to an HTTP status code.

    Raise it from any handler, or pass it to ``next()``. Error handlers
    receive it like any other exception; if none handles it, the final
    handler responds with ``status`` and ``detail``.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: the request could not be understood."""

    def __init__(self, detail: str = "Bad Request") -> None:
        super().__init__(status=400, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818
    """401: authentication is required."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(status=401, detail=detail)


class Forbidden(HTTPError):  # noqa: N818
    """403: authenticated but not allowed."""

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(status=403, detail=detail)


class NotFound(HTTPError):  # noqa: N818
    """404: no such resource."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


def status_for(error: BaseException) -> int:
    """Resolve the HTTP status the final handler should send for *error*.

    ``HTTPError`` carries its own status. Other exceptions may expose an
    integer ``status`` or ``status_code`` attribute in the 4xx/5xx range.
    Anything else is a 500.
    """
    if isinstance(error, HTTPError):
        return error.status
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and not isinstance(value, bool) and 400 <= value <= 599:
            return value
    return 500


def message_for(error: BaseException) -> str:
    """The human-readable message for *error*, falling back to the status phrase."""
    if isinstance(error, HTTPError):
        detail = error.detail
    else:
        detail = str(error)
    if detail:
        return detail
    status = status_for(error)
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Error"
