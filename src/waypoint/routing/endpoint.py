"""Endpoint protocol and the tagged handler wrappers.

Everything a Layer can dispatch to implements ``Endpoint``: plain
handler functions (wrapped as ``Handler`` or ``ErrorHandler`` at
registration time), ``Route`` builders, mounted ``Router`` instances and
mounted ``App`` instances. Whether a layer takes part in error unwinding
is decided by the wrapper chosen at registration (``use`` vs
``use_error``), never by inspecting the function's parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Protocol

from waypoint._internal.invoke import invoke
from waypoint._internal.types import ErrorHandlerFunc, HandlerFunc

if TYPE_CHECKING:
    from waypoint.http.request import Request
    from waypoint.http.response import Response
    from waypoint.routing.dispatch import Next


class Signal(Enum):
    """Control values that can be passed to ``next()`` instead of an error.

    ``ROUTE`` skips the remaining handlers of the current route.
    ``ROUTER`` leaves the current router and resumes in its parent.
    """

    ROUTE = "route"
    ROUTER = "router"


class Endpoint(Protocol):
    """Anything a Layer can hand a request to.

    ``handle`` returns the continuation it left pending (see
    ``waypoint.routing.dispatch.drive``), or ``None``.
    """

    handles_errors: ClassVar[bool]

    async def handle(
        self,
        error: BaseException | None,
        request: Request,
        response: Response,
        next: Next,  # noqa: A002
    ) -> Next | None: ...


@dataclass(frozen=True, slots=True)
class Handler:
    """A regular handler: ``(request, response, next)``."""

    func: HandlerFunc
    handles_errors: ClassVar[bool] = False

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", "<handler>")

    async def handle(
        self,
        error: BaseException | None,
        request: Request,
        response: Response,
        next: Next,  # noqa: A002
    ) -> None:
        await invoke(self.func, request, response, next)


@dataclass(frozen=True, slots=True)
class ErrorHandler:
    """An error handler: ``(error, request, response, next)``."""

    func: ErrorHandlerFunc
    handles_errors: ClassVar[bool] = True

    @property
    def name(self) -> str:
        return getattr(self.func, "__name__", "<error handler>")

    async def handle(
        self,
        error: BaseException | None,
        request: Request,
        response: Response,
        next: Next,  # noqa: A002
    ) -> None:
        await invoke(self.func, error, request, response, next)


def ensure_callable(func: object, registration: str) -> None:
    """Reject non-callables at registration time."""
    if not callable(func):
        msg = f"{registration}() requires a callable handler, got {type(func).__name__}."
        raise TypeError(msg)
