"""Dispatcher: walks a router's stack for one request.

The traversal is continuation-passing: every invoked handler receives a
``Next`` that resumes the walk right after its layer. Matching is strictly
in registration order and never backtracks.

For each layer, in order:

1. Pattern match against the current path (no match: skip).
2. Method gate for route layers (HEAD falls back to GET).
3. Error gate: while an error is unwinding only error handlers match;
   otherwise error handlers are skipped.
4. Params: captured values are merged over the inherited ones, then the
   router's param hooks run for each captured key in declaration order.
5. The endpoint runs with a request view of the layer's context.
   Middleware layers see their matched prefix moved from ``path`` to
   ``base_url``; the layers after them see the original values again.

An exception from any handler is treated as ``next(exception)``.
When the stack is exhausted the owner's ``done`` continuation runs with
the current error (the parent's ``next`` for a mounted router, the final
handler at the application root).

Continuations are trampolined. A handler that calls ``next()`` without
awaiting it leaves its ``Next`` pending; the pending ``Next`` is handed
back up as the *tail* of the call and ``drive()`` resumes it, so the stack
does not grow with the number of layers. Only a handler that awaits
``next()`` keeps its frames alive until the rest of the chain finishes.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Generator
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, TypeAlias

from waypoint._internal.invoke import invoke
from waypoint.context import request_var
from waypoint.routing.endpoint import Signal

if TYPE_CHECKING:
    from waypoint.http.request import Request
    from waypoint.http.response import Response
    from waypoint.routing.layer import Layer, LayerMatch
    from waypoint.routing.params import ParamRegistry

logger = logging.getLogger("waypoint.routing")

# What a handler may pass to next(): nothing, an error, or a Signal
Outcome: TypeAlias = BaseException | Signal | None

# A continuation left pending for the caller to resume, or None
Tail: TypeAlias = "Next | None"

# Continuation run when next() fires
Resume: TypeAlias = Callable[[Outcome], Awaitable[Tail]]

_IDLE = 0
_PENDING = 1
_STARTED = 2

# Errors raised after next() had resumed the chain, per dispatch
_unhandled: ContextVar[list[BaseException] | None] = ContextVar(
    "waypoint_unhandled", default=None
)


class _Settled:
    """An awaitable that completes immediately."""

    __slots__ = ()

    def __await__(self) -> Generator[Any, None, None]:
        return iter(())


class _Continuation:
    """Awaitable returned by ``Next.__call__``."""

    __slots__ = ("_next",)

    def __init__(self, next_: Next) -> None:
        self._next = next_

    def __await__(self) -> Generator[Any, None, None]:
        return drive(self._next).__await__()


class Next:
    """The continuation handed to a handler.

    ``next()`` resumes the chain, ``next(error)`` resumes it in error mode,
    ``next(Signal.ROUTE)`` / ``next(Signal.ROUTER)`` skip out of the current
    route or router. Async handlers await the call and get control back once
    the rest of the chain has finished; sync handlers just call it and the
    dispatcher resumes the chain when they return.

    A ``Next`` fires at most once. Anything other than an exception or a
    ``Signal`` is rejected with ``TypeError``.
    """

    __slots__ = ("_outcome", "_resume", "_state")

    def __init__(self, resume: Resume) -> None:
        self._resume = resume
        self._outcome: Outcome = None
        self._state = _IDLE

    def __call__(self, error: Outcome = None) -> Awaitable[None]:
        if error is not None and not isinstance(error, (BaseException, Signal)):
            msg = f"next() takes an exception or a Signal, got {type(error).__name__}."
            raise TypeError(msg)
        if self._state != _IDLE:
            logger.warning("next() called more than once; ignoring the extra call")
            return _Settled()
        self._state = _PENDING
        self._outcome = error
        return _Continuation(self)

    @property
    def called(self) -> bool:
        return self._state != _IDLE

    @property
    def pending(self) -> bool:
        """Called, but the chain has not resumed yet."""
        return self._state == _PENDING

    @property
    def started(self) -> bool:
        return self._state == _STARTED

    def fail(self, error: BaseException) -> None:
        """Record *error* as the outcome, unless the chain already resumed."""
        if self._state == _STARTED:
            return
        self._state = _PENDING
        self._outcome = error

    async def step(self) -> Tail:
        """Resume the chain once and return whatever it left pending."""
        if self._state != _PENDING:
            return None
        self._state = _STARTED
        return await self._resume(self._outcome)


async def drive(tail: Tail) -> None:
    """Resume pending continuations until the chain stops."""
    while tail is not None:
        tail = await tail.step()


async def call_handler(
    next_: Next,
    request: Request,
    func: Callable[..., Any],
    *args: Any,
) -> Tail:
    """Run one handler against its continuation.

    *request* is the view the handler receives; it is the current request
    for ``get_request()`` while the handler runs. Returns the continuation
    the call left pending: *next_* itself, or the tail an endpoint returned.

    Exceptions become ``next(exception)``. If the handler had already
    resumed the chain there is nowhere left to send the error, so it is
    logged and reported by ``dispatch()``.
    """
    token = request_var.set(request)
    try:
        result = await invoke(func, *args)
    except Exception as exc:
        if next_.started:
            logger.exception("Handler raised after next() had already resumed the chain")
            unhandled = _unhandled.get()
            if unhandled is not None:
                unhandled.append(exc)
            return None
        next_.fail(exc)
        return next_
    finally:
        request_var.reset(token)

    if next_.pending:
        return next_
    return result if isinstance(result, Next) else None


async def dispatch(
    stack: tuple[Layer, ...] | list[Layer],
    params: ParamRegistry,
    request: Request,
    response: Response,
    done: Callable[[Outcome], Awaitable[None]],
    error: Outcome = None,
) -> BaseException | None:
    """Walk *stack* from the top for *request* until the chain stops.

    *params* is the param registry of the router that owns *stack*.
    *done* runs once the stack is exhausted or left via ``Signal.ROUTER``.

    Returns the last exception a handler raised after its ``next()`` had
    already resumed the chain, or ``None``. Such errors never reach an
    error handler; the caller decides how to answer them.
    """
    unhandled: list[BaseException] = []
    token = _unhandled.set(unhandled)
    try:
        await drive(await run_stack(stack, params, request, response, Next(done), error))
    finally:
        _unhandled.reset(token)
    return unhandled[-1] if unhandled else None


async def run_stack(
    stack: tuple[Layer, ...] | list[Layer],
    params: ParamRegistry,
    request: Request,
    response: Response,
    done: Next,
    error: Outcome = None,
) -> Tail:
    """Enter *stack* from the top; *done* is called once it is exhausted.

    Returns the tail for the caller to drive.
    """
    return await _walk(stack, params, 0, request, response, error, done)


async def _walk(
    stack: tuple[Layer, ...] | list[Layer],
    params: ParamRegistry,
    index: int,
    request: Request,
    response: Response,
    error: Outcome,
    done: Next,
) -> Tail:
    if error is Signal.ROUTER:
        done()
        return done
    if error is Signal.ROUTE:
        error = None

    ctx = request.context
    while index < len(stack):
        layer = stack[index]
        index += 1

        match = layer.match(ctx.path)
        if match is None:
            continue
        if not layer.accepts(ctx.method):
            continue
        if layer.handles_errors != (error is not None):
            continue

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s %s -> %r (%s)", ctx.method, ctx.path, layer.path, layer.name)

        resume_at = index

        async def resume(outcome: Outcome, _at: int = resume_at) -> Tail:
            return await _walk(stack, params, _at, request, response, outcome, done)

        return await _enter(layer, match, params, request, response, error, resume)

    done(error)
    return done


async def _enter(
    layer: Layer,
    match: LayerMatch,
    params: ParamRegistry,
    request: Request,
    response: Response,
    error: Outcome,
    resume: Resume,
) -> Tail:
    """Run the param phase for *layer*, then its endpoint."""
    layer_request = request.at(request.context.enter(match, middleware=layer.is_middleware))

    hooks = [
        (hook, name, value)
        for name, value in match.params.items()
        for hook in params.get(name)
    ]
    return await _run_param_hooks(hooks, 0, layer, layer_request, response, error, resume)


async def _run_param_hooks(
    hooks: list[tuple[Callable[..., Any], str, str]],
    position: int,
    layer: Layer,
    request: Request,
    response: Response,
    error: Outcome,
    resume: Resume,
) -> Tail:
    if position == len(hooks):
        next_ = Next(resume)
        return await call_handler(
            next_, request, layer.endpoint.handle, error, request, response, next_
        )

    hook, name, value = hooks[position]

    async def proceed(outcome: Outcome) -> Tail:
        if outcome is None:
            return await _run_param_hooks(
                hooks, position + 1, layer, request, response, error, resume
            )
        # A failing param hook skips the layer entirely
        return await resume(outcome)

    next_ = Next(proceed)
    return await call_handler(next_, request, hook, request, response, next_, value, name)
