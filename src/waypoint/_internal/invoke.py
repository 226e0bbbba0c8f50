"""Invoke helpers: call sync or async handlers uniformly.

Waypoint handlers can be ``def`` or ``async def``. Any code that calls
a user-provided handler must handle both cases. This module provides
a single helper so the sync/async check lives in exactly one place.

Usage::

    from waypoint._internal.invoke import invoke

    await invoke(handler, request, response, next)
"""

import inspect
from typing import Any


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it is a coroutine.

    Works with both sync and async callables::

        # sync: calls next() without awaiting; the dispatcher resumes
        # the chain once the handler returns
        def log(request, response, next):
            print(request.method, request.path)
            next()

        # async: awaits the rest of the chain
        async def timing(request, response, next):
            start = time.monotonic()
            await next()
            logger.info("%s took %.3fs", request.path, time.monotonic() - start)

    Other awaitables a sync handler returns are left alone, so
    ``lambda request, response, next: next()`` behaves like ``log`` above.
    """
    result = handler(*args, **kwargs)
    if inspect.iscoroutine(result):
        result = await result
    return result
