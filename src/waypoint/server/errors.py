"""The final handler: what happens when a request falls off the root stack.

With an error still unwinding, it maps the error to a status and a plain
text body. With no error, nothing handled the request, so it answers 404.
"""

import logging
import traceback

from waypoint.errors import HTTPError, message_for, status_for
from waypoint.http.request import Request
from waypoint.http.response import Response

logger = logging.getLogger("waypoint.server")


async def final_handler(
    error: BaseException | None,
    request: Request,
    response: Response,
    *,
    debug: bool = False,
) -> None:
    """Terminate the chain for *request*."""
    if response.finished:
        if error is not None:
            logger.error(
                "Error after the response was sent for %s %s",
                request.method,
                request.original_url,
                exc_info=error,
            )
        return

    if error is None:
        logger.debug("404 %s %s (no handler)", request.method, request.original_url)
        response.status = 404
        response.text(f"Cannot {request.method} {request.original_url}")
        return

    status = status_for(error)
    if status >= 500:
        logger.error(
            "%d %s %s",
            status,
            request.method,
            request.original_url,
            exc_info=error,
        )
    else:
        logger.debug(
            "%d %s %s: %s", status, request.method, request.original_url, message_for(error)
        )

    body = message_for(error)
    if debug and status >= 500:
        body = "".join(traceback.format_exception(error))

    if isinstance(error, HTTPError):
        for name, value in error.headers:
            response.headers.set(name, value)
    response.status = status
    response.text(body)
