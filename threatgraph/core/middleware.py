"""Application middleware."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Request, Response

from threatgraph.core.context import (
    clear_request_context,
    new_request_id,
    set_request_id,
    set_request_path,
)


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Attach request_id and the request path to contextvars.

    Also adds `X-Request-Id` to the response.
    """
    clear_request_context()

    request_id = new_request_id()
    set_request_id(request_id)
    set_request_path(request.url.path)

    try:
        response = await call_next(request)
        response.headers["X-Request-Id"] = str(request_id)
        return response
    finally:
        clear_request_context()
