"""HTTP middleware for request ID propagation and correlation.

Every request/response pair carries a request ID so the rate limiter,
upstream relay and exception handler logs of one call can be correlated,
and a rejected client can quote the ID of its 429.

The middleware:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars so every log line of the request carries it
- Echoes request_id and the total duration in the response headers
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from homework_api.core.config import settings
from homework_api.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id and a duration header to every response.

    The header name comes from ``LOG_REQUEST_ID_HEADER`` (default
    X-Request-ID). The id is bound to the logging context for the lifetime
    of the request and cleared afterwards, even when the handler raises.
    Responses produced by the exception handlers (including 429s) pass back
    through here, so they carry the id too.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with X-Request-ID and
            X-Request-Duration-ms headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
