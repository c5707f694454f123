"""HTTP middleware for request ID propagation, timing and access logging.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from earlab.core.config import settings
from earlab.core.logging import clear_request_id, set_request_id

logger = logging.getLogger("earlab.access")


async def request_id_middleware(request: Request, call_next) -> Response:
    """Give every request/response pair a correlation id and a duration header.

    Reuses the incoming request id header (``LOG_REQUEST_ID_HEADER``, default
    ``X-Request-ID``) or generates a UUID, keeps it in a contextvar for the
    lifetime of the request so log records pick it up, and echoes it back on
    the response together with ``X-Request-Duration-ms``.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with correlation headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        # Query strings are left out: verification links carry the token there
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
