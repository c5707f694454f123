"""Global exception handlers producing the ``{"error": {...}}`` envelope.

- AppError subclasses map to 400, 404 or 409
- request body validation failures map to 422 with per-field details
- anything else is logged and answered with a generic 500

Every envelope carries the request id so a client report can be matched to
server logs. Rate limit rejections are plain ``HTTPException`` and keep
FastAPI's ``{"detail": ...}`` body.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from earlab.core.errors import (
    AppError,
    ConflictAppError,
    ErrorDetails,
    FieldError,
    NotFoundAppError,
)
from earlab.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code.

    ValidationAppError, VerificationAppError and the bare AppError are client
    faults and fall through to 400.
    """
    if isinstance(exc, NotFoundAppError):
        return 404
    if isinstance(exc, ConflictAppError):
        return 409
    return 400


def _envelope(status_code: int, code: str, message: str, details: ErrorDetails | None = None) -> JSONResponse:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "path": request.url.path,
            "has_details": bool(exc.details),
        },
    )
    return _envelope(status_code, exc.code, exc.message, exc.details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report invalid request bodies without echoing the submitted values.

    Only the location and reason of each failure are returned; the raw input
    may contain personal data.
    """
    fields = [
        FieldError(
            field=".".join(str(part) for part in err.get("loc", ())),
            reason=err.get("msg", ""),
        )
        for err in exc.errors()
    ]
    logger.info(
        "request_validation_failed",
        extra={"path": request.url.path, "error_count": len(fields)},
    )
    return _envelope(422, "invalid_request", "Request validation failed.", ErrorDetails(fields=fields))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net for anything unhandled; the client never sees internals."""
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _envelope(500, "internal_server_error", GENERIC_ERROR_MESSAGE)


def setup_exception_handlers(app: FastAPI) -> None:
    """Register handlers on ``app``; safe to call more than once."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
