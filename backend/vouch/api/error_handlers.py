"""Error Handlers — map exceptions to the API error envelope.

Invariants:
    - VouchError → its own http_status and to_response() body
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Anything else → 500 INTERNAL_ERROR, no internal detail in the body

Design Decisions:
    - Client-side failures (< 500) logged at WARNING, server-side at ERROR
    - The ids carried in ErrorContext are copied onto the log record so a
      rejected submission can be traced by worker, reference or community
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from vouch.core.errors import ErrorCategory, ErrorSeverity, VouchError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(VouchError, handle_vouch_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


def _log_fields(request: Request, exc: VouchError) -> dict:
    ctx = exc.context
    return {
        "error_code": exc.code,
        "path": request.url.path,
        "user_id": ctx.user_id,
        "worker_id": ctx.worker_id,
        "reference_id": ctx.reference_id,
        "community_id": ctx.community_id,
    }


async def handle_vouch_error(request: Request, exc: VouchError) -> JSONResponse:
    level = logging.WARNING if exc.http_status < 500 else logging.ERROR
    logger.log(level, exc.message, extra=_log_fields(request, exc))
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in e["loc"]),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request: {len(details)} invalid field(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.WARNING.value,
                "details": details,
            },
        },
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__}",
        extra={"path": request.url.path},
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )
