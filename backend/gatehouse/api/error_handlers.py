"""Error Handlers: map exceptions to the Gatehouse error envelope.

Invariants:
    - GatehouseError -> its own http_status and to_response() body
    - RequestValidationError (bad UUIDs, unknown role, missing X-User-Id) -> 400
    - Anything else -> 500 with a fixed message, details only in the log
    - 4xx domain errors log at WARNING; 5xx at ERROR

Design Decisions:
    - Conflicts are expected traffic (two pilots racing for a gate), so they never
      log with a traceback
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gatehouse.core.errors import ErrorCategory, ErrorSeverity, GatehouseError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatehouseError, handle_gatehouse_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_gatehouse_error(request: Request, exc: GatehouseError):
    level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
    logger.log(
        level,
        f"{request.method} {request.url.path} -> {exc.http_status} {exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "event_id": exc.context.event_id,
            "user_id": exc.context.user_id,
            "gate_id": exc.context.gate_id,
            "role": exc.context.role,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(request: Request, exc: RequestValidationError):
    details = validation_details(exc)
    logger.warning(
        f"{request.method} {request.url.path} rejected: "
        f"{', '.join(d['field'] for d in details)}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Invalid request data",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.ERROR.value,
                "retryable": False,
                "details": details,
            },
        },
    )


async def handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": "internal",
                "severity": ErrorSeverity.CRITICAL.value,
                "retryable": False,
            },
        },
    )


def validation_details(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors to field/message/type, e.g. field="body.gate_id"."""
    return [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
