"""Error Handlers — render every failure in the GiftDrive error envelope.

Invariants:
    - GiftDriveError → its own status and to_response() body
    - RequestValidationError → 400 VALIDATION_ERROR with one entry per field
    - Anything else → 500 INTERNAL_ERROR, never leaking internals
    - Remote/debug payloads are included only when expose_error_details is set

Design Decisions:
    - Client mistakes (4xx) log at warning, server and Rye failures (5xx) at error
    - Field paths drop the "body"/"query" prefix: clients see "quantity", not
      "body.quantity"
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.core.errors import ErrorCategory, ErrorSeverity, GiftDriveError

logger = logging.getLogger(__name__)

_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
    details=None,
) -> dict:
    body = {
        "code": code,
        "message": message,
        "category": category.value,
        "severity": severity.value,
    }
    if details is not None:
        body["details"] = details
    return {"error": body}


def _field_path(loc) -> str:
    parts = [str(part) for part in loc]
    if len(parts) > 1 and parts[0] in _LOCATION_PREFIXES:
        parts = parts[1:]
    return ".".join(parts)


def validation_details(exc: RequestValidationError) -> list[dict]:
    return [
        {"field": _field_path(e["loc"]), "message": e["msg"], "type": e["type"]}
        for e in exc.errors()
    ]


async def handle_giftdrive_error(request: Request, exc: GiftDriveError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.code} on {request.method} {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "cart_id": exc.context.cart_id,
            "rye_cart_id": exc.context.rye_cart_id,
            "need_ref": exc.context.need_ref,
        },
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_response(include_debug=get_settings().expose_error_details),
    )


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = validation_details(exc)
    logger.warning(
        f"Invalid request on {request.url.path}: {[d['field'] for d in details]}",
        extra={"path": request.url.path, "error_code": "VALIDATION_ERROR"},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        exc_info=exc, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GiftDriveError, handle_giftdrive_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
