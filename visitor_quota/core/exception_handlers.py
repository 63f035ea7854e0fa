"""Global exception handlers for consistent error responses.

Every error leaves the service in the same envelope:

    {"error": {"code": ..., "message": ..., "request_id": ..., "details"?: ...}}

Status mapping:
- ValidationAppError / RequestValidationError -> 400
- AuthenticationAppError -> 403
- StoreUnavailableError -> 503 (only reachable from operator endpoints;
  quota checks fail open before an error can surface)
- HTTPException -> its own status
- anything else -> 500 without internal details
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from visitor_quota.core.errors import (
    AppError,
    AuthenticationAppError,
    StoreUnavailableError,
    ValidationAppError,
)
from visitor_quota.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_response(status_code: int, code: str, message: str, details: dict | None = None, headers: dict | None = None) -> JSONResponse:
    error_content = {
        "code": code,
        "message": message,
        "request_id": get_request_id(),
    }
    if details:
        error_content["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error_content}, headers=headers)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, StoreUnavailableError):
        return 503
    if isinstance(exc, ValidationAppError):
        return 400
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map domain errors to their HTTP status and the error envelope.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    return _error_response(status_code, exc.code, exc.message, dict(exc.details) if exc.details else None)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn malformed query strings or bodies into 400 ``invalid_request``."""
    fields = [".".join(str(part) for part in err.get("loc", ())) for err in exc.errors()]

    logger.warning(
        "request_validation_failed",
        extra={"request_path": request.url.path, "fields": fields},
    )

    return _error_response(
        400,
        "invalid_request",
        "Request could not be parsed",
        {"context": {"fields": fields}},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error_response(
        exc.status_code,
        f"http_{exc.status_code}",
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack traces or internal messages leak to clients.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return _error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
