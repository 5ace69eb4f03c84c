"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes and traceability.

Design:
- RateLimitExceeded → 429 with Retry-After and a flat body the browser
  client understands (error, details, retryAfter)
- Other AppError subclasses → mapped status with {"error": {...}}
- Unexpected Exception → generic 500 (safety net)
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from homework_api.core.config import settings
from homework_api.core.errors import (
    AppError,
    ConfigurationError,
    LLMAppError,
    RateLimitExceeded,
    UpstreamAPIError,
    UpstreamTimeoutError,
    ValidationAppError,
)
from homework_api.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, ConfigurationError):
        return 500
    if isinstance(exc, UpstreamTimeoutError):
        return 504
    if isinstance(exc, UpstreamAPIError):
        return exc.status_code
    if isinstance(exc, LLMAppError):
        return 502
    return 400


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Render a rejected admission as HTTP 429.

    Retry-After is always sent; X-RateLimit-* headers are optional.
    """
    retry_after = exc.retry_after_seconds
    headers = {"Retry-After": str(retry_after)}

    details = exc.details or {}
    if settings.rate_limit.include_headers:
        for header, field in (
            ("X-RateLimit-Limit", "limit"),
            ("X-RateLimit-Remaining", "remaining"),
            ("X-RateLimit-Reset", "reset_at"),
        ):
            if field in details:
                headers[header] = str(details[field])  # type: ignore[literal-required]

    return JSONResponse(
        status_code=429,
        content={
            "error": "Rate limit exceeded",
            "details": exc.message,
            "retryAfter": retry_after,
        },
        headers=headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    All responses include:
    - error.code: Machine-readable error code
    - error.message: Human-readable message
    - error.request_id: For distributed tracing
    - error.details: Optional structured context

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    if isinstance(exc, RateLimitExceeded):
        return await rate_limit_exceeded_handler(request, exc)

    status_code = _status_for(exc)
    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message; no stack traces reach the client.
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

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Specific handlers are registered before the general fallback.
    """
    app.exception_handler(RateLimitExceeded)(rate_limit_exceeded_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
