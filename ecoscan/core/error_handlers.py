"""
Global Exception Handlers for the Application
Provides unified error response format and logging.
"""

import logging
import traceback
from datetime import datetime, timezone

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ecoscan.core.exceptions import AppException
from ecoscan.core.middleware.rate_limit import actor_key

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: dict = None,
    path: str = None,
    headers: dict = None,
) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        status_code: HTTP status code
        error_code: Application-specific error code
        message: Human-readable error message
        details: Additional error details
        path: Request path where error occurred
        headers: Extra response headers (e.g. WWW-Authenticate)

    Returns:
        JSONResponse with standardized error format
    """
    content = {
        "success": False,
        "error": {
            "code": error_code,
            "message": message,
            "details": details or {},
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if path:
        content["path"] = path

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=headers,
    )


def _request_context(request: Request, **extra) -> dict:
    """Fields every error log line carries so a failure can be tied to its caller."""
    context = {
        "path": request.url.path,
        "method": request.method,
        "request_id": getattr(request.state, "request_id", None),
        "account_id": getattr(request.state, "account_id", None),
    }
    context.update(extra)
    return context


def _exposes_internals(request: Request) -> bool:
    environment = getattr(request.app.state, "environment", "production")
    return environment.lower() in ("development", "dev", "test")


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers for the application.

    Domain errors keep their own status and code. Database failures are split into
    conflicts (a uniqueness or check constraint lost a race, 409) and transient
    failures the client may retry (503). Anything else is a 500 whose internals are
    only shown outside production.
    """

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"{exc.error_code}: {exc.message}",
            extra=_request_context(request, error_code=exc.error_code, details=exc.details),
        )
        return create_error_response(
            status_code=exc.status_code,
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
            path=request.url.path,
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        logger.warning(
            f"Validation error on {request.url.path}",
            extra=_request_context(request, errors=errors),
        )
        return create_error_response(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="validation_error",
            message="Request validation failed",
            details={"errors": errors},
            path=request.url.path,
        )

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        key = actor_key(request)
        logger.warning(
            f"Rate limit exceeded for {key}",
            extra=_request_context(request, limit=str(exc.detail)),
        )
        return create_error_response(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_code="rate_limit_exceeded",
            message="Too many requests. Please try again later.",
            details={"limit": str(exc.detail)},
            path=request.url.path,
            headers={"Retry-After": "60"},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        # Services translate the conflicts they expect; this catches the rest.
        logger.warning(
            f"Integrity conflict: {exc.orig}",
            extra=_request_context(request, error_type=type(exc).__name__),
        )
        return create_error_response(
            status_code=status.HTTP_409_CONFLICT,
            error_code="conflict",
            message="The request conflicts with the current state of the data.",
            details={"retriable": False},
            path=request.url.path,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
        logger.error(
            f"Database error: {exc}",
            extra=_request_context(request, error_type=type(exc).__name__),
            exc_info=True,
        )
        return create_error_response(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="database_error",
            message="A database error occurred. Please try again later.",
            details={"retriable": True},
            path=request.url.path,
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {exc}",
            extra=_request_context(request, error_type=type(exc).__name__),
            exc_info=True,
        )
        message = "An unexpected error occurred. Please try again later."
        details = {}
        if _exposes_internals(request):
            message = str(exc)
            details = {
                "error_type": type(exc).__name__,
                "traceback": traceback.format_exc().split("\n"),
            }
        return create_error_response(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="internal_server_error",
            message=message,
            details=details,
            path=request.url.path,
        )
