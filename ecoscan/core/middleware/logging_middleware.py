"""Logging middleware for FastAPI.

Adds a per-request UUID, enriches log records with account/IP contextvars, and measures
latency. Runs early in the stack so downstream middleware and routers inherit the
request context.
"""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ecoscan.core.logging_config import (
    bind_request_context,
    log_request,
    reset_request_context,
)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests/responses with timing and a correlation id."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        ip_address = request.client.host if request.client else "unknown"

        tokens = bind_request_context(request_id=request_id, ip_address=ip_address)
        start_time = time.perf_counter()

        response: Optional[Response] = None
        try:
            response = await call_next(request)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            # The actor dependency records the resolved account on request.state.
            log_request(
                method=request.method,
                endpoint=request.url.path,
                status_code=response.status_code if response else 500,
                duration_ms=duration_ms,
                ip_address=ip_address,
                account_id=getattr(request.state, "account_id", None),
                request_id=request_id,
            )
            reset_request_context(tokens)

        response.headers["X-Request-ID"] = request_id
        return response
