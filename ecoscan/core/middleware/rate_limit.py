"""Rate limiting utilities.

Wraps slowapi limiter with a test-friendly no-op variant to keep fixtures deterministic.
Guests are keyed by their device id so a shared NAT does not throttle every guest at once.
"""

import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ecoscan.core.config import settings


def actor_key(request: Request) -> str:
    """Rate-limit key: bearer token, then device id, then client address."""
    authorization = request.headers.get("Authorization")
    if authorization:
        return authorization
    device_id = request.headers.get("X-Device-Id")
    if device_id:
        return f"device:{device_id}"
    return get_remote_address(request)


class _NoOpLimiter:
    """Disable rate limiting when running tests to keep fixtures deterministic."""

    enabled = False

    def limit(self, *args, **kwargs):
        def decorator(func):
            return func

        return decorator


if os.getenv("APP_ENV", settings.environment).lower() == "test":
    limiter = _NoOpLimiter()
else:
    limiter = Limiter(
        key_func=actor_key, default_limits=["300 per minute", "5000 per day"]
    )

__all__ = ["limiter", "actor_key"]
