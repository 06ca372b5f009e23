"""
API rate limiting using slowapi.

Provides a shared Limiter instance keyed by the caller's bearer token (if
present) or client IP address. Enable via RATE_LIMIT_ENABLED=true.
"""

import hashlib

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from sintillio.config.settings import get_settings


def _get_rate_limit_key(request: Request) -> str:
    """Extract rate limit key: hashed bearer token or remote IP."""
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer ") and authorization[7:].strip():
        return "token:" + hashlib.sha256(authorization[7:].strip().encode()).hexdigest()[:16]
    return get_remote_address(request)


def create_limiter() -> Limiter:
    """Create a configured Limiter instance."""
    settings = get_settings()
    return Limiter(
        key_func=_get_rate_limit_key,
        default_limits=[settings.rate_limit_default],
        storage_uri=str(settings.redis_url),
        enabled=settings.rate_limit_enabled,
    )


limiter = create_limiter()
