"""
Rate limiting configuration and setup.

Uses slowapi to enforce per-client request limits. Trade submission
carries its own, tighter limit (``settings.rate_limit_trade``).
"""

from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.core.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
)


async def rate_limit_exceeded_handler(
    _request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return a 429 in the shape of every other error response.

    Args:
        _request: The incoming HTTP request.
        exc: The rate limit exceeded exception.
    """
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded", "detail": str(exc.detail)},
    )
