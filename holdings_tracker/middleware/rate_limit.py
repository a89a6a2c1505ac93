# holdings_tracker/middleware/rate_limit.py
"""
Rate limiting for the HTTP API (slowapi).

The valuation endpoint can trigger provider calls, so it gets a tighter
limit than plain reads; the cache reset is the tightest. Limits live in
holdings_tracker/services/constants.py.

Key by: Client IP address. X-Forwarded-For / X-Real-IP are only honoured
when the immediate client is a trusted proxy (see config).
Storage: In-memory (single instance).

Usage:
    from holdings_tracker.middleware.rate_limit import limiter, RATE_LIMIT_VALUATION

    @router.get("/{portfolio_id}/valuation")
    @limiter.limit(RATE_LIMIT_VALUATION)
    def get_valuation(request: Request, ...):
        ...
"""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from holdings_tracker.config import settings
from holdings_tracker.services.constants import (
    RATE_LIMIT_DEFAULT,
    RATE_LIMIT_WRITE,
    RATE_LIMIT_VALUATION,
    RATE_LIMIT_ADMIN,
    RATE_LIMIT_HEALTH,
)

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 60


def _is_trusted_proxy(request: Request) -> bool:
    if settings.trust_proxy_headers:
        return True
    return get_remote_address(request) in settings.trusted_proxy_ips


def _get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Forwarded headers are ignored unless the request comes from a trusted
    proxy, so clients cannot pick their own rate limit bucket.
    """
    if _is_trusted_proxy(request):
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            # First entry is the original client
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

    return get_remote_address(request)


# =============================================================================
# LIMITER INSTANCE
# =============================================================================

limiter = Limiter(
    key_func=_get_client_ip,
    default_limits=[RATE_LIMIT_DEFAULT],
    enabled=not settings.is_test,
)


# =============================================================================
# RATE LIMIT EXCEEDED HANDLER
# =============================================================================

async def rate_limit_exceeded_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """429 in the standard error envelope, with a Retry-After header."""
    limit_info = str(exc.detail) if exc.detail else "Rate limit exceeded"

    logger.warning(f"Rate limit exceeded for {_get_client_ip(request)}: {limit_info}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "RateLimitError",
            "message": f"Too many requests. {limit_info}",
            "details": {"retry_after": RETRY_AFTER_SECONDS},
        },
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
    )


__all__ = [
    "limiter",
    "rate_limit_exceeded_handler",
    "SlowAPIMiddleware",
    "RATE_LIMIT_DEFAULT",
    "RATE_LIMIT_WRITE",
    "RATE_LIMIT_VALUATION",
    "RATE_LIMIT_ADMIN",
    "RATE_LIMIT_HEALTH",
]
