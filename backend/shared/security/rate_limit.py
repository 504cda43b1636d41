"""
Rate limiting using slowapi, keyed by client IP.

Cart mutations are the only high-frequency writes (every tap in the menu
is one request), so they carry a per-IP limit from settings.

Usage in a router:
    from shared.security.rate_limit import limiter

    @router.post("/add")
    @limiter.limit(settings.cart_rate_limit)
    def add_to_cart(request: Request, ...):
        ...
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)

# Disabled in tests through RATE_LIMIT_ENABLED=false
limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with the limit that was hit."""
    logger.warning(
        "Rate limit exceeded",
        path=request.url.path,
        client=get_remote_address(request),
        limit=str(exc.detail),
    )
    return JSONResponse(
        status_code=429,
        content={
            "detail": "Too many requests. Please try again later.",
            "limit": str(exc.detail),
        },
    )
