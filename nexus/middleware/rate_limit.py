"""
Rate limiting using slowapi.
Protects login, signup and AI matching from abuse.
"""
import os
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from nexus.middleware.error_handling import ERROR_STATUS_MAP, ErrorCode, redirect_with_flash, wants_json

logger = logging.getLogger(__name__)

RATE_LIMIT_ENABLED = os.getenv('RATE_LIMIT_ENABLED', 'true').lower() == 'true'
RATE_LIMIT_DEFAULT = os.getenv('RATE_LIMIT_DEFAULT', '100/minute')
RATE_LIMIT_STRICT = os.getenv('RATE_LIMIT_STRICT', '10/minute')  # Login, signup, AI calls

# Redis URL for distributed rate limiting (optional)
REDIS_URL = os.getenv('REDIS_URL')


def get_user_or_ip(request: Request) -> str:
    """Rate limit per logged-in user, falling back to client IP."""
    if "session" in request.scope:
        user = request.session.get("user") or {}
        if user.get("user_id"):
            return f"user:{user['user_id']}"
    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create a rate limiter instance with appropriate storage backend.
    Uses Redis if configured, otherwise in-memory storage.
    """
    if REDIS_URL and RATE_LIMIT_ENABLED:
        try:
            return Limiter(
                key_func=get_user_or_ip,
                default_limits=[RATE_LIMIT_DEFAULT],
                storage_uri=REDIS_URL,
                strategy="fixed-window",
                enabled=True
            )
        except Exception as e:
            logger.warning(f"Failed to connect to Redis for rate limiting: {e}. Using in-memory storage.")

    return Limiter(
        key_func=get_user_or_ip,
        default_limits=[RATE_LIMIT_DEFAULT],
        strategy="fixed-window",
        enabled=RATE_LIMIT_ENABLED
    )


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Flash and redirect browsers; 429 JSON for everyone else."""
    logger.warning(f"Rate limit exceeded for {get_user_or_ip(request)}: {exc.detail}")
    if wants_json(request):
        return JSONResponse(
            status_code=ERROR_STATUS_MAP[ErrorCode.RATE_LIMITED],
            content={"error": {
                "code": ErrorCode.RATE_LIMITED.value,
                "message": "Rate limit exceeded. Please slow down your requests.",
                "details": {"limit": str(exc.detail)},
            }},
            headers={"Retry-After": "60"}
        )
    return redirect_with_flash(request, "Too many requests. Please wait a minute and try again.", "error", "/")


def limit_strict(func):
    """Apply strict rate limit for sensitive or expensive routes."""
    return limiter.limit(RATE_LIMIT_STRICT)(func)
