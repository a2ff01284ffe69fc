"""
Rate Limiting Service

Two layers of abuse protection:

1. RatingRateLimiter: per-client-IP gate in front of the rating endpoints.
   It keeps a moving window of hit timestamps per client in process memory
   (the `limits` MemoryStorage) and rejects a request once the client has
   reached the maximum inside the window. Expired hits are dropped as part
   of each check. State is process-local and resets on restart.

2. slowapi `limiter`: decorator-based limits on login, registration and AI
   summary generation. Disabled in the test environment or with
   DISABLE_RATE_LIMIT=true.

Both use get_client_ip() as the client key.
"""

import logging
import math
import time

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from library_catalog.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

RATING_LIMIT_MESSAGE = "Rating request limit reached. Please try again later."


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Handles common proxy headers to get the real client IP.
    Falls back to direct connection IP if no proxy headers.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs; first is the client
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request) or "unknown"


# =============================================================================
# Rating Endpoint Limiter
# =============================================================================

class RatingRateLimiter:
    """
    Moving-window request counter keyed by client.

    Args:
        max_requests: Requests allowed per window (>= 1)
        window_seconds: Window length in seconds (>= 1)
    """

    def __init__(self, max_requests: int = 5, window_seconds: int = 60) -> None:
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._storage = MemoryStorage()
        self._strategy = MovingWindowRateLimiter(self._storage)

    def allow(self, client_key: str) -> bool:
        """Record a hit for client_key and return False if over the limit."""
        allowed = self._strategy.hit(self._item, "ratings", client_key)
        if not allowed:
            logger.warning(f"Rating rate limit exceeded for {client_key}")
        return allowed

    def retry_after(self, client_key: str) -> int:
        """Seconds until client_key gets a free slot again."""
        stats = self._strategy.get_window_stats(self._item, "ratings", client_key)
        return max(1, math.ceil(stats.reset_time - time.time()))

    def reset(self) -> None:
        """Forget every client (test isolation)."""
        self._storage.reset()


# =============================================================================
# slowapi Limiter (auth and AI endpoints)
# =============================================================================

AUTH_LOGIN_LIMIT = "20 per 15 minutes"
AUTH_REGISTER_LIMIT = "10 per 15 minutes"
AI_SUMMARY_LIMIT = "30 per hour"


def create_limiter() -> Limiter:
    """
    Create and configure the slowapi limiter.

    Uses in-memory storage and the fixed-window strategy; disabled for the
    test environment and when DISABLE_RATE_LIMIT is set.
    """
    enabled = not (settings.is_test or settings.disable_rate_limit)

    limiter = Limiter(
        key_func=get_client_ip,
        strategy="fixed-window",
        enabled=enabled,
    )

    logger.info(f"Rate limiter initialized - enabled: {enabled}")

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for slowapi rate limit errors.

    Returns 429 with the standard error envelope and a Retry-After header.
    """
    limit_detail = str(exc.detail)

    response = JSONResponse(
        status_code=429,
        content={"error": {"message": "Too many attempts. Please try again later."}},
    )
    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(
        f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}"
    )

    return response
