"""
FastAPI Dependencies Module

Dependencies are reusable components injected into route handlers.
FastAPI's Depends() function manages their lifecycle, and tests swap them
through app.dependency_overrides.

Process-wide components (cache, rating rate limiter, identity resolver,
metrics emitter) are built once behind lru_cache getters; request-scoped
ones (database session, RatingService) are created per request.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, Path, Request
from sqlalchemy.orm import Session

from library_catalog.config import Settings, get_settings
from library_catalog.database import get_db
from library_catalog.exceptions import AuthenticationError, RateLimitError
from library_catalog.models import Book
from library_catalog.services.cache import CacheBackend, get_cache
from library_catalog.services.identity import Identity, IdentityResolver, extract_bearer_token
from library_catalog.services.metrics import MetricsEmitter, get_metrics
from library_catalog.services.rate_limiter import RATING_LIMIT_MESSAGE, RatingRateLimiter, get_client_ip
from library_catalog.services.ratings import RatingService

# =============================================================================
# Type Aliases with Annotated
# =============================================================================
# Instead of writing:
#   def list_books(db: Session = Depends(get_db)):
#
# You can write:
#   def list_books(db: DbSession):

DbSession = Annotated[Session, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
CacheDep = Annotated[CacheBackend, Depends(get_cache)]
MetricsDep = Annotated[MetricsEmitter, Depends(get_metrics)]


# =============================================================================
# Identity
# =============================================================================
@lru_cache
def get_identity_resolver() -> IdentityResolver:
    """Resolver configured from settings, shared by every request."""
    settings = get_settings()
    return IdentityResolver(
        auth_token=settings.auth_token,
        auth_username=settings.auth_username,
        jwt_secret=settings.jwt_secret,
    )


ResolverDep = Annotated[IdentityResolver, Depends(get_identity_resolver)]


def get_rating_identity(
    resolver: ResolverDep,
    authorization: str | None = Header(default=None),
) -> Identity | None:
    """
    Identity of the rater, or None for guests.

    Invalid credentials are not an error here: the caller is treated as a
    guest and must then identify with ip_fingerprint.
    """
    return resolver.resolve(authorization)


RatingIdentity = Annotated[Identity | None, Depends(get_rating_identity)]


def require_auth(
    resolver: ResolverDep,
    authorization: str | None = Header(default=None),
) -> Identity | None:
    """
    Require a valid bearer credential.

    When neither a static token nor a JWT secret is configured every caller
    passes (and None is returned).

    Raises:
        AuthenticationError: 401 if the token is missing or invalid
    """
    if not resolver.enabled:
        return None

    if extract_bearer_token(authorization) is None:
        raise AuthenticationError("Missing token")

    identity = resolver.resolve(authorization)
    if identity is None:
        raise AuthenticationError("Invalid token")
    return identity


CurrentIdentity = Annotated[Identity | None, Depends(require_auth)]


# =============================================================================
# Rating Rate Limiting
# =============================================================================
@lru_cache
def get_rating_rate_limiter() -> RatingRateLimiter:
    """Process-wide limiter for the rating endpoints."""
    settings = get_settings()
    return RatingRateLimiter(
        max_requests=settings.effective_rating_rate_limit,
        window_seconds=settings.rating_rate_limit_window,
    )


def enforce_rating_rate_limit(
    request: Request,
    limiter: Annotated[RatingRateLimiter, Depends(get_rating_rate_limiter)],
) -> None:
    """
    Gate a rating request by client IP.

    Raises:
        RateLimitError: 429 once the client exhausted its window
    """
    client = get_client_ip(request)
    if not limiter.allow(client):
        raise RateLimitError(RATING_LIMIT_MESSAGE, retry_after=limiter.retry_after(client))


# =============================================================================
# Rating Service
# =============================================================================
def get_rating_service(
    db: DbSession,
    cache: CacheDep,
    metrics: MetricsDep,
    settings: SettingsDep,
) -> RatingService:
    """Request-scoped rating engine."""
    return RatingService(db=db, cache=cache, metrics=metrics, settings=settings)


RatingServiceDep = Annotated[RatingService, Depends(get_rating_service)]


def get_rated_book(
    service: RatingServiceDep,
    book_id: Annotated[int, Path(description="Book ID")],
) -> Book:
    """Book addressed by the rating routes (404 outside test mode)."""
    return service.ensure_book(book_id)
