"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application.

Key Concepts:
=============

1. Application Factory Pattern
   - create_app() returns a configured app
   - Tests import the module-level `app` and override dependencies

2. Lifespan Events
   - startup: select the cache backend, optionally create tables and seed
   - shutdown: close the Redis connection

3. Middleware Stack
   - CORS: allowlist from ALLOWED_ORIGINS
   - slowapi: per-IP limits on auth and AI endpoints

4. Exception Handlers
   - Every error leaves the API as {"error": {"message": "..."}}
   - Validation errors are 400, duplicates 409, database failures 500
   - 500 messages are generic in production
"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from library_catalog.config import get_settings
from library_catalog.database import SessionLocal, check_database, create_tables, seed_if_empty
from library_catalog.dependencies import CacheDep, DbSession
from library_catalog.exceptions import CatalogError
from library_catalog.routers import ai_router, auth_router, books_router, ratings_router
from library_catalog.services.cache import close_cache, get_cache
from library_catalog.services.rate_limiter import limiter, rate_limit_exceeded_handler

# =============================================================================
# Logging Configuration
# =============================================================================
settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"

STARTED_AT = time.monotonic()


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    """Build the standard error envelope."""
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message}},
        headers=headers,
    )


def format_validation_errors(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into "field: message, field: message"."""
    parts = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location)
        message = error.get("msg", "Invalid value")
        parts.append(f"{field}: {message}" if field else message)
    return ", ".join(parts) or "Invalid request"


# =============================================================================
# Lifespan Events
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Code before yield: Runs on startup
    Code after yield: Runs on shutdown
    """
    # ----- STARTUP -----
    logger.info(f"Starting {settings.app_name} ({settings.environment})...")

    cache = get_cache()
    logger.info(f"Summary cache backend: {cache.stats().get('backend')}")

    if settings.auto_create_tables:
        create_tables()

    if settings.seed:
        with SessionLocal() as db:
            seed_if_empty(db)

    yield  # Application runs here

    # ----- SHUTDOWN -----
    logger.info(f"Shutting down {settings.app_name}...")
    close_cache()


# =============================================================================
# Application Factory
# =============================================================================
def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## Library Catalog API

Book catalog with ratings, moderation and AI summaries.

### Features
- **Books**: CRUD under `/livros`
- **Ratings**: one rating per user or guest per book, cached summaries
- **AI summaries**: generated once per book, regenerate with `force=true`

### Authentication
Bearer token: the static AUTH_TOKEN or a JWT from `/auth/login`.
Guests may rate books by sending `ip_fingerprint`.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # -------------------------------------------------------------------------
    # Rate Limiting
    # -------------------------------------------------------------------------
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    origins = settings.allowed_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials cannot be combined with a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Exception Handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(CatalogError)
    async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
        """Domain errors carry their own status and message."""
        message = exc.message
        if exc.status_code >= 500:
            logger.error(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
            if exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR and settings.is_production:
                message = GENERIC_ERROR_MESSAGE
        return error_response(exc.status_code, message, exc.headers)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Framework errors (404 routes, 405 methods) in the same envelope."""
        return error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(status.HTTP_400_BAD_REQUEST, format_validation_errors(exc))

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
        logger.warning(f"Integrity error: {exc.orig}")
        return error_response(
            status.HTTP_409_CONFLICT,
            "A record with these details already exists (e.g. duplicate ISBN)",
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        """
        Handle SQLAlchemy database errors.

        Logs the actual error while hiding details from users in production.
        """
        logger.error(f"Database error: {exc}")
        message = GENERIC_ERROR_MESSAGE if settings.is_production else str(exc)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Catch-all exception handler.

        In production, hide internal errors from users.
        """
        logger.error(f"Unhandled error: {exc}", exc_info=True)
        message = GENERIC_ERROR_MESSAGE if settings.is_production else (str(exc) or GENERIC_ERROR_MESSAGE)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)

    # -------------------------------------------------------------------------
    # Register Routers
    # -------------------------------------------------------------------------
    app.include_router(auth_router)
    app.include_router(books_router)
    app.include_router(ai_router)
    app.include_router(ratings_router)

    # -------------------------------------------------------------------------
    # Health Check Endpoint
    # -------------------------------------------------------------------------
    @app.get(
        "/health",
        tags=["Health"],
        summary="Health check",
        description="Check the database connection and report cache status.",
    )
    def health_check(db: DbSession, cache: CacheDep) -> JSONResponse:
        """
        Health check endpoint.

        Used by load balancers, container probes and monitoring. Returns 503
        with status "degraded" when the database does not answer.
        """
        try:
            check_database(db)
            db_status = "ok"
        except SQLAlchemyError as e:
            logger.error(f"Health check database failure: {e}")
            db_status = "down"

        healthy = db_status == "ok"
        return JSONResponse(
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ok" if healthy else "degraded",
                "db": db_status,
                "cache": cache.stats(),
                "env": settings.environment,
                "uptime_s": int(time.monotonic() - STARTED_AT),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================
# This is what uvicorn imports: uvicorn library_catalog.main:app

app = create_app()


# =============================================================================
# Development Server
# =============================================================================
# python -m library_catalog.main

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "library_catalog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
