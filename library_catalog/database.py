"""
Database Configuration Module

This module sets up SQLAlchemy 2.0 with PostgreSQL for the Library Catalog API.

We use SYNCHRONOUS SQLAlchemy with psycopg2. FastAPI runs the synchronous
route handlers in a thread pool, so each request gets its own session and
its own connection from the pool.

Session Management Pattern
==========================
We use the "session per request" pattern:
1. Request arrives -> create a new session
2. Use session for all database operations in that request
3. Commit on success, rollback on failure
4. Close session when request ends

This is implemented using FastAPI's dependency injection.
"""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, func, select, text
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from library_catalog.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


# =============================================================================
# Database Engine
# =============================================================================
# - pool_pre_ping: Test connection health before using (prevents stale connections)
# - echo: Log all SQL statements in debug mode

engine = create_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=True,
    echo=settings.debug,
)


# =============================================================================
# Session Factory
# =============================================================================
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =============================================================================
# Base Model Class
# =============================================================================
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    All models inherit from this class so that Base.metadata knows every
    table (used by create_tables() and by the test suite).
    """
    pass


# =============================================================================
# Dependency Injection
# =============================================================================
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency for FastAPI.

    Code before yield creates the session, the route uses it, and the
    finally block closes it even if the handler raised.

    Usage in Routes:
        @router.get("/livros")
        def list_books(db: DbSession):
            ...

    Yields:
        SQLAlchemy Session instance
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =============================================================================
# Utility Functions
# =============================================================================
def create_tables() -> None:
    """
    Create all database tables that do not exist yet.

    Only meant for development and CI (AUTO_CREATE_TABLES=true); production
    schemas are managed outside the application.
    """
    # Import models so they register with Base.metadata
    import library_catalog.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables verified")


def check_database(db: Session) -> bool:
    """Return True when the database answers a trivial query."""
    db.execute(text("SELECT 1"))
    return True


SEED_BOOKS = [
    {"titulo": "Clean Code", "num_paginas": 464, "isbn": "978-0132350884", "editora": "Prentice Hall"},
    {"titulo": "Design Patterns", "num_paginas": 395, "isbn": "978-0201633610", "editora": "Addison-Wesley"},
    {"titulo": "Refactoring", "num_paginas": 448, "isbn": "978-0134757599", "editora": "Addison-Wesley"},
]


def seed_if_empty(db: Session) -> int:
    """
    Insert the demo catalog when the books table is empty.

    Returns:
        Number of books inserted (0 when the catalog already had data)
    """
    from library_catalog.models import Book

    count = db.execute(select(func.count()).select_from(Book)).scalar() or 0
    if count > 0:
        return 0

    db.add_all([Book(**data) for data in SEED_BOOKS])
    db.commit()
    logger.info(f"Seeded {len(SEED_BOOKS)} demo books")
    return len(SEED_BOOKS)
