"""
pytest Fixtures for Library Catalog API Tests

Shared fixtures used across all test files.

FIXTURE SCOPES:
- session scope for the engine (tables created once)
- function scope for sessions, clients and process-wide state resets

Process-wide components (summary cache, rating rate limiter) are cleared
before every test so tests stay independent.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["AUTH_TOKEN"] = "dev-token"
os.environ["AUTH_USERNAME"] = "admin"
os.environ["AUTH_PASSWORD"] = "admin"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["DISABLE_ANALYTICS"] = "true"
os.environ["REDIS_URL"] = ""
os.environ["OPENAI_API_KEY"] = ""

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from library_catalog.config import get_settings
from library_catalog.database import Base, get_db
from library_catalog.dependencies import get_rating_rate_limiter
from library_catalog.main import app
from library_catalog.models import Book, BookRating, ModerationStatus
from library_catalog.services.cache import MemoryCache, get_cache
from library_catalog.services.metrics import MetricsEmitter
from library_catalog.services.ratings import RatingService
from library_catalog.services.security import create_access_token

# =============================================================================
# DATABASE FIXTURES
# =============================================================================
# SQLite in-memory keeps the suite self-contained. Some PostgreSQL
# behaviour (timezone-aware timestamps, ON DELETE CASCADE) differs; the code
# under test does not rely on either.

@pytest.fixture(scope="session")
def engine():
    """
    Create a SQLite in-memory database engine.

    StaticPool keeps the single connection alive for the whole session;
    without it the in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(engine) -> Generator[Session, None, None]:
    """
    Database session for one test.

    Commits are real (the rating service commits and rolls back on its
    own), so every table is emptied afterwards instead of rolling back an
    outer transaction.
    """
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestSessionLocal()

    yield session

    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(autouse=True)
def reset_process_state() -> Generator[None, None, None]:
    """Empty the summary cache and the rating rate limiter around each test."""
    get_cache().clear()
    get_rating_rate_limiter().reset()
    yield
    get_cache().clear()
    get_rating_rate_limiter().reset()
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Test client bound to the test database.

    get_db is overridden so requests share the test session.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# AUTH FIXTURES
# =============================================================================

@pytest.fixture
def auth_headers() -> dict[str, str]:
    """Static admin token."""
    return {"Authorization": "Bearer dev-token"}


@pytest.fixture
def jwt_headers() -> Callable[[str], dict[str, str]]:
    """Factory for bearer headers carrying a JWT for a username."""

    def make(username: str) -> dict[str, str]:
        token = create_access_token(username, secret=get_settings().jwt_secret)
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest.fixture
def override_settings() -> Callable[..., None]:
    """Serve a modified copy of the settings to request dependencies."""

    def apply(**changes) -> None:
        patched = get_settings().model_copy(update=changes)
        app.dependency_overrides[get_settings] = lambda: patched

    return apply


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def sample_book(db_session: Session) -> Book:
    """Create a sample book for testing."""
    book = Book(
        titulo="Clean Code",
        num_paginas=464,
        isbn="978-0132350884",
        editora="Prentice Hall",
    )
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book


@pytest.fixture
def multiple_books(db_session: Session) -> list[Book]:
    """Create multiple books for pagination and filter testing."""
    books = []
    for i in range(15):
        book = Book(
            titulo=f"Test Book {i + 1}",
            num_paginas=100 + i * 10,
            isbn=f"isbn-{i:03d}",
            editora="Addison-Wesley" if i % 3 == 0 else "O'Reilly",
        )
        books.append(book)
        db_session.add(book)

    db_session.commit()
    for book in books:
        db_session.refresh(book)

    return books


@pytest.fixture
def add_rating(db_session: Session) -> Callable[..., BookRating]:
    """Insert a rating row directly, bypassing the service."""

    def add(
        book_id: int,
        rating: int,
        *,
        user_id: int | None = None,
        ip_fingerprint: str | None = None,
        status: ModerationStatus = ModerationStatus.APPROVED,
    ) -> BookRating:
        row = BookRating(
            book_id=book_id,
            user_id=user_id,
            ip_fingerprint=ip_fingerprint,
            rating=rating,
            moderation_status=status.value,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row

    return add


# =============================================================================
# SERVICE FIXTURES
# =============================================================================

@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def rating_service(db_session: Session, memory_cache: MemoryCache) -> RatingService:
    """Rating service with its own cache and muted metrics."""
    return RatingService(
        db=db_session,
        cache=memory_cache,
        metrics=MetricsEmitter(enabled=False),
        settings=get_settings(),
    )
