"""
Ratings Service

Rating ingestion and aggregation for books.

Write path (submit / update):
1. Validate the score (integer 1-5) and sanitize the review
   (trim, <= 2000 characters, HTML-escape)
2. Require an identity: an authenticated user or a guest fingerprint
3. Screen the review; flagged reviews are stored as `pending`
4. Upsert the single row owned by that identity for the book
   (guests are subject to a resubmission cooldown)
5. Commit, then invalidate the cached summary and emit a metric

Read path:
- get_summary() is a read-through cache over an aggregation of approved
  ratings, repopulated with a short TTL
- list_approved() pages through approved ratings, newest first

Concurrent submissions from the same identity are not serialized; the last
writer wins.
"""

import html
import logging
import math
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from library_catalog.config import Settings, get_settings
from library_catalog.exceptions import CooldownError, NotFoundError, StorageError, ValidationError
from library_catalog.models import Book, BookRating, ModerationStatus
from library_catalog.schemas.rating import PaginationMeta, RatingSummary
from library_catalog.services.cache import CacheBackend, rating_summary_key
from library_catalog.services.identity import Identity
from library_catalog.services.metrics import MetricEvent, MetricsEmitter
from library_catalog.services.moderation import screen

logger = logging.getLogger(__name__)

MIN_SCORE = 1
MAX_SCORE = 5
MAX_REVIEW_LENGTH = 2000
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50

MISSING_IDENTITY_MESSAGE = "ip_fingerprint is required for anonymous ratings"

SUBMIT_MESSAGES = {
    ModerationStatus.APPROVED: "Rating recorded",
    ModerationStatus.PENDING: "Rating received and sent for moderation",
}
UPDATE_MESSAGES = {
    ModerationStatus.APPROVED: "Rating updated",
    ModerationStatus.PENDING: "Rating updated and awaiting moderation",
}


@dataclass
class RatingResult:
    """A stored rating plus the outcome message shown to the rater."""

    rating: BookRating
    message: str


@dataclass(frozen=True)
class _Submission:
    score: int
    review: str | None
    status: ModerationStatus


def sanitize_review(review: str | None) -> str | None:
    """
    Trim and HTML-escape a review; blank reviews become None.

    Raises:
        ValidationError: If the trimmed review exceeds MAX_REVIEW_LENGTH
    """
    if review is None:
        return None
    trimmed = review.strip()
    if len(trimmed) > MAX_REVIEW_LENGTH:
        raise ValidationError(f"review must be at most {MAX_REVIEW_LENGTH} characters")
    return html.escape(trimmed, quote=True) or None


def validate_score(score: object) -> int:
    """Return score if it is an integer in [MIN_SCORE, MAX_SCORE]."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise ValidationError("rating must be an integer between 1 and 5")
    if not MIN_SCORE <= score <= MAX_SCORE:
        raise ValidationError("rating must be an integer between 1 and 5")
    return score


def _to_int(value: int | str | None) -> int:
    """Whole part of a numeric query value; 0 for anything unparseable."""
    if value is None:
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def clamp_pagination(page: int | str | None, page_size: int | str | None) -> tuple[int, int]:
    """
    Clamp page to >= 1 and page_size to [1, MAX_PAGE_SIZE].

    Raw query strings are accepted; empty, non-numeric or zero values fall
    back to the defaults and fractions are truncated.

    Example:
        >>> clamp_pagination("abc", "")
        (1, 10)
    """
    page = max(_to_int(page) or 1, 1)
    page_size = min(max(_to_int(page_size) or DEFAULT_PAGE_SIZE, 1), MAX_PAGE_SIZE)
    return page, page_size


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class RatingService:
    """
    Rating engine bound to one database session.

    Args:
        db: Request-scoped SQLAlchemy session
        cache: Summary cache backend
        metrics: Metrics emitter
        settings: Application settings (cooldown, TTL, test mode)
        clock: Returns the current UTC time (injectable for tests)
    """

    def __init__(
        self,
        db: Session,
        cache: CacheBackend,
        metrics: MetricsEmitter,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self.cache = cache
        self.metrics = metrics
        self.settings = settings or get_settings()
        self._clock = clock or (lambda: datetime.now(UTC))

    # -------------------------------------------------------------------------
    # Books
    # -------------------------------------------------------------------------
    def ensure_book(self, book_id: int) -> Book:
        """
        Return the rated book.

        In the test environment a stub book is created for unknown ids so
        rating tests do not need to seed the catalog.

        Raises:
            NotFoundError: If the book does not exist (outside test mode)
        """
        book = self.db.get(Book, book_id)
        if book is not None:
            return book

        if not self.settings.is_test:
            raise NotFoundError("Book not found")

        book = Book(
            id=book_id,
            titulo="Test Book",
            num_paginas=100,
            isbn=f"isbn-test-{book_id}",
            editora="Test Editora",
        )
        with self._storage_guard("create stub book"):
            self.db.add(book)
            self.db.commit()
        logger.debug(f"Created stub book {book_id} for tests")
        return book

    # -------------------------------------------------------------------------
    # Write Path
    # -------------------------------------------------------------------------
    def submit(
        self,
        book_id: int,
        identity: Identity | None,
        guest_fingerprint: str | None,
        score: int,
        review: str | None = None,
    ) -> RatingResult:
        """
        Create or replace the caller's rating of a book.

        Authenticated callers are keyed by user id. Guests are keyed by their
        fingerprint and may only resubmit after the cooldown.

        Raises:
            ValidationError: Bad score/review or no identity at all
            CooldownError: Guest resubmitted inside the cooldown window
            StorageError: The database write failed
        """
        submission = self._prepare(identity, guest_fingerprint, score, review)

        if identity is not None:
            row = self._upsert_user_rating(book_id, identity.user_id, submission)
            source = "user"
        else:
            row = self._upsert_guest_rating(book_id, guest_fingerprint, submission)
            source = "guest"

        return self._finish(row, submission, source, SUBMIT_MESSAGES)

    def update(
        self,
        book_id: int,
        identity: Identity | None,
        guest_fingerprint: str | None,
        score: int,
        review: str | None = None,
    ) -> RatingResult:
        """
        Update the caller's rating of a book.

        When the caller has no rating yet this behaves like submit(), so the
        PUT endpoint is idempotent. An existing guest rating is updated in
        place without the cooldown check.
        """
        submission = self._prepare(identity, guest_fingerprint, score, review)

        if identity is not None:
            stmt = select(BookRating).where(
                BookRating.book_id == book_id,
                BookRating.user_id == identity.user_id,
            )
            source = "user-update"
        else:
            stmt = select(BookRating).where(
                BookRating.book_id == book_id,
                BookRating.ip_fingerprint == guest_fingerprint,
            )
            source = "guest-update"

        existing = self.db.execute(stmt.limit(1)).scalar_one_or_none()
        if existing is not None:
            row = self._save(existing, submission)
        elif identity is not None:
            row = self._upsert_user_rating(book_id, identity.user_id, submission)
        else:
            row = self._upsert_guest_rating(book_id, guest_fingerprint, submission)

        return self._finish(row, submission, source, UPDATE_MESSAGES)

    def invalidate_summary(self, book_id: int) -> None:
        """Drop the cached summary of a book."""
        self.cache.delete(rating_summary_key(book_id))

    # -------------------------------------------------------------------------
    # Read Path
    # -------------------------------------------------------------------------
    def get_summary(self, book_id: int) -> RatingSummary:
        """
        Aggregated approved ratings of a book, served from cache when fresh.

        Cache failures only cost a recomputation.
        """
        key = rating_summary_key(book_id)
        cached = self.cache.get(key)
        if cached is not None:
            return RatingSummary.model_validate(cached)

        summary = self.compute_summary(book_id)
        self.cache.set(key, summary.model_dump(mode="json"), ttl=self.settings.summary_cache_ttl)
        return summary

    def compute_summary(self, book_id: int) -> RatingSummary:
        """Aggregate approved ratings straight from the database."""
        stmt = (
            select(BookRating.rating, func.count(BookRating.id))
            .where(
                BookRating.book_id == book_id,
                BookRating.moderation_status == ModerationStatus.APPROVED.value,
            )
            .group_by(BookRating.rating)
        )

        counts = {score: 0 for score in range(MIN_SCORE, MAX_SCORE + 1)}
        for score, count in self.db.execute(stmt).all():
            if score in counts:
                counts[score] = count

        total = sum(counts.values())
        if total == 0:
            return RatingSummary(avg=0, total=0, counts=counts)

        weighted = sum(score * count for score, count in counts.items())
        avg = (Decimal(weighted) / Decimal(total)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        return RatingSummary(avg=float(avg), total=total, counts=counts)

    def list_approved(
        self,
        book_id: int,
        page: int | str | None = 1,
        page_size: int | str | None = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[BookRating], PaginationMeta]:
        """
        Page through approved ratings, most recently updated first.

        Returns:
            (ratings on this page, pagination metadata)
        """
        page, page_size = clamp_pagination(page, page_size)
        approved = (
            BookRating.book_id == book_id,
            BookRating.moderation_status == ModerationStatus.APPROVED.value,
        )

        total = self.db.execute(
            select(func.count()).select_from(BookRating).where(*approved)
        ).scalar() or 0

        stmt = (
            select(BookRating)
            .where(*approved)
            .order_by(BookRating.updated_at.desc(), BookRating.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        items = list(self.db.execute(stmt).scalars().all())

        pagination = PaginationMeta(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=max(math.ceil(total / page_size), 1),
        )
        return items, pagination

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _prepare(
        self,
        identity: Identity | None,
        guest_fingerprint: str | None,
        score: int,
        review: str | None,
    ) -> _Submission:
        score = validate_score(score)
        if identity is None and not guest_fingerprint:
            raise ValidationError(MISSING_IDENTITY_MESSAGE)

        # Screen the raw text so markup is matched before it gets escaped.
        moderation = screen(review.strip() if review else None)
        if moderation.flagged:
            logger.info(f"Review flagged for moderation: {moderation.reason}")

        return _Submission(
            score=score,
            review=sanitize_review(review),
            status=moderation.status,
        )

    def _upsert_user_rating(self, book_id: int, user_id: int, submission: _Submission) -> BookRating:
        stmt = select(BookRating).where(
            BookRating.book_id == book_id,
            BookRating.user_id == user_id,
        ).limit(1)
        row = self.db.execute(stmt).scalar_one_or_none()
        if row is None:
            row = BookRating(book_id=book_id, user_id=user_id)
        return self._save(row, submission)

    def _upsert_guest_rating(self, book_id: int, fingerprint: str, submission: _Submission) -> BookRating:
        stmt = (
            select(BookRating)
            .where(
                BookRating.book_id == book_id,
                BookRating.ip_fingerprint == fingerprint,
            )
            .order_by(BookRating.updated_at.desc())
            .limit(1)
        )
        row = self.db.execute(stmt).scalar_one_or_none()
        if row is None:
            row = BookRating(book_id=book_id, ip_fingerprint=fingerprint)
        else:
            self._enforce_guest_cooldown(row)
        return self._save(row, submission)

    def _enforce_guest_cooldown(self, row: BookRating) -> None:
        cooldown = timedelta(seconds=self.settings.guest_cooldown_seconds)
        elapsed = self._clock() - _as_utc(row.updated_at)
        if elapsed >= cooldown:
            return

        remaining = (cooldown - elapsed).total_seconds()
        hours = max(1, math.ceil(remaining / 3600))
        raise CooldownError(
            f"Wait {hours}h before rating this book again as a guest",
            retry_after=max(1, math.ceil(remaining)),
        )

    def _save(self, row: BookRating, submission: _Submission) -> BookRating:
        row.rating = submission.score
        row.review = submission.review
        row.moderation_status = submission.status.value
        row.updated_at = self._clock()

        with self._storage_guard("save rating"):
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        return row

    def _finish(
        self,
        row: BookRating,
        submission: _Submission,
        source: str,
        messages: dict[ModerationStatus, str],
    ) -> RatingResult:
        # Runs only after the commit succeeded.
        self.invalidate_summary(row.book_id)
        self.metrics.emit(
            MetricEvent.RATING_SUBMITTED,
            book_id=row.book_id,
            rating=submission.score,
            source=source,
        )
        return RatingResult(rating=row, message=messages[submission.status])

    @contextmanager
    def _storage_guard(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise StorageError(str(e)) from e
