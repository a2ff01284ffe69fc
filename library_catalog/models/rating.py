"""
Book Rating Model

One row per (book, rater). A rater is either an authenticated user
(user_id, a stable pseudo-id derived from the credential subject) or an
anonymous guest identified by a client-supplied fingerprint.

Business Rules:
- Exactly one of user_id / ip_fingerprint is set
- Rating must be 1-5
- At most one row per (book, user) and per (book, fingerprint); the rating
  service updates in place instead of inserting duplicates
- Only `approved` ratings are counted and listed; `pending` ones wait for
  manual moderation
"""

from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_catalog.database import Base


class ModerationStatus(StrEnum):
    """Visibility state of a rating."""

    APPROVED = "approved"
    PENDING = "pending"


class BookRating(Base):
    """
    Rating model for book ratings.

    Attributes:
        id: Primary key
        book_id: Foreign key to livros
        user_id: Pseudo user id (authenticated raters)
        ip_fingerprint: Guest fingerprint (anonymous raters)
        rating: 1-5 star rating
        review: Sanitized review text
        moderation_status: approved | pending
        created_at: When the rating was first submitted
        updated_at: When the rating was last changed
    """

    __tablename__ = "book_ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)

    book_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("livros.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Pseudo user id derived from the token subject",
    )
    ip_fingerprint: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Client-generated guest identifier",
    )

    rating: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Rating from 1-5 stars",
    )
    review: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="HTML-escaped review text",
    )
    moderation_status: Mapped[str] = mapped_column(
        String(16),
        default=ModerationStatus.APPROVED.value,
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    book = relationship("Book", back_populates="ratings")

    __table_args__ = (
        UniqueConstraint("book_id", "user_id", name="uq_book_ratings_book_user"),
        UniqueConstraint("book_id", "ip_fingerprint", name="uq_book_ratings_book_guest"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_book_ratings_rating_range"),
        CheckConstraint(
            "(user_id IS NULL) <> (ip_fingerprint IS NULL)",
            name="ck_book_ratings_single_identity",
        ),
        CheckConstraint(
            "moderation_status IN ('approved', 'pending')",
            name="ck_book_ratings_moderation_status",
        ),
        Index("ix_book_ratings_book_updated", "book_id", "updated_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<BookRating(id={self.id}, book_id={self.book_id}, user_id={self.user_id}, "
            f"rating={self.rating}, status={self.moderation_status})>"
        )
