"""
Book Model

The central model of the catalog, stored in the `livros` table.

Column names follow the catalog's established schema (Portuguese field
names shared with the front-end): titulo, num_paginas, isbn, editora.

The model also stores the AI-generated summary so that it is generated at
most once per book unless a regeneration is forced.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from library_catalog.database import Base

if TYPE_CHECKING:
    from library_catalog.models.rating import BookRating


class Book(Base):
    """
    Book model representing books in the library.

    Table: livros

    Fields:
    - titulo: Book title (required)
    - num_paginas: Page count (positive)
    - isbn: International Standard Book Number (unique)
    - editora: Publisher
    - ai_summary: Cached generated summary, if any

    Example:
        book = Book(
            titulo="Clean Code",
            num_paginas=464,
            isbn="978-0132350884",
            editora="Prentice Hall",
        )
    """

    __tablename__ = "livros"

    id: Mapped[int] = mapped_column(primary_key=True)

    titulo: Mapped[str] = mapped_column(
        String(500),
        index=True,
        nullable=False,
        comment="Book title"
    )
    num_paginas: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Number of pages in the book"
    )
    isbn: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        index=True,
        nullable=False,
        comment="International Standard Book Number"
    )
    editora: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Publisher"
    )

    # -------------------------------------------------------------------------
    # AI Summary
    # -------------------------------------------------------------------------
    ai_summary: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Generated book summary"
    )
    ai_summary_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    ratings: Mapped[list["BookRating"]] = relationship(
        "BookRating",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("num_paginas > 0", name="ck_livros_num_paginas_positive"),
    )

    def __repr__(self) -> str:
        return f"Book(id={self.id}, titulo='{self.titulo}', isbn='{self.isbn}')"
