"""
Book Pydantic Schemas

Handles:
- Trimmed, non-empty text fields (titulo, isbn, editora)
- Positive page counts (numeric strings are coerced)
- Partial updates
- Pagination for list responses
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from library_catalog.schemas.rating import PaginationMeta

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=500)]
Isbn = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)]
Publisher = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


class BookBase(BaseModel):
    """
    Base schema with shared book fields.

    All text fields are trimmed and must not be empty.
    """

    titulo: Title = Field(
        ...,
        description="Book title",
        examples=["Clean Code"],
    )

    num_paginas: int = Field(
        ...,
        gt=0,
        description="Number of pages",
        examples=[464],
    )

    isbn: Isbn = Field(
        ...,
        description="ISBN",
        examples=["978-0132350884"],
    )

    editora: Publisher = Field(
        ...,
        description="Publisher",
        examples=["Prentice Hall"],
    )


class BookCreate(BookBase):
    """
    Schema for creating a new book.

    Example request body:
    {
        "titulo": "Clean Code",
        "num_paginas": 464,
        "isbn": "978-0132350884",
        "editora": "Prentice Hall"
    }
    """


class BookUpdate(BaseModel):
    """
    Schema for updating an existing book.

    All fields are optional; at least one must be sent.
    """

    titulo: Title | None = None
    num_paginas: int | None = Field(default=None, gt=0)
    isbn: Isbn | None = None
    editora: Publisher | None = None


class BookResponse(BookBase):
    """Schema for book responses, including the stored AI summary."""

    id: int = Field(..., description="Unique identifier")
    ai_summary: str | None = Field(default=None, description="Generated summary")
    ai_summary_updated_at: datetime | None = None
    created_at: datetime = Field(..., description="When the book was created")
    updated_at: datetime = Field(..., description="When the book was last updated")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 1,
                "titulo": "Clean Code",
                "num_paginas": 464,
                "isbn": "978-0132350884",
                "editora": "Prentice Hall",
                "ai_summary": None,
                "ai_summary_updated_at": None,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z",
            }
        },
    )


class BookDataResponse(BaseModel):
    data: BookResponse


class BookWriteResponse(BaseModel):
    """Envelope for create/update results."""

    data: BookResponse
    message: str


class BookListResponse(BaseModel):
    """
    Paginated book list.

    Shares the pagination block with the rating list so clients read both
    the same way.
    """

    data: list[BookResponse] = Field(..., description="Books on this page")
    pagination: PaginationMeta


class MessageResponse(BaseModel):
    message: str


class AISummaryData(BaseModel):
    ai_summary: str | None = None
    ai_summary_updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AISummaryResponse(BaseModel):
    data: AISummaryData
    message: str
