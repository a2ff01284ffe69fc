"""
Rating Pydantic Schemas

Schemas:
- RatingPayload: body of POST/PUT /api/books/{book_id}/ratings
- RatingResponse: a stored rating
- RatingWriteResponse: {data, message} envelope returned by POST/PUT
- RatingSummary / RatingSummaryResponse: aggregated approved ratings
- PaginationMeta / RatingListResponse: paginated approved ratings

Validation Rules:
- rating: integer 1-5 (numeric strings are coerced)
- review: trimmed, at most 2000 characters
- ip_fingerprint: trimmed, at most 255 characters
"""

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from library_catalog.models.rating import ModerationStatus

ReviewText = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]
Fingerprint = Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)]


class RatingPayload(BaseModel):
    """
    Body of a rating submission.

    Authenticated callers may omit ip_fingerprint; guests must send it.

    Example request body:
    {
        "rating": 4,
        "review": "Great pacing",
        "ip_fingerprint": "guest-3f9c"
    }
    """

    rating: int = Field(
        ...,
        ge=1,
        le=5,
        description="Rating from 1 to 5 stars",
        examples=[4, 5],
    )
    review: ReviewText | None = Field(
        default=None,
        description="Optional review text",
        examples=["Excelente"],
    )
    ip_fingerprint: Fingerprint | None = Field(
        default=None,
        description="Guest identifier, required for anonymous ratings",
        examples=["guest-3f9c"],
    )


class RatingResponse(BaseModel):
    """A stored rating as returned by the API."""

    id: int
    book_id: int
    user_id: int | None = None
    rating: int
    review: str | None = None
    ip_fingerprint: str | None = None
    moderation_status: ModerationStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RatingWriteResponse(BaseModel):
    """Envelope for POST/PUT results."""

    data: RatingResponse
    message: str


class RatingSummary(BaseModel):
    """
    Aggregated approved ratings of one book.

    avg is rounded to one decimal (0 when there are no ratings) and counts
    always contains the keys 1..5.
    """

    avg: float = Field(..., ge=0, le=5, description="Average rating, one decimal")
    total: int = Field(..., ge=0, description="Number of approved ratings")
    counts: dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0},
        description="Count of each rating (1-5)",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "avg": 4.5,
                "total": 2,
                "counts": {"1": 0, "2": 0, "3": 0, "4": 1, "5": 1},
            }
        },
    )


class RatingSummaryResponse(BaseModel):
    data: RatingSummary


class PaginationMeta(BaseModel):
    """Pagination metadata; total_pages is at least 1 even when empty."""

    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1, le=50, serialization_alias="pageSize")
    total: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=1, serialization_alias="totalPages")


class RatingListResponse(BaseModel):
    data: list[RatingResponse]
    pagination: PaginationMeta
