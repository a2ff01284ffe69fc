"""
Pydantic Schemas Package

Request/response validation for the API. Responses use the envelopes the
front-end expects: `{data}`, `{data, message}` or `{data, pagination}`.

Schema Naming Convention:
- XxxCreate / XxxPayload: Request bodies
- XxxUpdate: Partial updates (all fields optional)
- XxxResponse: Returned data
"""

from library_catalog.schemas.book import (
    AISummaryData,
    AISummaryResponse,
    BookBase,
    BookCreate,
    BookDataResponse,
    BookListResponse,
    BookResponse,
    BookUpdate,
    BookWriteResponse,
    MessageResponse,
)
from library_catalog.schemas.rating import (
    PaginationMeta,
    RatingListResponse,
    RatingPayload,
    RatingResponse,
    RatingSummary,
    RatingSummaryResponse,
    RatingWriteResponse,
)
from library_catalog.schemas.user import (
    LoginRequest,
    MeData,
    MeResponse,
    TokenData,
    TokenResponse,
    UserCreate,
)

__all__ = [
    # Book schemas
    "BookBase",
    "BookCreate",
    "BookUpdate",
    "BookResponse",
    "BookDataResponse",
    "BookWriteResponse",
    "BookListResponse",
    "MessageResponse",
    "AISummaryData",
    "AISummaryResponse",
    # Rating schemas
    "RatingPayload",
    "RatingResponse",
    "RatingWriteResponse",
    "RatingSummary",
    "RatingSummaryResponse",
    "PaginationMeta",
    "RatingListResponse",
    # Auth schemas
    "UserCreate",
    "LoginRequest",
    "TokenData",
    "TokenResponse",
    "MeData",
    "MeResponse",
]
