"""
Ratings Router

Rating endpoints nested under a book:

    POST /api/books/{book_id}/ratings          submit (201)
    PUT  /api/books/{book_id}/ratings          update, falls back to submit (200)
    GET  /api/books/{book_id}/ratings          approved ratings, paginated
    GET  /api/books/{book_id}/ratings/summary  cached aggregate

Every route first resolves the book (404 outside test mode) and then passes
the per-IP rating rate limiter. Authenticated callers rate as themselves;
everyone else must send ip_fingerprint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from library_catalog.dependencies import (
    RatingIdentity,
    RatingServiceDep,
    enforce_rating_rate_limit,
    get_rated_book,
)
from library_catalog.schemas import (
    RatingListResponse,
    RatingPayload,
    RatingResponse,
    RatingSummaryResponse,
    RatingWriteResponse,
)

router = APIRouter(
    prefix="/api/books/{book_id}/ratings",
    tags=["Ratings"],
    dependencies=[Depends(get_rated_book), Depends(enforce_rating_rate_limit)],
    responses={
        400: {"description": "Invalid rating or missing identity"},
        404: {"description": "Book not found"},
        429: {"description": "Rate limit or guest cooldown"},
    },
)


@router.post(
    "",
    response_model=RatingWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Rate a book",
)
def submit_rating(
    book_id: int,
    payload: RatingPayload,
    identity: RatingIdentity,
    service: RatingServiceDep,
) -> RatingWriteResponse:
    """
    Create or replace the caller's rating.

    Reviews containing links, script tags or spam are stored as `pending`
    and stay hidden until approved; the message tells the caller which
    outcome applied.
    """
    result = service.submit(
        book_id,
        identity,
        payload.ip_fingerprint,
        payload.rating,
        payload.review,
    )
    return RatingWriteResponse(
        data=RatingResponse.model_validate(result.rating),
        message=result.message,
    )


@router.put(
    "",
    response_model=RatingWriteResponse,
    summary="Update a rating",
)
def update_rating(
    book_id: int,
    payload: RatingPayload,
    identity: RatingIdentity,
    service: RatingServiceDep,
) -> RatingWriteResponse:
    """Update the caller's rating, creating it when there is none yet."""
    result = service.update(
        book_id,
        identity,
        payload.ip_fingerprint,
        payload.rating,
        payload.review,
    )
    return RatingWriteResponse(
        data=RatingResponse.model_validate(result.rating),
        message=result.message,
    )


@router.get(
    "",
    response_model=RatingListResponse,
    summary="List approved ratings",
)
def list_ratings(
    book_id: int,
    service: RatingServiceDep,
    page: Annotated[str | None, Query(description="Page number (invalid or below 1 becomes 1)")] = None,
    page_size: Annotated[
        str | None,
        Query(alias="pageSize", description="Items per page, clamped to 1-50 (invalid becomes 10)"),
    ] = None,
) -> RatingListResponse:
    """Approved ratings, most recently updated first."""
    items, pagination = service.list_approved(book_id, page, page_size)
    return RatingListResponse(
        data=[RatingResponse.model_validate(item) for item in items],
        pagination=pagination,
    )


@router.get(
    "/summary",
    response_model=RatingSummaryResponse,
    summary="Rating summary",
)
def get_rating_summary(book_id: int, service: RatingServiceDep) -> RatingSummaryResponse:
    """Average, total and per-score counts of approved ratings."""
    return RatingSummaryResponse(data=service.get_summary(book_id))
