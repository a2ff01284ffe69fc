"""
Books Router

CRUD endpoints for the catalog (`/livros`) plus AI summary generation.

- Listing and reading are public
- Create, update, delete and AI summaries require a bearer credential
- Duplicate ISBNs are rejected with 409
"""

import asyncio
import logging
import math
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from library_catalog.dependencies import CacheDep, CurrentIdentity, DbSession, SettingsDep
from library_catalog.exceptions import ConflictError, NotFoundError, UpstreamError, ValidationError
from library_catalog.models import Book
from library_catalog.schemas import (
    AISummaryData,
    AISummaryResponse,
    BookCreate,
    BookDataResponse,
    BookListResponse,
    BookResponse,
    BookUpdate,
    BookWriteResponse,
    MessageResponse,
    PaginationMeta,
)
from library_catalog.services import ai_summary
from library_catalog.services.cache import rating_summary_key
from library_catalog.services.rate_limiter import AI_SUMMARY_LIMIT, limiter
from library_catalog.services.ratings import clamp_pagination

logger = logging.getLogger(__name__)

DUPLICATE_BOOK_MESSAGE = "A book with this data already exists (e.g. duplicate ISBN)"

SORT_COLUMNS = {
    "created_at": Book.created_at,
    "titulo": Book.titulo,
    "editora": Book.editora,
    "num_paginas": Book.num_paginas,
}

router = APIRouter(
    prefix="/livros",
    tags=["Books"],
    responses={
        404: {"description": "Book not found"},
    },
)

ai_router = APIRouter(
    prefix="/api/books",
    tags=["AI Summary"],
)


# =============================================================================
# Helper Functions
# =============================================================================
def get_book_or_404(db: DbSession, book_id: int) -> Book:
    """
    Get a book by ID.

    Raises:
        NotFoundError: 404 if book not found
    """
    book = db.get(Book, book_id)
    if book is None:
        raise NotFoundError("Book not found")
    return book


def apply_book_filters(stmt, q: str, isbn: str, editora: str):
    """
    Apply the list filters to a book query.

    - q: title or publisher contains q (case-insensitive)
    - isbn: exact match
    - editora: publisher contains editora (case-insensitive)
    """
    if q:
        term = f"%{q}%"
        stmt = stmt.where(or_(Book.titulo.ilike(term), Book.editora.ilike(term)))
    if isbn:
        stmt = stmt.where(Book.isbn == isbn)
    if editora:
        stmt = stmt.where(Book.editora.ilike(f"%{editora}%"))
    return stmt


# =============================================================================
# CRUD Endpoints
# =============================================================================
@router.get(
    "",
    response_model=BookListResponse,
    summary="List books",
    description="Paginated list of books with optional search, filters and sorting.",
)
def list_books(
    db: DbSession,
    page: Annotated[str | None, Query(description="Page number")] = None,
    page_size: Annotated[str | None, Query(alias="pageSize", description="Items per page (1-50)")] = None,
    q: Annotated[str, Query(description="Search title or publisher")] = "",
    isbn: Annotated[str, Query(description="Exact ISBN")] = "",
    editora: Annotated[str, Query(description="Publisher (partial match)")] = "",
    sort: Annotated[str, Query(description="created_at, titulo, editora or num_paginas")] = "created_at",
    order: Annotated[str, Query(description="asc or desc")] = "desc",
) -> BookListResponse:
    """
    List books.

    Unknown sort columns fall back to created_at and anything but "asc"
    sorts descending.
    """
    page, page_size = clamp_pagination(page, page_size)
    base_stmt = apply_book_filters(select(Book), q.strip(), isbn.strip(), editora.strip())

    count_stmt = select(func.count()).select_from(base_stmt.subquery())
    total = db.execute(count_stmt).scalar() or 0

    column = SORT_COLUMNS.get(sort.strip(), Book.created_at)
    ordering = column.asc() if order.strip().lower() == "asc" else column.desc()

    stmt = (
        base_stmt
        .order_by(ordering, Book.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    books = db.execute(stmt).scalars().all()

    return BookListResponse(
        data=[BookResponse.model_validate(book) for book in books],
        pagination=PaginationMeta(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=max(math.ceil(total / page_size), 1),
        ),
    )


@router.get(
    "/{book_id}",
    response_model=BookDataResponse,
    summary="Get a book by ID",
)
def get_book(book_id: int, db: DbSession) -> BookDataResponse:
    return BookDataResponse(data=BookResponse.model_validate(get_book_or_404(db, book_id)))


@router.post(
    "",
    response_model=BookWriteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new book",
)
def create_book(
    book_data: BookCreate,
    db: DbSession,
    _: CurrentIdentity,
) -> BookWriteResponse:
    """
    Create a new book.

    Raises:
        ConflictError: 409 if the ISBN is already in the catalog
    """
    book = Book(**book_data.model_dump())

    try:
        db.add(book)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_BOOK_MESSAGE)

    db.refresh(book)
    logger.info(f"Created book {book.id} ({book.isbn})")
    return BookWriteResponse(data=BookResponse.model_validate(book), message="Book created")


@router.put(
    "/{book_id}",
    response_model=BookWriteResponse,
    summary="Update a book",
)
def update_book(
    book_id: int,
    book_data: BookUpdate,
    db: DbSession,
    _: CurrentIdentity,
) -> BookWriteResponse:
    """
    Partially update a book; only the fields sent are changed.

    Raises:
        ValidationError: 400 if no field was sent
        NotFoundError: 404 if book not found
        ConflictError: 409 if the new ISBN is taken
    """
    update_data = book_data.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise ValidationError("No fields to update")

    book = get_book_or_404(db, book_id)
    for field, value in update_data.items():
        setattr(book, field, value)
    book.updated_at = datetime.now(UTC)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(DUPLICATE_BOOK_MESSAGE)

    db.refresh(book)
    return BookWriteResponse(data=BookResponse.model_validate(book), message="Book updated")


@router.delete(
    "/{book_id}",
    response_model=MessageResponse,
    summary="Delete a book",
)
def delete_book(
    book_id: int,
    db: DbSession,
    cache: CacheDep,
    _: CurrentIdentity,
) -> MessageResponse:
    """Delete a book together with its ratings."""
    book = get_book_or_404(db, book_id)
    db.delete(book)
    db.commit()
    cache.delete(rating_summary_key(book_id))
    logger.info(f"Deleted book {book_id}")
    return MessageResponse(message="Book deleted")


# =============================================================================
# AI Summary
# =============================================================================
@ai_router.post(
    "/{book_id}/ai-summary",
    response_model=AISummaryResponse,
    summary="Generate an AI summary",
    description="Returns the stored summary unless it is missing or force=true.",
)
@limiter.limit(AI_SUMMARY_LIMIT)
async def generate_ai_summary(
    request: Request,
    book_id: int,
    db: DbSession,
    settings: SettingsDep,
    _: CurrentIdentity,
    force: Annotated[str, Query(description="Regenerate when \"true\" (case-insensitive)")] = "",
) -> AISummaryResponse:
    """
    Generate (or regenerate with force=true) the summary of a book.

    The generator is raced against AI_TIMEOUT_SECONDS.

    Raises:
        NotFoundError: 404 if book not found
        UpstreamError: 502 if generation failed or timed out
    """
    book = get_book_or_404(db, book_id)

    if book.ai_summary and force.strip().lower() != "true":
        return AISummaryResponse(
            data=AISummaryData.model_validate(book),
            message="Summary already exists. Use force=true to regenerate.",
        )

    try:
        summary = await asyncio.wait_for(
            ai_summary.generate_book_summary(
                book.titulo,
                ai_summary.describe_book(book.editora, book.num_paginas),
            ),
            timeout=settings.ai_timeout_seconds,
        )
    except Exception as e:
        logger.warning(f"AI summary generation failed for book {book_id}: {e}")
        raise UpstreamError("Could not generate the summary at the moment")

    now = datetime.now(UTC)
    book.ai_summary = summary
    book.ai_summary_updated_at = now
    book.updated_at = now
    db.commit()
    db.refresh(book)

    return AISummaryResponse(data=AISummaryData.model_validate(book), message="Summary generated")
