"""
SQLAlchemy Models Package

This package contains all database models for the Library Catalog API.

Model Relationships:
- Book <-> BookRating: One-to-Many (a book has many ratings, deleted with it)

Import all models here to:
1. Make them available as: from library_catalog.models import Book
2. Ensure Base.metadata knows every table before create_all()
"""

from library_catalog.models.book import Book
from library_catalog.models.rating import BookRating, ModerationStatus
from library_catalog.models.user import User

__all__ = [
    "Book",
    "BookRating",
    "ModerationStatus",
    "User",
]
