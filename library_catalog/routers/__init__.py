"""
API Routers Package

Router Structure:
- auth.py: /auth/* endpoints (registration, login, current user)
- books.py: /livros/* CRUD and /api/books/{id}/ai-summary
- ratings.py: /api/books/{book_id}/ratings/* endpoints

Each router is imported and registered in main.py.
"""

from library_catalog.routers.auth import router as auth_router
from library_catalog.routers.books import ai_router
from library_catalog.routers.books import router as books_router
from library_catalog.routers.ratings import router as ratings_router

__all__ = [
    "auth_router",
    "books_router",
    "ai_router",
    "ratings_router",
]
