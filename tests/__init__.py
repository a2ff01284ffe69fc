"""
Test Suite for the Library Catalog API

Test Organization:
- conftest.py: Shared fixtures (test database, client, sample data)
- test_books.py, test_auth.py, test_ai_summary.py: catalog and account endpoints
- test_ratings.py: rating endpoints under /api/books/{book_id}/ratings
- test_rating_service.py: the rating engine without HTTP
- test_cache.py, test_identity.py, test_rate_limiter.py, test_moderation.py,
  test_metrics.py: supporting services

Running Tests:
    # Run all tests
    pytest

    # Run specific file
    pytest tests/test_ratings.py

    # Run with verbose output
    pytest -v
"""
