"""
Library Catalog API Application Package

Book catalog with ratings, moderation, cached rating summaries and AI
generated book summaries.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy database connection and session management
- exceptions.py: Domain errors and the HTTP status they map to
- main.py: FastAPI application factory and configuration
- dependencies.py: Dependency injection functions
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (ratings, caching, rate limiting, identity)
"""

__version__ = "0.1.0"
