"""
Services Package

This package contains business logic services that are:
- Separate from HTTP handling (routers)
- Reusable across different parts of the application
- Easier to test in isolation

Current services:
- ai_summary.py: Book summaries via OpenAI with an offline fallback
- cache.py: Summary cache with Redis and in-memory backends
- identity.py: Bearer credential -> rater identity
- metrics.py: Best-effort analytics events
- moderation.py: Review screening (approved / pending)
- rate_limiter.py: Rating rate limiter and slowapi limits
- ratings.py: Rating ingestion, summaries and listings
- security.py: Password hashing and JWT utilities
"""
