"""
AI Summary Service

Generates short book summaries.

When OPENAI_API_KEY is configured the OpenAI chat completions API is called
with httpx; otherwise, or when the call fails, a deterministic summary built
from the title and description is returned so the feature keeps working
offline.
"""

import logging

import httpx

from library_catalog.config import get_settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an assistant that summarizes books in 3 to 5 clear, concise sentences."

DEFAULT_FALLBACK = "Summary unavailable at the moment."


def fallback_summary(title: str | None, description: str | None) -> str:
    """Deterministic summary used without an API key or after a failure."""
    safe_title = title or "the book"
    parts = [
        f"This is a brief summary of {safe_title}.",
        f"Key notes: {description[:200]}..." if description else "The book explores themes central to its readers.",
        "Key points are highlighted for quick reading and immediate context.",
    ]
    return " ".join(parts)


def describe_book(editora: str | None, num_paginas: int | None) -> str:
    """Description handed to the generator for a catalog book."""
    if not editora:
        return ""
    return f"Publisher: {editora}. Pages: {num_paginas}."


async def generate_book_summary(title: str | None, description: str | None) -> str:
    """
    Summarize a book in a few sentences.

    Args:
        title: Book title
        description: Free-form description (may be empty)

    Returns:
        Summary text; never raises for upstream errors
    """
    settings = get_settings()
    if not settings.openai_api_key:
        return fallback_summary(title, description)

    payload = {
        "model": settings.openai_model,
        "temperature": 0.3,
        "max_tokens": 240,
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Summarize the book in 3 to 5 sentences.\n"
                    f"Title: {title or 'Unknown'}\n"
                    f"Description: {description or 'No description provided.'}"
                ),
            },
        ],
    }

    try:
        async with httpx.AsyncClient(timeout=settings.ai_timeout_seconds) as client:
            response = await client.post(
                f"{settings.openai_base_url.rstrip('/')}/chat/completions",
                headers={"Authorization": f"Bearer {settings.openai_api_key}"},
                json=payload,
            )

        if response.status_code != 200:
            logger.error(f"AI request failed: {response.status_code} {response.text}")
            raise ValueError(f"AI request failed with status {response.status_code}")

        choices = response.json().get("choices") or []
        content = (choices[0].get("message", {}).get("content") or "").strip() if choices else ""
        if not content:
            raise ValueError("Empty AI response")
        return content

    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Falling back to heuristic summary: {e}")
        return fallback_summary(title, description) or DEFAULT_FALLBACK
