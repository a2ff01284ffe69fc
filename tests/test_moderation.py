"""Tests for review moderation."""

import pytest

from library_catalog.models import ModerationStatus
from library_catalog.services.moderation import FLAG_REASON, screen


@pytest.mark.parametrize(
    "text",
    [
        "see http://example.com",
        "HTTPS://EXAMPLE.COM is great",
        "<SCRIPT>alert(1)</script>",
        "total Spam",
    ],
)
def test_banned_content_flagged(text):
    result = screen(text)

    assert result.flagged
    assert result.reason == FLAG_REASON
    assert result.status == ModerationStatus.PENDING


@pytest.mark.parametrize("text", ["A lovely read", "Excelente", "", None])
def test_clean_content_approved(text):
    result = screen(text)

    assert not result.flagged
    assert result.reason is None
    assert result.status == ModerationStatus.APPROVED
