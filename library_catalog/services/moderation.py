"""
Review Moderation

Deterministic screen applied to review text before a rating is stored.

A flagged review does not fail the request: the rating is saved with
moderation status `pending` and stays out of summaries and listings until
someone promotes it to `approved`.
"""

from dataclasses import dataclass

from library_catalog.models.rating import ModerationStatus

BANNED_TOKENS = ("http://", "https://", "<script", "spam")

FLAG_REASON = "Potentially unsafe content"


@dataclass(frozen=True)
class ModerationResult:
    flagged: bool
    reason: str | None = None

    @property
    def status(self) -> ModerationStatus:
        """Moderation status a rating with this result is stored with."""
        return ModerationStatus.PENDING if self.flagged else ModerationStatus.APPROVED


def screen(text: str | None) -> ModerationResult:
    """
    Case-insensitive substring match against BANNED_TOKENS.

    Example:
        >>> screen("Buy now at https://example.com").flagged
        True
        >>> screen("A lovely read").status
        <ModerationStatus.APPROVED: 'approved'>
    """
    if not text:
        return ModerationResult(flagged=False)

    lowered = text.lower()
    if any(token in lowered for token in BANNED_TOKENS):
        return ModerationResult(flagged=True, reason=FLAG_REASON)
    return ModerationResult(flagged=False)
