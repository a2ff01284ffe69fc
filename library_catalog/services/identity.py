"""
Identity Resolution

Turns the Authorization header of a request into a rater identity.

Resolution order:
1. No "Bearer <token>" header -> anonymous (None)
2. Token equals the static AUTH_TOKEN -> the configured admin username
3. JWT_SECRET configured and the token verifies -> the token subject
4. Anything else -> anonymous (None)

Anonymous callers are not rejected here. The rating endpoints fall back to
the client-supplied guest fingerprint, so unauthenticated rating is a
supported path.

Ratings are keyed by a pseudo user id derived from the subject with a
one-way hash, so the same username always maps to the same id without a
users-table lookup.
"""

import hashlib
import logging
from dataclasses import dataclass

from library_catalog.services.security import decode_token

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "
MAX_USER_ID = 2_000_000_000


@dataclass(frozen=True)
class Identity:
    """An authenticated rater."""

    user_id: int
    username: str


def hash_user_id(subject: str | None) -> int:
    """
    Derive a stable positive integer id from a subject.

    Uses the first four bytes of the SHA-1 digest, folded into
    [1, MAX_USER_ID). Collisions are possible and tolerated.

    Example:
        >>> hash_user_id("admin") == hash_user_id("admin")
        True
    """
    base = subject or "user"
    digest = hashlib.sha1(base.encode("utf-8")).digest()
    number = int.from_bytes(digest[:4], "big")
    return max(1, number % MAX_USER_ID)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token of a "Bearer <token>" header, or None."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


class IdentityResolver:
    """
    Resolve bearer credentials to identities.

    Args:
        auth_token: Static administrative token (empty disables it)
        auth_username: Username the static token stands for
        jwt_secret: HS256 secret for signed tokens (empty disables JWT)
    """

    def __init__(self, auth_token: str, auth_username: str, jwt_secret: str) -> None:
        self.auth_token = auth_token
        self.auth_username = auth_username or "token-user"
        self.jwt_secret = jwt_secret

    @property
    def enabled(self) -> bool:
        """False when no credential type is configured at all."""
        return bool(self.auth_token or self.jwt_secret)

    def resolve(self, authorization: str | None) -> Identity | None:
        """
        Resolve an Authorization header value.

        Returns:
            Identity for a valid credential, None for anonymous callers
        """
        token = extract_bearer_token(authorization)
        if token is None:
            return None

        if self.auth_token and token == self.auth_token:
            return Identity(
                user_id=hash_user_id(self.auth_username),
                username=self.auth_username,
            )

        if self.jwt_secret:
            payload = decode_token(token, self.jwt_secret)
            if payload is None:
                return None
            subject = payload.get("sub") or payload.get("id") or "user"
            subject = str(subject)
            return Identity(user_id=hash_user_id(subject), username=subject)

        return None
