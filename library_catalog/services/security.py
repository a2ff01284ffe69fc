"""
Security Service

Handles password hashing and JWT token operations.

Security Features:
==================
1. Password hashing with bcrypt (passlib)
2. HS256 JWT access tokens (python-jose) whose subject is the username
3. Secure password verification

Usage:
    from library_catalog.services.security import hash_password, verify_password

    hashed = hash_password("segredo123")
    is_valid = verify_password("segredo123", hashed)
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from library_catalog.config import get_settings

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------
# Password Hashing Configuration
# -------------------------------------------------------------------------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Example:
        >>> hashed = hash_password("segredo123")
        >>> hashed.startswith("$2b$")
        True
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a hashed password.

    Uses constant-time comparison to prevent timing attacks.
    """
    return pwd_context.verify(plain_password, hashed_password)


# -------------------------------------------------------------------------
# JWT Token Configuration
# -------------------------------------------------------------------------
ALGORITHM = "HS256"


def create_access_token(
    subject: str,
    expires_delta: timedelta | None = None,
    secret: str | None = None,
) -> str:
    """
    Create a JWT access token for a username.

    Args:
        subject: Username stored in the "sub" claim
        expires_delta: Optional custom expiration time
        secret: Signing secret (defaults to JWT_SECRET)

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token("maria")
        >>> token.count(".") == 2  # JWT format: header.payload.signature
        True
    """
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expires_minutes)

    to_encode = {
        "sub": subject,
        "exp": datetime.now(UTC) + expires_delta,
        "type": "access",
    }

    return jwt.encode(
        to_encode,
        secret or settings.jwt_secret,
        algorithm=ALGORITHM,
    )


def decode_token(token: str, secret: str | None = None) -> dict | None:
    """
    Decode and validate a JWT token.

    Args:
        token: The JWT token string
        secret: Verification secret (defaults to JWT_SECRET)

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jwt.decode(
            token,
            secret or get_settings().jwt_secret,
            algorithms=[ALGORITHM],
        )
    except JWTError as e:
        logger.debug(f"JWT decode error: {e}")
        return None
