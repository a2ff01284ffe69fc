"""
Authentication Router

Handles user authentication endpoints:
- Registration (username/password -> JWT)
- Login (username/password -> JWT)
- Get current user (from bearer credential)

Security:
=========
- Passwords are hashed with bcrypt before storage
- Plain text passwords are never logged or stored
- Tokens carry the username as their subject; ratings made with them are
  keyed by a hash of that username
- The environment admin (AUTH_USERNAME/AUTH_PASSWORD) can log in outside
  production, and in production only with ENABLE_ENV_ADMIN=true
"""

import logging

from fastapi import APIRouter, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from library_catalog.config import Settings, is_env_admin_enabled
from library_catalog.dependencies import CurrentIdentity, DbSession, SettingsDep
from library_catalog.exceptions import AuthenticationError, CatalogError, ConflictError, ForbiddenError
from library_catalog.models import User
from library_catalog.schemas import LoginRequest, MeData, MeResponse, TokenData, TokenResponse, UserCreate
from library_catalog.services.rate_limiter import AUTH_LOGIN_LIMIT, AUTH_REGISTER_LIMIT, limiter
from library_catalog.services.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        400: {"description": "Bad request"},
        401: {"description": "Unauthorized"},
        409: {"description": "Conflict (username already exists)"},
    },
)


def _issue_token(settings: Settings, username: str) -> str:
    if not settings.jwt_secret:
        raise CatalogError("JWT is not configured")
    return create_access_token(username, secret=settings.jwt_secret)


# -------------------------------------------------------------------------
# Registration Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
@limiter.limit(AUTH_REGISTER_LIMIT)
def register(
    request: Request,
    user_data: UserCreate,
    db: DbSession,
    settings: SettingsDep,
) -> TokenResponse:
    """
    Register a new user and log them in.

    1. Rejects the request when DISABLE_REGISTRATION is set
    2. Hashes the password with bcrypt
    3. Creates the user (409 on a taken username)
    4. Returns a JWT for the new account
    """
    if settings.disable_registration:
        raise ForbiddenError("Registration is disabled")

    user = User(
        username=user_data.username,
        password_hash=hash_password(user_data.password),
    )

    try:
        db.add(user)
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Username already exists")

    logger.info(f"New user registered: {user.username}")

    return TokenResponse(
        data=TokenData(token=_issue_token(settings, user.username)),
        message="Registration successful",
    )


# -------------------------------------------------------------------------
# Login Endpoint
# -------------------------------------------------------------------------
@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Login with username and password",
)
@limiter.limit(AUTH_LOGIN_LIMIT)
def login(
    request: Request,
    credentials: LoginRequest,
    db: DbSession,
    settings: SettingsDep,
) -> TokenResponse:
    """
    Authenticate and return a JWT.

    The environment admin is checked first (when enabled), then registered
    users by bcrypt hash.
    """
    username = credentials.username
    if not settings.jwt_secret:
        raise CatalogError("JWT is not configured")

    is_env_admin = (
        is_env_admin_enabled(settings)
        and username == settings.auth_username
        and credentials.password == settings.auth_password
    )

    if not is_env_admin:
        stmt = select(User).where(User.username == username)
        user = db.execute(stmt).scalar_one_or_none()

        if user is None or not verify_password(credentials.password, user.password_hash):
            logger.warning(f"Login failed for {username}")
            raise AuthenticationError(INVALID_CREDENTIALS)

    logger.info(f"User logged in: {username}")

    return TokenResponse(
        data=TokenData(token=_issue_token(settings, username)),
        message="Login successful",
    )


# -------------------------------------------------------------------------
# Current User Endpoint
# -------------------------------------------------------------------------
@router.get(
    "/me",
    response_model=MeResponse,
    summary="Get current user",
)
def get_me(identity: CurrentIdentity) -> MeResponse:
    """Username behind the bearer credential."""
    username = identity.username if identity else "token-user"
    return MeResponse(data=MeData(username=username))
