"""
Application Exceptions

Domain errors raised by the services and routers. Each carries the HTTP
status it maps to; the handlers registered in main.create_app() turn them
into the standard error envelope:

    {"error": {"message": "..."}}

Hierarchy:
- CatalogError (500)
  - ValidationError (400): malformed or out-of-range input, missing identity
  - AuthenticationError (401): missing or invalid bearer credential
  - ForbiddenError (403)
  - NotFoundError (404)
  - ConflictError (409)
  - RateLimitError (429): too many requests from one client
    - CooldownError (429): guest resubmission inside the cooldown window
  - StorageError (500): opaque persistence failure
  - UpstreamError (502): an external collaborator failed or timed out
"""

from fastapi import status


class CatalogError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        """Extra response headers for this error."""
        return None


class ValidationError(CatalogError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(CatalogError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid token"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class ForbiddenError(CatalogError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(CatalogError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A record with these details already exists"


class RateLimitError(CatalogError):
    """Too many requests; retry_after is a hint in whole seconds."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    @property
    def headers(self) -> dict[str, str] | None:
        if self.retry_after is None:
            return None
        return {"Retry-After": str(self.retry_after)}


class CooldownError(RateLimitError):
    default_message = "Only one guest rating per book per cooldown period"


class StorageError(CatalogError):
    default_message = "Internal server error"


class UpstreamError(CatalogError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service unavailable"
