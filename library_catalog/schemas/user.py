"""
User / Auth Pydantic Schemas

Schemas:
- UserCreate: Registration data (username, password)
- LoginRequest: Login credentials
- TokenResponse: {data: {token}, message}
- MeResponse: {data: {username}}
"""

from typing import Annotated

from pydantic import BaseModel, Field, StringConstraints

Username = Annotated[str, StringConstraints(strip_whitespace=True)]


class UserCreate(BaseModel):
    """
    Schema for user registration.

    Example request body:
    {
        "username": "reader",
        "password": "secret123"
    }
    """

    username: Username = Field(
        ...,
        min_length=3,
        max_length=50,
        description="Unique username (3-50 characters)",
        examples=["reader"],
    )

    password: str = Field(
        ...,
        min_length=6,
        max_length=200,
        description="Password (6-200 characters)",
        examples=["secret123"],
    )


class LoginRequest(BaseModel):
    """Schema for login request."""

    username: Username = Field(..., min_length=1, examples=["reader"])
    password: str = Field(..., min_length=1, examples=["secret123"])


class TokenData(BaseModel):
    token: str


class TokenResponse(BaseModel):
    data: TokenData
    message: str


class MeData(BaseModel):
    username: str


class MeResponse(BaseModel):
    data: MeData
