"""
User Model

Registered accounts that can log in with username and password.
Passwords are stored as bcrypt hashes only.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from library_catalog.database import Base


class User(Base):
    """
    User model representing registered users in the system.

    Table: users

    The JWT issued at login carries the username as its subject, so ratings
    made by this account are keyed by a hash of the username, not by id.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, username='{self.username}')"
