# pylint: disable=not-callable
"""SQLAlchemy models for the user_service.

Only the ``User`` model is defined here; it mirrors the schema created by the
Alembic migrations and by ``Database.create_schema``.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, DateTime, Integer, String, func

from user_service.database import Base


class User(Base):
    """ORM model representing an application user.

    Attributes
    ----------
    id:
        Integer primary key; the immutable identity carried in tokens.
    name:
        Display name.
    email:
        Unique login email; nullable to match the migration semantics.
    password:
        One-way password hash. Never holds plaintext and is never serialized.
    """

    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String(255), nullable=False)
    email: Optional[str] = Column(String(255), unique=True, index=True, nullable=True)
    password: str = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<User id={self.id!r} email={self.email!r}>"
