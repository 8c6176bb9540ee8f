"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Alembic migrations are written against these models.

Key concepts:
- Random hex string primary keys, generated in Python (see new_id)
- Relationships are plain id columns: every lookup goes through the
  store, nothing is lazy-loaded or embedded
- Portable column types only, so the same models run on PostgreSQL
  in production and SQLite in tests
"""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Account kinds. Set at creation, never changed.
ACCOUNT_LOCAL = "local"
ACCOUNT_DISCORD = "discord"
ACCOUNT_GITHUB = "github"
ACCOUNT_TYPES = (ACCOUNT_LOCAL, ACCOUNT_DISCORD, ACCOUNT_GITHUB)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(byte_length: int) -> str:
    """Random hex string, twice as many characters as bytes."""
    return secrets.token_hex(byte_length)


class User(Base):
    """An account (Identity), either local or backed by an OAuth provider.

    Learn: password_hash is NULL for OAuth identities. The unique index
    on email is what settles two concurrent signups for the same address.
    """

    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id: Mapped[str] = mapped_column(
        String(16), primary_key=True, default=lambda: new_id(8)
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    password_hash: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Session(Base):
    """A bearer token bound to one user. The id *is* the token."""

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=lambda: new_id(16)
    )
    user_id: Mapped[str] = mapped_column(
        String(16), ForeignKey("users.id"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Application(Base):
    """An API application owned by one user."""

    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(
        String(24), primary_key=True, default=lambda: new_id(12)
    )
    user_id: Mapped[str] = mapped_column(
        String(16), ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    short_description: Mapped[str] = mapped_column(Text, nullable=False)
    token: Mapped[str] = mapped_column(
        String(32), nullable=False, default=lambda: new_id(16)
    )
    total_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Token(Base):
    """A named sub-credential of an application."""

    __tablename__ = "tokens"

    id: Mapped[str] = mapped_column(
        String(24), primary_key=True, default=lambda: new_id(12)
    )
    application_id: Mapped[str] = mapped_column(
        String(24), ForeignKey("applications.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    token: Mapped[str] = mapped_column(
        String(32), nullable=False, default=lambda: new_id(16)
    )
    total_requests: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class RequestLog(Base):
    """Requests an application served at one instant (UsageRecord).

    Learn: Append-only. Rows are written by the API gateway that counts
    requests, this service only reads them back with a range scan.
    """

    __tablename__ = "request_logs"
    __table_args__ = (
        Index("ix_request_logs_application_timestamp", "application_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[str] = mapped_column(String(24), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    request_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
