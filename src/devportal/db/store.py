"""Credential store — every database operation the API performs.

Learn: Each method is a single point operation (get, insert, list,
update-by-id, delete-by-id) over one of the five tables. Every call runs
under the same fixed deadline, and any driver failure or timeout comes
out as StoreError. Services and guards never touch the AsyncSession
directly; they go through this class.

There are no retries: a failed call surfaces once, immediately.
"""

import asyncio
import functools
from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from fastapi import Depends, Request
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError as SQLIntegrityError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devportal.db.engine import get_db
from devportal.db.models import Application, RequestLog, Session, Token, User
from devportal.errors import ConflictError, StoreError

logger = structlog.get_logger()

DEFAULT_TIMEOUT_SECONDS = 5.0

# Wire name → column, for the sortable list endpoints.
APPLICATION_SORT_FIELDS = {
    "name": Application.name,
    "createdAt": Application.created_at,
    "totalRequests": Application.total_requests,
}
TOKEN_SORT_FIELDS = {
    "name": Token.name,
    "createdAt": Token.created_at,
    "lastUsedAt": Token.last_used_at,
    "totalRequests": Token.total_requests,
}
SORT_DIRECTIONS = ("ascending", "descending")

# PostgreSQL unique_violation, and the SQLite codes for duplicate keys.
PG_UNIQUE_VIOLATION = "23505"
SQLITE_UNIQUE_VIOLATIONS = ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY")


def is_unique_violation(error: SQLIntegrityError) -> bool:
    """True for duplicate-key failures, False for FK/NOT NULL/CHECK ones."""
    orig = error.orig
    for attr in ("sqlstate", "pgcode"):
        if getattr(orig, attr, None) == PG_UNIQUE_VIOLATION:
            return True
    return getattr(orig, "sqlite_errorname", None) in SQLITE_UNIQUE_VIOLATIONS


def _store_call(fn):
    """Apply the per-call deadline and translate driver errors."""

    @functools.wraps(fn)
    async def wrapper(self: "CredentialStore", *args, **kwargs):
        try:
            async with asyncio.timeout(self.timeout):
                return await fn(self, *args, **kwargs)
        except SQLIntegrityError as e:
            await self.db.rollback()
            if not is_unique_violation(e):
                raise StoreError(f"{fn.__name__} violated a constraint: {e.orig}") from e
            logger.info("store.unique_violation", operation=fn.__name__, error=str(e.orig))
            raise ConflictError("A record with that identifier already exists") from e
        except TimeoutError as e:
            raise StoreError(f"{fn.__name__} timed out after {self.timeout}s") from e
        except SQLAlchemyError as e:
            raise StoreError(f"{fn.__name__} failed: {e}") from e

    return wrapper


def as_utc(value: datetime) -> datetime:
    """Naive datetimes (SQLite) are UTC wall-clock times."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CredentialStore:
    """Point operations over users, sessions, applications, tokens and request logs."""

    def __init__(self, db: AsyncSession, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.db = db
        self.timeout = timeout

    async def _insert(self, row: Any) -> Any:
        self.db.add(row)
        await self.db.commit()
        return row

    async def _get(self, model: type, row_id: str) -> Any:
        result = await self.db.execute(
            select(model)
            .where(model.id == row_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    # ─── Users ──────────────────────────────────────────

    @_store_call
    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        return await self._get(User, user_id)

    @_store_call
    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalars().first()

    @_store_call
    async def insert_user(self, user: User) -> User:
        return await self._insert(user)

    @_store_call
    async def update_user_password(self, user_id: str, password_hash: str) -> None:
        await self.db.execute(
            update(User).where(User.id == user_id).values(password_hash=password_hash)
        )
        await self.db.commit()

    # ─── Sessions ───────────────────────────────────────

    @_store_call
    async def get_session_by_id(self, session_id: str) -> Optional[Session]:
        return await self._get(Session, session_id)

    @_store_call
    async def insert_session(self, session: Session) -> Session:
        return await self._insert(session)

    # ─── Applications ───────────────────────────────────

    @_store_call
    async def get_application_by_id(self, application_id: str) -> Optional[Application]:
        return await self._get(Application, application_id)

    @_store_call
    async def get_applications_by_user(
        self,
        user_id: str,
        sort_by: str = "name",
        direction: str = "ascending",
    ) -> list[Application]:
        column = APPLICATION_SORT_FIELDS[sort_by]
        order = column.asc() if direction == "ascending" else column.desc()
        result = await self.db.execute(
            select(Application).where(Application.user_id == user_id).order_by(order)
        )
        return list(result.scalars().all())

    @_store_call
    async def insert_application(self, application: Application) -> Application:
        return await self._insert(application)

    @_store_call
    async def update_application_by_id(
        self, application_id: str, **values: Any
    ) -> Optional[Application]:
        await self.db.execute(
            update(Application)
            .where(Application.id == application_id)
            .values(**values)
        )
        await self.db.commit()
        return await self._get(Application, application_id)

    @_store_call
    async def delete_application_by_id(self, application_id: str) -> None:
        await self.db.execute(delete(Token).where(Token.application_id == application_id))
        await self.db.execute(delete(Application).where(Application.id == application_id))
        await self.db.commit()

    # ─── Tokens ─────────────────────────────────────────

    @_store_call
    async def get_token_by_id(self, token_id: str) -> Optional[Token]:
        return await self._get(Token, token_id)

    @_store_call
    async def get_tokens_by_application(
        self,
        application_id: str,
        sort_by: str = "name",
        direction: str = "ascending",
    ) -> list[Token]:
        column = TOKEN_SORT_FIELDS[sort_by]
        order = column.asc() if direction == "ascending" else column.desc()
        result = await self.db.execute(
            select(Token).where(Token.application_id == application_id).order_by(order)
        )
        return list(result.scalars().all())

    @_store_call
    async def insert_token(self, token: Token) -> Token:
        return await self._insert(token)

    @_store_call
    async def delete_token_by_id(self, token_id: str) -> None:
        await self.db.execute(delete(Token).where(Token.id == token_id))
        await self.db.commit()

    # ─── Request logs ───────────────────────────────────

    @_store_call
    async def get_request_logs_by_application(
        self, application_id: str, start: datetime, end: datetime
    ) -> list[RequestLog]:
        """Range scan, inclusive on both ends, oldest first."""
        result = await self.db.execute(
            select(RequestLog)
            .where(
                RequestLog.application_id == application_id,
                RequestLog.timestamp >= as_utc(start),
                RequestLog.timestamp <= as_utc(end),
            )
            .order_by(RequestLog.timestamp)
        )
        return list(result.scalars().all())

    @_store_call
    async def insert_request_log(self, log: RequestLog) -> RequestLog:
        return await self._insert(log)


def get_store(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> CredentialStore:
    """FastAPI dependency — a store over this request's session."""
    return CredentialStore(db, timeout=request.app.state.database.timeout)
