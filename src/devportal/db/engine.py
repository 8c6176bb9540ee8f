"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

One Database is built by create_app() and kept on app.state. get_db()
reads it from there, so tests can build an app against any URL without
touching module globals.
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from devportal.config import Settings


class Database:
    """Owns the engine (connection pool) and the session factory."""

    def __init__(self, settings: Settings):
        self.url = settings.database_url
        self.timeout = settings.store_timeout_seconds
        self.engine: AsyncEngine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            **_pool_options(settings.database_url),
        )
        # Session factory — each request gets its own session.
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def dispose(self) -> None:
        await self.engine.dispose()


def _pool_options(url: str) -> dict:
    # SQLite (tests) keeps the dialect default pool, no sizing options.
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 15, "pool_pre_ping": True}


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — yields a session per request, auto-closes."""
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
