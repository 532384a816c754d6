"""
Async database engine, session factory, and ORM base.

Rules enforced:
  • Every DB call goes through AsyncSession.
  • Sessions are operation-scoped via Database.session(): one pooled
    connection per logical operation, released on every exit path.
  • There is no module-level engine. A Database is built explicitly and
    handed to the store that owns it.
  • The declarative Base is shared across all models so Alembic can
    auto-detect schema changes from a single metadata object.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from playground_store.core.config import Settings

logger = logging.getLogger(__name__)


# ── ORM Base ────────────────────────────────────────────────
class Base(DeclarativeBase):
    """Shared declarative base for all SQLAlchemy models."""


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:  # type: ignore[no-untyped-def]
    # SQLite ignores ON DELETE CASCADE unless asked per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, *, echo: bool = False, pool_size: int = 5) -> AsyncEngine:
    """
    Create the async engine for a URL.

    pool_pre_ping: drop stale connections before reuse
    echo: SQL logging, only in debug mode
    In-memory SQLite gets a StaticPool so every session sees the same DB.
    """
    url = make_url(database_url)
    kwargs: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}

    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs["pool_size"] = pool_size

    engine = create_async_engine(url, **kwargs)
    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Database:
    """Engine + session factory pair owned by one store instance."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,  # avoid lazy-load issues after commit
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        return cls(
            build_engine(
                settings.DATABASE_URL,
                echo=settings.DEBUG,
                pool_size=settings.POOL_SIZE,
            )
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """
        Yield a session for one logical operation.

        Commit/rollback is the caller's job; this only guarantees the
        connection goes back to the pool.
        """
        async with self.session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    async def ping(self) -> None:
        """Round-trip a trivial statement. Raises if the DB is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_all(self) -> None:
        """Create every table (dev/test only; production uses alembic)."""
        # Import all models so Base.metadata is fully populated
        import playground_store.models.user  # noqa: F401
        import playground_store.models.project  # noqa: F401
        import playground_store.models.file  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database engine disposed")
