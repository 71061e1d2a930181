# =============================================================================
# Database Engine & Session Management
# =============================================================================
#
# DESIGN DECISION: Async SQLAlchemy engine.
# The query pipeline is async end to end, so the stores use SQLAlchemy's
# async engine (asyncpg for PostgreSQL, aiosqlite for SQLite).
#
# DESIGN DECISION: Lazy initialization.
# Creating the engine imports the driver. Doing it on first use instead of
# at import time means the in-memory backend and the unit tests never need
# a database driver installed.
#
# Sessions created from the factory MUST commit explicitly; the stores in
# docqa/services/stores.py own their session lifecycle per operation.
# =============================================================================

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from docqa.db.models import Base

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Lazily create and cache the async engine for `database_url`."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(database_url, echo=echo)
    return _engine


def get_session_factory(
    database_url: str,
    echo: bool = False,
) -> async_sessionmaker[AsyncSession]:
    """
    Lazily create and cache the session factory.

    expire_on_commit=False: attributes stay readable after commit without
    a new round trip, which would fail outside the session in async code.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(database_url, echo),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
