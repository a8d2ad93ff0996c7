"""Async SQLAlchemy engine and session factory.

The engine is created lazily on first call and reused across the process
lifetime.  Call ``dispose_engine()`` during graceful shutdown.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from trial_db.config import get_async_url
from trial_db.models.base import Base

# Module-level singleton so the entire app shares one connection pool.
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Return (and lazily create) the singleton async engine."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(get_async_url(), echo=False)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return (and lazily create) the async session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine``."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create missing tables.  Idempotent."""
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Dispose the engine's connection pool (call on app shutdown)."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
