"""Database configuration — reads the connection target from environment.

Supports two modes:
1. A single ``DATABASE_URL`` env var (takes precedence).
2. ``TRIAL_DB_PATH``: path of a local SQLite file (default ``trial.db``),
   convenient for the single-participant client setup.

The URL returned always uses an async driver, since the engine is async.
"""

import os

_ASYNC_DRIVERS = {
    "sqlite://": "sqlite+aiosqlite://",
    "postgresql://": "postgresql+asyncpg://",
}


def get_async_url() -> str:
    """Return an async SQLAlchemy connection URL."""
    url = os.getenv("DATABASE_URL")
    if url:
        # Ensure an async driver prefix is present
        for sync_prefix, async_prefix in _ASYNC_DRIVERS.items():
            if url.startswith(sync_prefix):
                return url.replace(sync_prefix, async_prefix, 1)
        return url
    path = os.getenv("TRIAL_DB_PATH", "trial.db")
    return f"sqlite+aiosqlite:///{path}"
