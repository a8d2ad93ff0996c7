"""SqlKeyValueStore — the SDK's key-value contract on an async SQL table.

Each call opens its own session and commits before returning, so a ``set``
that returns True is durable.  Database errors propagate unchanged; the
SDK's :class:`~trial_survey.repository.ParticipantRepository` converts them
into ``PersistenceError``.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from trial_db.engine import get_session_factory
from trial_db.models.kv import KeyValueEntry
from trial_survey.repository import KeyValueStore


class SqlKeyValueStore(KeyValueStore):
    """Async read/write operations on the ``trial_kv_entries`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] | None = None) -> None:
        self._factory = session_factory or get_session_factory()

    async def get(self, key: str) -> str | None:
        async with self._factory() as db:
            row = await db.get(KeyValueEntry, key)
            return row.value if row is not None else None

    async def set(self, key: str, value: str) -> bool:
        """Insert or fully replace the value for ``key``."""
        async with self._factory() as db:
            async with db.begin():
                row = await db.get(KeyValueEntry, key)
                if row is None:
                    db.add(KeyValueEntry(key=key, value=value))
                else:
                    row.value = value
                    row.updated_at = datetime.now(timezone.utc)
        return True
