"""Participant persistence on top of a key-value store.

The SDK depends only on the narrow :class:`KeyValueStore` contract::

    get(key) -> str | None
    set(key, value) -> bool      (may also raise)

Each participant owns two keys:

    baseline_{participant_id}  -> JSON BaselineProfile record
    entries_{participant_id}   -> JSON array of DailyEntry records

Every write replaces the whole structure (never a delta), so re-trying a
failed write is always safe.  A stored value that cannot be parsed is
treated exactly like a missing one: the participant starts fresh.

Implementations shipped here:
  - InMemoryKeyValueStore: dict-backed, used by tests and the simulator
  - trial_db.SqlKeyValueStore: SQLAlchemy async table (separate package)
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from trial_survey.constants import (
    BASELINE_KEY_PREFIX,
    ENTRIES_KEY_PREFIX,
    MAX_ENTRIES,
    WRITE_TIMEOUT_SECONDS,
)
from trial_survey.errors import PersistenceError
from trial_survey.models.records import (
    BaselineProfile,
    DailyEntry,
    dump_entries,
    dump_profile,
    load_entries,
    load_profile,
)

logger = logging.getLogger(__name__)


def baseline_key(participant_id: str) -> str:
    return f"{BASELINE_KEY_PREFIX}_{participant_id}"


def entries_key(participant_id: str) -> str:
    return f"{ENTRIES_KEY_PREFIX}_{participant_id}"


# ---------------------------------------------------------------------------
# Store contract
# ---------------------------------------------------------------------------

class KeyValueStore(ABC):
    """Persistent string store consumed by the SDK."""

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value for ``key``, or None if absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """Store ``value`` under ``key``, replacing any previous value.

        Returns True on success.  Implementations may return False or raise
        on failure; the repository treats both the same way.
        """
        ...


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store.

    ``fail_writes`` / ``fail_reads`` make the next calls fail, which lets
    tests exercise the error paths without a real backend.  ``writes``
    records every successful ``set`` in order.
    """

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(data or {})
        self.writes: list[tuple[str, str]] = []
        self.fail_writes = False
        self.fail_reads = False

    async def get(self, key: str) -> str | None:
        if self.fail_reads:
            raise OSError(f"read failed for {key}")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        if self.fail_writes:
            return False
        self.data[key] = value
        self.writes.append((key, value))
        return True


# ---------------------------------------------------------------------------
# Participant repository
# ---------------------------------------------------------------------------

class ParticipantRepository:
    """Reads and writes one participant's profile and entry log.

    Args:
        kv: the backing key-value store
        write_timeout: seconds to wait for a write; None waits indefinitely
    """

    def __init__(
        self, kv: KeyValueStore, *, write_timeout: float | None = WRITE_TIMEOUT_SECONDS
    ) -> None:
        self._kv = kv
        self._write_timeout = write_timeout

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def load_baseline(self, participant_id: str) -> BaselineProfile | None:
        """Return the stored profile, or None if absent or unreadable.

        Raises:
            PersistenceError: if the store itself fails.
        """
        key = baseline_key(participant_id)
        raw = await self._read(key)
        if raw is None:
            return None
        try:
            return load_profile(raw)
        except ValueError as exc:
            logger.warning("Ignoring unreadable baseline at %s: %s", key, exc)
            return None

    async def load_entries(self, participant_id: str) -> list[DailyEntry]:
        """Return the stored entry log, or an empty list if absent or unreadable.

        Raises:
            PersistenceError: if the store itself fails.
        """
        key = entries_key(participant_id)
        raw = await self._read(key)
        if raw is None:
            return []
        try:
            entries = load_entries(raw)
        except ValueError as exc:
            logger.warning("Ignoring unreadable entry log at %s: %s", key, exc)
            return []
        if len(entries) > MAX_ENTRIES:
            logger.warning(
                "Entry log at %s holds %d entries; keeping the first %d",
                key, len(entries), MAX_ENTRIES,
            )
            entries = entries[:MAX_ENTRIES]
        return entries

    # ------------------------------------------------------------------
    # Write: always the full structure
    # ------------------------------------------------------------------

    async def save_baseline(self, participant_id: str, profile: BaselineProfile) -> None:
        """Overwrite the participant's profile.

        Raises:
            PersistenceError: if the write fails, times out or is refused.
        """
        await self._write(baseline_key(participant_id), dump_profile(profile))

    async def save_entries(self, participant_id: str, entries: list[DailyEntry]) -> None:
        """Overwrite the participant's entry log with ``entries``.

        Raises:
            ValueError: if ``entries`` exceeds the trial cap.
            PersistenceError: if the write fails, times out or is refused.
        """
        if len(entries) > MAX_ENTRIES:
            raise ValueError(f"Entry log exceeds the trial cap of {MAX_ENTRIES}")
        await self._write(entries_key(participant_id), dump_entries(entries))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _read(self, key: str) -> str | None:
        try:
            return await self._kv.get(key)
        except Exception as exc:
            logger.exception("Store read failed for %s", key)
            raise PersistenceError(key, "Store read failed") from exc

    async def _write(self, key: str, value: str) -> None:
        try:
            if self._write_timeout is None:
                ok = await self._kv.set(key, value)
            else:
                ok = await asyncio.wait_for(self._kv.set(key, value), self._write_timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Store write timed out for %s", key)
            raise PersistenceError(key, "Store write timed out") from exc
        except Exception as exc:
            logger.exception("Store write failed for %s", key)
            raise PersistenceError(key, "Store write failed") from exc

        if not ok:
            logger.error("Store refused write for %s", key)
            raise PersistenceError(key, "Store refused write")
        logger.info("Saved %s (%d bytes)", key, len(value))
