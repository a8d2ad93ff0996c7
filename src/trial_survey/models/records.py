"""Durable record models — the baseline profile and the daily-entry log.

These are the structures the repository writes to the key-value store.
On the wire every record is a *flat* JSON object: the participant's answers
keyed by qid, plus a few camelCase bookkeeping keys::

    BaselineProfile = {<qid>: <answer>, ..., "userId": str, "startDate": ISO8601}
    DailyEntry      = {<qid>: <answer>, ..., "entryId": int, "submittedAt": ISO8601}

The entry log is serialized as a JSON array of DailyEntry records, in
submission order.  Inside the SDK the answers live in a separate
``answers`` dict so bookkeeping fields can never be confused with answers.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Union

from pydantic import BaseModel, Field

# Keys reserved for bookkeeping in flattened records; no qid may use them.
RESERVED_RECORD_KEYS: frozenset[str] = frozenset(
    {"userId", "startDate", "entryId", "submittedAt"}
)

# Stored answers are strings; multi_numeric answers are lists of strings.
AnswerValue = Union[str, list[str]]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format an aware datetime as ISO 8601 with a ``Z`` suffix."""
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _split_record(record: Any, keys: tuple[str, ...]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate bookkeeping ``keys`` from answers in a flat record dict."""
    if not isinstance(record, dict):
        raise ValueError(f"Expected a JSON object, got {type(record).__name__}")
    answers = dict(record)
    meta = {}
    for key in keys:
        if key not in answers:
            raise ValueError(f"Record is missing '{key}'")
        meta[key] = answers.pop(key)
    return meta, answers


class BaselineProfile(BaseModel):
    """One-time participant profile captured before daily tracking begins."""

    user_id: str
    start_date: datetime
    answers: dict[str, AnswerValue] = Field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        return {
            **self.answers,
            "userId": self.user_id,
            "startDate": to_iso(self.start_date),
        }

    @classmethod
    def from_record(cls, record: Any) -> BaselineProfile:
        meta, answers = _split_record(record, ("userId", "startDate"))
        return cls(user_id=meta["userId"], start_date=meta["startDate"], answers=answers)


class DailyEntry(BaseModel):
    """One submitted daily form.  Never mutated once persisted."""

    entry_id: int
    submitted_at: datetime
    answers: dict[str, AnswerValue] = Field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        return {
            **self.answers,
            "entryId": self.entry_id,
            "submittedAt": to_iso(self.submitted_at),
        }

    @classmethod
    def from_record(cls, record: Any) -> DailyEntry:
        meta, answers = _split_record(record, ("entryId", "submittedAt"))
        return cls(entry_id=meta["entryId"], submitted_at=meta["submittedAt"], answers=answers)


def next_entry_id(entries: list[DailyEntry], now: datetime) -> int:
    """Millisecond timestamp id, bumped if needed to stay strictly increasing."""
    candidate = int(now.timestamp() * 1000)
    if entries and entries[-1].entry_id >= candidate:
        return entries[-1].entry_id + 1
    return candidate


# ---------------------------------------------------------------------------
# JSON serialization
# ---------------------------------------------------------------------------

def dump_profile(profile: BaselineProfile) -> str:
    return json.dumps(profile.to_record(), ensure_ascii=False)


def load_profile(raw: str) -> BaselineProfile:
    """Parse a serialized profile.

    Raises ``ValueError`` (including ``json.JSONDecodeError`` and pydantic's
    ``ValidationError``) when the payload is not a well-formed profile.
    """
    return BaselineProfile.from_record(json.loads(raw))


def dump_entries(entries: list[DailyEntry]) -> str:
    return json.dumps([e.to_record() for e in entries], ensure_ascii=False)


def load_entries(raw: str) -> list[DailyEntry]:
    """Parse a serialized entry log.  Raises ``ValueError`` on malformed input."""
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError(f"Expected a JSON array, got {type(data).__name__}")
    return [DailyEntry.from_record(item) for item in data]
