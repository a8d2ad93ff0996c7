"""KeyValueEntry ORM model — one row per store key.

The survey SDK only needs opaque string values keyed by
``baseline_{participant_id}`` / ``entries_{participant_id}``, so a single
narrow table covers every participant.  Each write replaces ``value`` in
full.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from trial_db.models.base import Base


class KeyValueEntry(Base):
    """A stored JSON document for one key."""

    __tablename__ = "trial_kv_entries"

    key: Mapped[str] = mapped_column(Text, primary_key=True)
    # Serialized JSON document (profile or full entry log)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
