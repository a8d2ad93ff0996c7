"""ORM models for trial_db."""

from trial_db.models.base import Base
from trial_db.models.kv import KeyValueEntry

__all__ = ["Base", "KeyValueEntry"]
