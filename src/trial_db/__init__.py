"""trial_db — SQL persistence backend for the trial survey SDK.

This package provides the ORM model, async engine factory, and a
``KeyValueStore`` implementation so participant data can live in SQLite
(the default, for a single client) or any async SQLAlchemy database.
"""

from trial_db.engine import create_tables, dispose_engine, get_engine, get_session_factory
from trial_db.models.kv import KeyValueEntry
from trial_db.store import SqlKeyValueStore

__all__ = [
    "KeyValueEntry",
    "SqlKeyValueStore",
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]
