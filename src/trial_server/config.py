"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  The storage
backend defaults to ``sql`` (a SQLite file, see ``trial_db.config``);
``memory`` keeps everything in-process and is meant for demos and tests.
"""

import os
from dataclasses import dataclass, field

STORAGE_BACKENDS = ("memory", "sql")


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "127.0.0.1"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Schema directory (None → SchemaStore default, which is v1/ from repo root)
    schema_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # Key-value backend: "memory" or "sql"
    storage: str = "sql"

    # Seconds before an unused session is dropped from memory; None keeps it
    session_idle_timeout: float | None = 3600.0

    def __post_init__(self) -> None:
        if self.storage not in STORAGE_BACKENDS:
            raise ValueError(
                f"Unknown storage backend '{self.storage}'; expected one of {STORAGE_BACKENDS}"
            )


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
    # 0 disables idle eviction
    raw_idle = os.getenv("SERVER_SESSION_IDLE_TIMEOUT", "3600")

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "127.0.0.1"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        schema_dir=os.getenv("SERVER_SCHEMA_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        storage=os.getenv("SERVER_STORAGE", "sql").lower(),
        session_idle_timeout=float(raw_idle) if float(raw_idle) > 0 else None,
    )
