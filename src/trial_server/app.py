"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the question schemas and the storage backend
  - CORS middleware
  - Global exception handlers (SDK ValueError → 404/409/400,
    InitializationError → 503)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``trial-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from trial_db.engine import create_tables, dispose_engine, get_engine
from trial_db.store import SqlKeyValueStore
from trial_survey.errors import InitializationError
from trial_survey.repository import InMemoryKeyValueStore, KeyValueStore, ParticipantRepository
from trial_survey.schema import SchemaStore

from trial_server.config import ServerSettings, load_settings
from trial_server.errors import (
    generic_error_handler,
    initialization_error_handler,
    key_error_handler,
    value_error_handler,
)
from trial_server.registry import ControllerRegistry
from trial_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the YAML question schemas into a ``SchemaStore``
      2. Build the key-value backend (creating tables for ``sql``)
      3. Stash the schema and a ``ControllerRegistry`` on ``app.state``

    Shutdown:
      1. Dispose the database engine's connection pool (``sql`` only)
    """
    settings: ServerSettings = app.state.settings

    # --- Load schemas ---
    schema = SchemaStore(schema_dir=settings.schema_dir)
    schema.load()

    # --- Storage backend ---
    kv: KeyValueStore
    if settings.storage == "sql":
        await create_tables()
        kv = SqlKeyValueStore()
    else:
        kv = InMemoryKeyValueStore()
    logger.info("Storage backend: %s", settings.storage)

    app.state.schema = schema
    app.state.registry = ControllerRegistry(
        schema, ParticipantRepository(kv), idle_timeout=settings.session_idle_timeout
    )

    yield

    # --- Shutdown ---
    if settings.storage == "sql":
        await dispose_engine()
        logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Trial Survey API Server",
        description="Local REST API for the 14-day repellent field-trial survey",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(InitializationError, initialization_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity for the sql backend."""
        if settings.storage != "sql":
            return {"status": "ok", "storage": settings.storage}
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok", "storage": settings.storage}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn trial_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``trial-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "trial_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
