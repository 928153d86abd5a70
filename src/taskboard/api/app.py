"""FastAPI application factory and lifecycle management."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskboard import __version__
from taskboard.api.deps import set_engine
from taskboard.api.errors import register_exception_handlers
from taskboard.api.headers import ALERT_HEADER, ERROR_HEADER, PARAMS_HEADER, TOTAL_COUNT_HEADER
from taskboard.api.v1.router import router as v1_router
from taskboard.config.settings import Settings
from taskboard.core.engine import TaskboardEngine
from taskboard.observability.logging import setup_logging

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG = Path("taskboard-config.yaml")


def load_settings(config: str | Path | None = None) -> Settings:
    """Load settings from ``config``, else ``taskboard-config.yaml`` if present, else the environment."""
    if config is not None:
        return Settings.from_yaml(config)
    if _DEFAULT_CONFIG.exists():
        logger.info("Loading configuration from %s", _DEFAULT_CONFIG)
        return Settings.from_yaml(_DEFAULT_CONFIG)
    return Settings()


def create_app(settings: Settings | None = None, engine: TaskboardEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from file or environment.
        engine: Pre-built engine. If None, one is built from settings at startup.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = engine.settings if engine is not None else load_settings()

    setup_logging(settings.observability)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage application lifecycle (startup/shutdown)."""
        logger.info("Starting Taskboard v%s", __version__)

        app_engine = engine or TaskboardEngine(settings)
        await app_engine.initialize()
        set_engine(app_engine)

        app.state.settings = settings
        app.state.engine = app_engine

        logger.info("Taskboard is ready to serve requests on port %d", settings.server.port)
        yield

        logger.info("Shutting down Taskboard...")
        await app_engine.shutdown()
        set_engine(None)
        logger.info("Taskboard shutdown complete")

    app = FastAPI(
        title=settings.app_name,
        description=(
            "Stage and Task records kept in a record store and mirrored into a "
            "search index for free-text search."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[ALERT_HEADER, ERROR_HEADER, PARAMS_HEADER, TOTAL_COUNT_HEADER, "Link", "Location"],
    )

    register_exception_handlers(app)
    app.include_router(v1_router, prefix="/v1")

    return app
