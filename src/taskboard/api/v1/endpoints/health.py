"""Health check endpoints — System and backend health monitoring."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from taskboard import __version__
from taskboard.api.deps import get_engine
from taskboard.core.engine import TaskboardEngine
from taskboard.models.health import BackendHealth

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


# ── Response models ──────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    """System health check response."""

    status: str = Field(description="Health status (e.g. 'healthy')")
    version: str = Field(description="Taskboard server version")
    service: str = Field(description="Service name ('taskboard')")
    store_backend: str = Field(description="Configured record store backend")
    index_backend: str = Field(description="Configured search index backend")


class BackendHealthResponse(BaseModel):
    """Per-backend health check response.

    Keys of ``backends`` are ``<entity>.<store|index>``, e.g. ``task.index``.
    """

    backends: dict[str, BackendHealth] = Field(description="Map of backend to its health status")
    index_failures: dict[str, int] = Field(
        default_factory=dict,
        description="Index writes that failed after the record store write succeeded, by entity.operation",
    )


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="System Health Check",
    description="Returns overall system health, server version, and the configured backends.",
)
async def health_check(
    engine: TaskboardEngine = Depends(get_engine),
) -> HealthResponse:
    """Basic health check endpoint with backend info."""
    return HealthResponse(
        status="healthy",
        version=__version__,
        service="taskboard",
        store_backend=engine.settings.store.backend,
        index_backend=engine.settings.index.backend,
    )


@router.get(
    "/health/backends",
    response_model=BackendHealthResponse,
    summary="Backend Health Check",
    description=(
        "Run health checks on the record store and search index of every entity "
        "type, and report index-write failure counters."
    ),
)
async def backend_health(
    engine: TaskboardEngine = Depends(get_engine),
) -> BackendHealthResponse:
    """Check health of all stores and indexes."""
    statuses = await engine.health_check_all()
    return BackendHealthResponse(backends=statuses, index_failures=engine.recorder.index_failures)
