"""Backend health model reported by record stores and search indexes."""

from __future__ import annotations

from pydantic import BaseModel, Field


class BackendHealth(BaseModel):
    """Health status of a store or index backend."""

    status: str = Field(description="Health status: healthy, degraded, unhealthy")
    backend: str = Field(default="", description="Backend name (e.g. 'memory', 'opensearch')")
    latency_ms: int = Field(default=0, description="Latency of last health check in ms")
    last_check: str | None = Field(default=None, description="ISO timestamp of last health check")
    message: str | None = Field(default=None, description="Additional health message")
