"""API v1 Router — Stage, Task, health, and maintenance endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from taskboard.api.v1.endpoints.admin import router as admin_router
from taskboard.api.v1.endpoints.health import router as health_router
from taskboard.api.v1.endpoints.stages import router as stages_router
from taskboard.api.v1.endpoints.tasks import router as tasks_router

router = APIRouter()
router.include_router(stages_router)
router.include_router(tasks_router)
router.include_router(admin_router)
router.include_router(health_router)
