"""Stage endpoints — create, update, read, delete and search Stages."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from taskboard.api.deps import get_engine
from taskboard.api.headers import alert_headers, pagination_headers
from taskboard.core.engine import TaskboardEngine
from taskboard.models.entity import Stage
from taskboard.models.page import Page, PageRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stages"])


@router.post(
    "/stages",
    response_model=Stage,
    status_code=201,
    summary="Create a Stage",
    responses={400: {"description": "The Stage already has an id (`idexists`)"}},
)
async def create_stage(
    stage: Stage,
    response: Response,
    engine: TaskboardEngine = Depends(get_engine),
) -> Stage:
    """Persist a new Stage, then index it."""
    logger.debug("REST request to save Stage : %s", stage)
    created = await engine.stages.create(stage)
    response.headers["Location"] = f"/v1/stages/{created.id}"
    response.headers.update(alert_headers(Stage.entity_name, "created", created.id))
    return created


@router.put(
    "/stages",
    response_model=Stage,
    summary="Update a Stage",
    description="Full replace by id. A Stage without an id is created (201) or rejected, per configuration.",
    responses={201: {"description": "The Stage had no id and was created"}},
)
async def update_stage(
    stage: Stage,
    response: Response,
    engine: TaskboardEngine = Depends(get_engine),
) -> Stage:
    """Replace an existing Stage."""
    logger.debug("REST request to update Stage : %s", stage)
    created = stage.id is None
    updated = await engine.stages.update(stage)
    if created:
        response.status_code = 201
        response.headers["Location"] = f"/v1/stages/{updated.id}"
    response.headers.update(alert_headers(Stage.entity_name, "created" if created else "updated", updated.id))
    return updated


@router.get("/stages", response_model=Page[Stage], summary="List Stages")
async def list_stages(
    request: Request,
    response: Response,
    page: int = Query(default=0, ge=0, description="Zero-based page index"),
    size: int | None = Query(default=None, ge=1, description="Page size"),
    engine: TaskboardEngine = Depends(get_engine),
) -> Page[Stage]:
    """Return one page of Stages in id order."""
    page_request = PageRequest(page=page, size=size or engine.settings.pagination.default_page_size)
    result = await engine.stages.list(page_request)
    response.headers.update(pagination_headers(request.url, result))
    return result


@router.get("/stages/{stage_id}", response_model=Stage, summary="Get a Stage")
async def get_stage(
    stage_id: int,
    engine: TaskboardEngine = Depends(get_engine),
) -> Stage:
    logger.debug("REST request to get Stage : %s", stage_id)
    return await engine.stages.get(stage_id)


@router.delete("/stages/{stage_id}", summary="Delete a Stage")
async def delete_stage(
    stage_id: int,
    engine: TaskboardEngine = Depends(get_engine),
) -> Response:
    """Delete a Stage. Tasks referencing it are kept unless the nullify policy is on."""
    logger.debug("REST request to delete Stage : %s", stage_id)
    await engine.stages.remove(stage_id)
    return Response(status_code=200, headers=alert_headers(Stage.entity_name, "deleted", stage_id))


@router.get("/_search/stages", response_model=Page[Stage], summary="Search Stages")
async def search_stages(
    request: Request,
    response: Response,
    query: str = Query(default="", description="Free-text query"),
    page: int = Query(default=0, ge=0, description="Zero-based page index"),
    size: int | None = Query(default=None, ge=1, description="Page size"),
    engine: TaskboardEngine = Depends(get_engine),
) -> Page[Stage]:
    """Search the Stage index. Results may lag recent writes."""
    page_request = PageRequest(page=page, size=size or engine.settings.pagination.default_page_size)
    result = await engine.stages.search(query, page_request)
    response.headers.update(pagination_headers(request.url, result))
    return result
