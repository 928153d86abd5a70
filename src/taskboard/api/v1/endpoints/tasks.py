"""Task endpoints — create, update, read, delete and search Tasks.

A Task refers to its Stage by id (`{"stage": {"id": 7}}`). The id is not
checked against the Stage store.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, Request, Response

from taskboard.api.deps import get_engine
from taskboard.api.headers import alert_headers, pagination_headers
from taskboard.core.engine import TaskboardEngine
from taskboard.models.entity import Task
from taskboard.models.page import Page, PageRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tasks"])


@router.post(
    "/tasks",
    response_model=Task,
    status_code=201,
    summary="Create a Task",
    responses={400: {"description": "The Task already has an id (`idexists`)"}},
)
async def create_task(
    task: Task,
    response: Response,
    engine: TaskboardEngine = Depends(get_engine),
) -> Task:
    """Persist a new Task, then index it."""
    logger.debug("REST request to save Task : %s", task)
    created = await engine.tasks.create(task)
    response.headers["Location"] = f"/v1/tasks/{created.id}"
    response.headers.update(alert_headers(Task.entity_name, "created", created.id))
    return created


@router.put(
    "/tasks",
    response_model=Task,
    summary="Update a Task",
    description="Full replace by id. A Task without an id is created (201) or rejected, per configuration.",
    responses={201: {"description": "The Task had no id and was created"}},
)
async def update_task(
    task: Task,
    response: Response,
    engine: TaskboardEngine = Depends(get_engine),
) -> Task:
    """Replace an existing Task."""
    logger.debug("REST request to update Task : %s", task)
    created = task.id is None
    updated = await engine.tasks.update(task)
    if created:
        response.status_code = 201
        response.headers["Location"] = f"/v1/tasks/{updated.id}"
    response.headers.update(alert_headers(Task.entity_name, "created" if created else "updated", updated.id))
    return updated


@router.get("/tasks", response_model=Page[Task], summary="List Tasks")
async def list_tasks(
    request: Request,
    response: Response,
    page: int = Query(default=0, ge=0, description="Zero-based page index"),
    size: int | None = Query(default=None, ge=1, description="Page size"),
    engine: TaskboardEngine = Depends(get_engine),
) -> Page[Task]:
    """Return one page of Tasks in id order."""
    page_request = PageRequest(page=page, size=size or engine.settings.pagination.default_page_size)
    result = await engine.tasks.list(page_request)
    response.headers.update(pagination_headers(request.url, result))
    return result


@router.get("/tasks/{task_id}", response_model=Task, summary="Get a Task")
async def get_task(
    task_id: int,
    engine: TaskboardEngine = Depends(get_engine),
) -> Task:
    logger.debug("REST request to get Task : %s", task_id)
    return await engine.tasks.get(task_id)


@router.delete("/tasks/{task_id}", summary="Delete a Task")
async def delete_task(
    task_id: int,
    engine: TaskboardEngine = Depends(get_engine),
) -> Response:
    """Delete a Task from the record store and the index."""
    logger.debug("REST request to delete Task : %s", task_id)
    await engine.tasks.remove(task_id)
    return Response(status_code=200, headers=alert_headers(Task.entity_name, "deleted", task_id))


@router.get("/_search/tasks", response_model=Page[Task], summary="Search Tasks")
async def search_tasks(
    request: Request,
    response: Response,
    query: str = Query(default="", description="Free-text query"),
    page: int = Query(default=0, ge=0, description="Zero-based page index"),
    size: int | None = Query(default=None, ge=1, description="Page size"),
    engine: TaskboardEngine = Depends(get_engine),
) -> Page[Task]:
    """Search the Task index. Results may lag recent writes."""
    page_request = PageRequest(page=page, size=size or engine.settings.pagination.default_page_size)
    result = await engine.tasks.search(query, page_request)
    response.headers.update(pagination_headers(request.url, result))
    return result
