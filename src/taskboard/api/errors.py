"""Exception handlers mapping Taskboard errors to HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskboard.api.headers import failure_headers
from taskboard.core.errors import EntityNotFoundError, InvalidArgumentError, StoreUnavailableError
from taskboard.index.base.exceptions import IndexBackendError

logger = logging.getLogger(__name__)


async def _invalid_argument(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"title": exc.message, "entity_name": exc.entity_name, "error_key": exc.error_key},
        headers=failure_headers(exc.entity_name, exc.error_key),
    )


async def _validation_failed(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"title": "Bad request", "error_key": "validation", "errors": jsonable_encoder(exc.errors())},
    )


async def _not_found(request: Request, exc: EntityNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"title": str(exc), "entity_name": exc.entity_name, "entity_id": exc.entity_id},
    )


async def _store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    logger.error("Record store unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"title": "Record store unavailable", "detail": str(exc)})


async def _index_unavailable(request: Request, exc: IndexBackendError) -> JSONResponse:
    logger.error("Search index unavailable: %s", exc)
    return JSONResponse(status_code=503, content={"title": "Search index unavailable", "detail": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on ``app``."""
    app.add_exception_handler(InvalidArgumentError, _invalid_argument)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_failed)  # type: ignore[arg-type]
    app.add_exception_handler(EntityNotFoundError, _not_found)  # type: ignore[arg-type]
    app.add_exception_handler(StoreUnavailableError, _store_unavailable)  # type: ignore[arg-type]
    app.add_exception_handler(IndexBackendError, _index_unavailable)  # type: ignore[arg-type]
