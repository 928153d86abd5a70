"""Maintenance endpoints — rebuild a search index from the record store."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from taskboard.api.deps import get_engine
from taskboard.core.engine import COLLECTIONS, TaskboardEngine
from taskboard.core.synchronizer import ReindexReport

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.post(
    "/_index/{collection}",
    response_model=ReindexReport,
    summary="Reindex an entity type",
    description=(
        "Upsert every stored record of the entity type into its search index. "
        "Repairs entries lost to index-write failures."
    ),
    responses={404: {"description": "Unknown collection"}},
)
async def reindex(
    collection: str,
    engine: TaskboardEngine = Depends(get_engine),
) -> ReindexReport:
    if collection not in COLLECTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown collection '{collection}'")
    logger.info("REST request to reindex %s", collection)
    return await engine.service_for(collection).reindex()
