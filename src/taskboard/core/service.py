"""Entity service — one entity type's store, index, synchronizer and query service together."""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from taskboard.config.settings import Settings
from taskboard.core.instrumentation import OperationRecorder
from taskboard.core.queries import QueryService
from taskboard.core.synchronizer import EntitySynchronizer, ReindexReport
from taskboard.index.base.adapter import SearchIndex
from taskboard.index.base.exceptions import IndexBackendError
from taskboard.models.entity import Entity
from taskboard.models.health import BackendHealth
from taskboard.models.page import Page, PageRequest
from taskboard.stores.base import RecordStore

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Entity)


class EntityService(Generic[EntityT]):
    """Operation surface for one entity type.

    Mutations go through the synchronizer, reads through the query service.

    Attributes:
        synchronizer: Dual-write component for this entity type.
        queries: Read component for this entity type.
        store: The record store.
        index: The search index.
    """

    def __init__(
        self,
        entity_type: type[EntityT],
        store: RecordStore,
        index: SearchIndex,
        settings: Settings,
        recorder: OperationRecorder,
    ) -> None:
        self.entity_type = entity_type
        self.store = store
        self.index = index
        self._settings = settings
        self.synchronizer: EntitySynchronizer[EntityT] = EntitySynchronizer(
            entity_type,
            store,
            index,
            recorder,
            update_without_id=settings.sync.update_without_id,
        )
        self.queries: QueryService[EntityT] = QueryService(
            entity_type,
            store,
            index,
            recorder,
            max_page_size=settings.pagination.max_page_size,
        )

    @property
    def entity_name(self) -> str:
        return self.entity_type.entity_name

    async def initialize(self) -> None:
        """Initialize the store, then the index.

        A store failure is fatal. An index failure is logged and the service
        starts without search; mutations keep reaching the store.
        """
        await self.store.initialize()
        try:
            await self.index.initialize()
        except IndexBackendError:
            logger.warning(
                "Search index for %s unavailable at startup, search is degraded",
                self.entity_name,
                exc_info=True,
            )

    async def shutdown(self) -> None:
        try:
            await self.index.shutdown()
        except Exception:
            logger.warning("Error shutting down %s index", self.entity_name, exc_info=True)
        await self.store.shutdown()

    # ── Mutations ──

    async def create(self, entity: EntityT) -> EntityT:
        return await self.synchronizer.create(entity)

    async def update(self, entity: EntityT) -> EntityT:
        return await self.synchronizer.update(entity)

    async def remove(self, entity_id: int) -> None:
        await self.synchronizer.remove(entity_id)

    async def reindex(self) -> ReindexReport:
        return await self.synchronizer.reindex(batch_size=self._settings.sync.reindex_batch_size)

    # ── Reads ──

    async def get(self, entity_id: int) -> EntityT:
        return await self.queries.get_by_id(entity_id)

    async def list(self, page_request: PageRequest) -> Page[EntityT]:
        return await self.queries.list(page_request)

    async def search(self, query: str, page_request: PageRequest) -> Page[EntityT]:
        return await self.queries.search(query, page_request)

    # ── Health ──

    async def health_check(self) -> dict[str, BackendHealth]:
        results: dict[str, BackendHealth] = {}
        for role, backend in (("store", self.store), ("index", self.index)):
            try:
                results[role] = await backend.health_check()
            except Exception as e:
                results[role] = BackendHealth(status="unhealthy", backend=backend.name, message=str(e))
        return results
