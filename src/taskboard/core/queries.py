"""Query Service — paginated reads from the record store and free-text search over the index.

``list`` and ``get_by_id`` only ever touch the record store, so they see
every completed mutation and are unaffected by an index outage. ``search``
reads from the index and may lag behind the store.
"""

from __future__ import annotations

import logging
from typing import Generic, TypeVar

from taskboard.core.errors import EntityNotFoundError, InvalidArgumentError
from taskboard.core.instrumentation import OperationRecorder
from taskboard.index.base.adapter import SearchIndex
from taskboard.index.base.exceptions import QuerySyntaxError
from taskboard.models.entity import Entity
from taskboard.models.page import Page, PageRequest
from taskboard.stores.base import RecordStore

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Entity)


class QueryService(Generic[EntityT]):
    """Read paths for one entity type.

    Args:
        entity_type: The entity model class.
        store: Authoritative record store.
        index: Search index mirroring the store.
        recorder: Instrumentation sink for entry events.
        max_page_size: Page sizes above this are clamped.
    """

    def __init__(
        self,
        entity_type: type[EntityT],
        store: RecordStore,
        index: SearchIndex,
        recorder: OperationRecorder,
        max_page_size: int = 2000,
    ) -> None:
        self._entity_type = entity_type
        self._store = store
        self._index = index
        self._recorder = recorder
        self._max_page_size = max_page_size

    @property
    def entity_name(self) -> str:
        return self._entity_type.entity_name

    async def list(self, page_request: PageRequest) -> Page[EntityT]:
        """Return one page of entities in id order."""
        self._recorder.operation(self.entity_name, "list", page=page_request.page, size=page_request.size)
        request = page_request.clamp(self._max_page_size)

        records = await self._store.scan(offset=request.offset, limit=request.size)
        content = [self._entity_type.from_document(doc) for doc in records.documents]
        return Page[self._entity_type].of(content, request, records.total)  # type: ignore[name-defined]

    async def get_by_id(self, entity_id: int) -> EntityT:
        """Point lookup in the record store.

        Raises:
            EntityNotFoundError: If no record has this id.
        """
        self._recorder.operation(self.entity_name, "get", entity_id=entity_id)
        document = await self._store.get(entity_id)
        if document is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return self._entity_type.from_document(document)  # type: ignore[return-value]

    async def search(self, query: str, page_request: PageRequest) -> Page[EntityT]:
        """Run a free-text query against the search index.

        Raises:
            InvalidArgumentError: If the query is blank or the index cannot parse it.
            IndexBackendError: If the index cannot be reached.
        """
        self._recorder.operation(self.entity_name, "search", query=query)
        logger.debug("Request to search for a page of %ss for query %s", self.entity_name, query)
        if not query or not query.strip():
            raise InvalidArgumentError(
                "Search query must not be empty",
                entity_name=self.entity_name,
                error_key="querymissing",
            )

        request = page_request.clamp(self._max_page_size)
        try:
            results = await self._index.search(query, offset=request.offset, limit=request.size)
        except QuerySyntaxError as e:
            raise InvalidArgumentError(
                str(e),
                entity_name=self.entity_name,
                error_key="queryinvalid",
            ) from e

        content = [self._entity_type.from_document(doc) for doc in results.documents]
        return Page[self._entity_type].of(content, request, results.total_hits, query=query)  # type: ignore[name-defined]
