"""Entity Synchronizer — applies every mutation to the record store, then the search index.

Ordering contract, for every mutation:
  1. The record store write completes (or fails, aborting the operation).
  2. Only then is the search index written.

There is no lock across the two writes and no rollback. The record store is
authoritative: an index failure is logged and counted, and the operation
still succeeds. Searchability of that entity is lost until its next
successful mutation or an explicit ``reindex()``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from taskboard.core.errors import IndexWriteFailure, InvalidArgumentError
from taskboard.core.instrumentation import OperationRecorder
from taskboard.index.base.adapter import SearchIndex
from taskboard.index.base.exceptions import IndexBackendError
from taskboard.models.entity import Entity
from taskboard.stores.base import RecordStore

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=Entity)

RemoveHook = Callable[[int], Awaitable[None]]


class ReindexReport(BaseModel):
    """Outcome of rebuilding the index from the record store."""

    entity: str = Field(description="Entity type that was reindexed")
    indexed: int = Field(default=0, description="Records written to the index")
    failed: int = Field(default=0, description="Records the index rejected")


class EntitySynchronizer(Generic[EntityT]):
    """Keeps one entity type's record store and search index in agreement.

    Args:
        entity_type: The entity model class (``Stage`` or ``Task``).
        store: Authoritative record store.
        index: Search index mirroring the store.
        recorder: Instrumentation sink for entry and failure events.
        update_without_id: ``"create"`` to treat an update without id as a
            create, ``"reject"`` to raise ``InvalidArgumentError``.
    """

    def __init__(
        self,
        entity_type: type[EntityT],
        store: RecordStore,
        index: SearchIndex,
        recorder: OperationRecorder,
        update_without_id: Literal["create", "reject"] = "create",
    ) -> None:
        self._entity_type = entity_type
        self._store = store
        self._index = index
        self._recorder = recorder
        self._update_without_id = update_without_id
        self._remove_hooks: list[RemoveHook] = []

    @property
    def entity_name(self) -> str:
        return self._entity_type.entity_name

    def add_remove_hook(self, hook: RemoveHook) -> None:
        """Register a coroutine called with the id after each ``remove``."""
        self._remove_hooks.append(hook)

    # ──────────────────────────────────────────────────────────────────────
    # Mutations
    # ──────────────────────────────────────────────────────────────────────

    async def create(self, entity: EntityT) -> EntityT:
        """Persist a new entity, then index it.

        Raises:
            InvalidArgumentError: If ``entity.id`` is already set.
            StoreUnavailableError: If the record store cannot be reached.
        """
        self._recorder.operation(self.entity_name, "create")
        logger.debug("Request to save %s : %s", self._entity_type.__name__, entity)
        if entity.id is not None:
            raise InvalidArgumentError(
                f"A new {self.entity_name} cannot already have an ID",
                entity_name=self.entity_name,
                error_key="idexists",
            )

        stored = await self._store.insert(entity.to_document())
        await self._index_upsert(stored, "create")
        return self._entity_type.from_document(stored)  # type: ignore[return-value]

    async def update(self, entity: EntityT) -> EntityT:
        """Fully replace an entity by id, then re-index it.

        Every field is overwritten with the supplied state; omitted fields
        become null. An entity without an id is created or rejected
        depending on the ``update_without_id`` policy.
        """
        self._recorder.operation(self.entity_name, "update", entity_id=entity.id)
        logger.debug("Request to update %s : %s", self._entity_type.__name__, entity)
        if entity.id is None:
            if self._update_without_id == "reject":
                raise InvalidArgumentError(
                    "Invalid id",
                    entity_name=self.entity_name,
                    error_key="idnull",
                )
            return await self.create(entity)

        stored = await self._store.replace(entity.id, entity.to_document())
        await self._index_upsert(stored, "update")
        return self._entity_type.from_document(stored)  # type: ignore[return-value]

    async def remove(self, entity_id: int) -> None:
        """Delete by id from the record store, then from the index.

        Deleting an id that is absent from either store is not an error.
        """
        self._recorder.operation(self.entity_name, "delete", entity_id=entity_id)
        logger.debug("Request to delete %s : %s", self._entity_type.__name__, entity_id)

        await self._store.delete(entity_id)
        try:
            await self._index.delete(entity_id)
        except IndexBackendError as e:
            self._recorder.index_write_failed(IndexWriteFailure(self.entity_name, "delete", entity_id, e))

        for hook in self._remove_hooks:
            await hook(entity_id)

    # ──────────────────────────────────────────────────────────────────────
    # Maintenance
    # ──────────────────────────────────────────────────────────────────────

    async def reindex(self, batch_size: int = 200) -> ReindexReport:
        """Upsert every stored record into the index, page by page.

        Repairs index entries lost to earlier index-write failures. Entries
        for records deleted while the index was down are not removed.
        """
        self._recorder.operation(self.entity_name, "reindex")
        report = ReindexReport(entity=self.entity_name)
        offset = 0
        while True:
            batch = await self._store.scan(offset=offset, limit=batch_size)
            for document in batch.documents:
                if await self._index_upsert(document, "reindex"):
                    report.indexed += 1
                else:
                    report.failed += 1
            offset += len(batch.documents)
            if not batch.documents or offset >= batch.total:
                break

        logger.info(
            "Reindexed %s: %d indexed, %d failed",
            self.entity_name,
            report.indexed,
            report.failed,
        )
        return report

    # ──────────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────────

    async def _index_upsert(self, document: dict, operation: str) -> bool:
        try:
            await self._index.upsert(document)
        except IndexBackendError as e:
            self._recorder.index_write_failed(IndexWriteFailure(self.entity_name, operation, document.get("id"), e))
            return False
        return True
