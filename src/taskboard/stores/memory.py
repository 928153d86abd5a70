"""In-memory record store — process-local storage for development and tests.

Every method mutates state without awaiting in between, so each call is
atomic with respect to other coroutines on the same event loop.
"""

from __future__ import annotations

import copy
import logging
from datetime import UTC, datetime
from typing import Any

from taskboard.models.health import BackendHealth
from taskboard.stores.base import RecordSlice, RecordStore

logger = logging.getLogger(__name__)


class InMemoryRecordStore(RecordStore):
    """Record store backed by a dict keyed by id.

    Ids are assigned from a counter starting at 1. A replace on an unknown id
    stores the record under that id and moves the counter past it.

    Args:
        collection: Name of the stored collection (used in logs and health).
    """

    def __init__(self, collection: str = "records") -> None:
        self._collection = collection
        self._records: dict[int, dict[str, Any]] = {}
        self._next_id = 1

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        logger.info("Using in-memory record store for '%s'", self._collection)

    async def shutdown(self) -> None:
        self._records.clear()

    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        record_id = self._next_id
        self._next_id += 1
        stored = {**copy.deepcopy(document), "id": record_id}
        self._records[record_id] = stored
        return copy.deepcopy(stored)

    async def replace(self, record_id: int, document: dict[str, Any]) -> dict[str, Any]:
        stored = {**copy.deepcopy(document), "id": record_id}
        self._records[record_id] = stored
        self._next_id = max(self._next_id, record_id + 1)
        return copy.deepcopy(stored)

    async def get(self, record_id: int) -> dict[str, Any] | None:
        stored = self._records.get(record_id)
        return copy.deepcopy(stored) if stored is not None else None

    async def delete(self, record_id: int) -> bool:
        return self._records.pop(record_id, None) is not None

    async def scan(self, offset: int, limit: int) -> RecordSlice:
        ids = sorted(self._records)
        window = ids[offset : offset + limit]
        return RecordSlice(
            total=len(ids),
            documents=[copy.deepcopy(self._records[i]) for i in window],
        )

    async def health_check(self) -> BackendHealth:
        return BackendHealth(
            status="healthy",
            backend=self.name,
            last_check=datetime.now(UTC).isoformat(),
            message=f"Collection: {self._collection}, records: {len(self._records)}",
        )
