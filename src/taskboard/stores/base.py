"""Base record store — Abstract interface for the primary (authoritative) store.

A record store holds one entity type. It works on flat JSON documents keyed
by an integer ``id`` and is responsible for:
  1. Assigning identity on insert
  2. Full replace by id (no field merging)
  3. Point lookup and idempotent delete
  4. Paging through records in id order
  5. Reporting health status

Implementations raise ``StoreUnavailableError`` when the backend cannot be
reached. Any other failure propagates unchanged.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from taskboard.models.health import BackendHealth


class RecordSlice(BaseModel):
    """A window of stored documents plus the total number of records."""

    total: int = Field(default=0, description="Number of records in the store")
    documents: list[dict[str, Any]] = Field(default_factory=list, description="Documents in id order")


class RecordStore(ABC):
    """Abstract base class for record stores."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'memory', 'sqlalchemy')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Open connections and create the collection/table if needed."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Release connections."""

    @abstractmethod
    async def insert(self, document: dict[str, Any]) -> dict[str, Any]:
        """Store a new record and assign it an id.

        Args:
            document: Record fields. Any ``id`` key is ignored.

        Returns:
            The stored document, including the assigned ``id``.
        """

    @abstractmethod
    async def replace(self, record_id: int, document: dict[str, Any]) -> dict[str, Any]:
        """Overwrite the record stored under ``record_id`` with ``document``.

        Fields missing from ``document`` are not carried over from the old
        record. If no record exists under ``record_id``, one is created with
        that id.

        Returns:
            The stored document, including ``id``.
        """

    @abstractmethod
    async def get(self, record_id: int) -> dict[str, Any] | None:
        """Return the stored document, or ``None`` if there is none."""

    @abstractmethod
    async def delete(self, record_id: int) -> bool:
        """Delete a record. Returns whether something was deleted; a missing id is not an error."""

    @abstractmethod
    async def scan(self, offset: int, limit: int) -> RecordSlice:
        """Return up to ``limit`` records in ascending id order starting at ``offset``."""

    @abstractmethod
    async def health_check(self) -> BackendHealth:
        """Check the health of the store backend."""
