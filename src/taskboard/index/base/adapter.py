"""Base search index — Abstract interface for the full-text mirror of the record store.

Every search backend must implement this interface. The index is responsible for:
  1. Upserting and deleting documents keyed by the record id
  2. Answering free-text queries with a page of matching documents
  3. Fetching individual documents
  4. Reporting health status

The index is a recall-only cache: it may lag behind the record store, and
nothing reads entities by id from it.

All backend failures must be raised as ``IndexBackendError`` subclasses so
that callers can tell index problems apart from everything else.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from taskboard.models.health import BackendHealth


class IndexResults(BaseModel):
    """A page of search hits, normalized to stored-document form."""

    total_hits: int = Field(default=0, description="Total number of matching documents")
    documents: list[dict[str, Any]] = Field(default_factory=list, description="Matching documents, including 'id'")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Backend-specific metadata")
    took_ms: int = Field(default=0, description="Backend query execution time in ms")


class SearchIndex(ABC):
    """Abstract base class for search index backends.

    All backends must implement:
      - upsert(): Insert or fully replace a document by id
      - delete(): Remove a document by id (missing ids are not an error)
      - search(): Execute a free-text query and return one page of hits
      - fetch_document(): Retrieve a single indexed document by id
      - health_check(): Report backend health

    One instance serves one entity type.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name (e.g., 'memory', 'opensearch')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Connect to the backend and create the index if needed.

        Raises:
            IndexConnectionError: If the backend cannot be reached.
        """

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connections and release resources."""

    @abstractmethod
    async def upsert(self, document: dict[str, Any]) -> None:
        """Insert ``document`` or replace the one indexed under ``document['id']``."""

    @abstractmethod
    async def delete(self, doc_id: int) -> None:
        """Remove the document indexed under ``doc_id``, if any."""

    @abstractmethod
    async def search(self, query: str, offset: int, limit: int) -> IndexResults:
        """Execute a free-text query.

        Args:
            query: The query string.
            offset: Number of hits to skip.
            limit: Maximum number of hits to return.

        Returns:
            One page of hits plus the total hit count.

        Raises:
            QuerySyntaxError: If the backend cannot parse ``query``.
        """

    @abstractmethod
    async def fetch_document(self, doc_id: int) -> dict[str, Any]:
        """Retrieve a single indexed document.

        Raises:
            DocumentNotFoundError: If the document is not indexed.
        """

    @abstractmethod
    async def health_check(self) -> BackendHealth:
        """Check the health of the search backend."""
