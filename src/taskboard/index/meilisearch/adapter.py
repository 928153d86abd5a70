"""MeiliSearch index — Typo-tolerant full-text mirror on MeiliSearch.

This backend communicates via the official REST API using ``httpx``.
MeiliSearch applies writes asynchronously (every write returns a task), so a
document becomes searchable shortly after ``upsert`` returns. That delay is
part of the consistency window the synchronizer already tolerates.

Usage::

    index = MeiliSearchIndex(
        base_url="http://localhost:7700",
        index="taskboard-task",
        api_key="your-master-key",
    )
    await index.initialize()
    await index.upsert({"id": 1, "action": "ship"})
    results = await index.search("ship", offset=0, limit=20)
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

import httpx

from taskboard.index.base.adapter import IndexResults, SearchIndex
from taskboard.index.base.exceptions import (
    DocumentNotFoundError,
    IndexBackendError,
    IndexConnectionError,
    IndexWriteError,
    QuerySyntaxError,
)
from taskboard.models.health import BackendHealth

logger = logging.getLogger(__name__)


class MeiliSearchIndex(SearchIndex):
    """Search index on MeiliSearch.

    Communicates with MeiliSearch via its `REST API`_ over HTTP.

    .. _REST API: https://www.meilisearch.com/docs/reference/api/overview

    Args:
        base_url: MeiliSearch instance URL, e.g. ``"http://localhost:7700"``.
        index: MeiliSearch index UID for this entity type.
        api_key: Master key or API key for authentication.
        timeout: HTTP request timeout in seconds.
        **kwargs: Extra keyword arguments stored for future use.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:7700",
        index: str = "documents",
        api_key: str | None = None,
        timeout: float = 10.0,
        **kwargs: Any,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._index = index
        self._api_key = api_key
        self._timeout = timeout
        self._extra_kwargs = kwargs
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "meilisearch"

    async def initialize(self) -> None:
        """Create an ``httpx.AsyncClient``, verify the connection, and create the index."""
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers=headers,
        )

        try:
            resp = await self._client.get("/health")
            resp.raise_for_status()
            data = resp.json()
            if data.get("status") != "available":
                raise IndexConnectionError(f"MeiliSearch not available: {data}")

            # Creating an existing index enqueues a task that fails harmlessly
            resp = await self._client.post("/indexes", json={"uid": self._index, "primaryKey": "id"})
            resp.raise_for_status()
            logger.info(
                "Connected to MeiliSearch at %s (index: %s)",
                self._base_url,
                self._index,
            )
        except httpx.HTTPError as e:
            raise IndexConnectionError(f"Failed to connect to MeiliSearch: {e}") from e

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    # ── Writes ───────────────────────────────────────────────────────────

    async def upsert(self, document: dict[str, Any]) -> None:
        """Add or replace a document (``POST /indexes/{index}/documents``)."""
        client = self._require_client()
        try:
            resp = await client.post(
                f"/indexes/{self._index}/documents",
                params={"primaryKey": "id"},
                json=[document],
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IndexWriteError(f"MeiliSearch rejected document {document.get('id')}: {e}") from e
        except httpx.HTTPError as e:
            raise IndexConnectionError(f"MeiliSearch upsert failed: {e}") from e

    async def delete(self, doc_id: int) -> None:
        """Delete a document; MeiliSearch accepts deletes of unknown ids."""
        client = self._require_client()
        try:
            resp = await client.delete(f"/indexes/{self._index}/documents/{doc_id}")
            if resp.status_code == 404:
                return
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IndexWriteError(f"MeiliSearch rejected delete of {doc_id}: {e}") from e
        except httpx.HTTPError as e:
            raise IndexConnectionError(f"MeiliSearch delete failed: {e}") from e

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, query: str, offset: int, limit: int) -> IndexResults:
        """Execute a search query against MeiliSearch.

        Uses the ``/indexes/{index}/search`` endpoint. Page-aligned requests
        use ``page``/``hitsPerPage`` so the total hit count is exact.
        """
        client = self._require_client()

        payload: dict[str, Any] = {"q": "" if query.strip() == "*" else query}
        if offset % limit == 0:
            payload["page"] = offset // limit + 1
            payload["hitsPerPage"] = limit
        else:
            payload["offset"] = offset
            payload["limit"] = limit

        try:
            start = time.monotonic()
            resp = await client.post(f"/indexes/{self._index}/search", json=payload)
            if resp.status_code == 400:
                detail = self._error_detail(resp)
                raise QuerySyntaxError(f"MeiliSearch rejected query '{query}': {detail}")
            resp.raise_for_status()
            took_ms = int((time.monotonic() - start) * 1000)

            data = resp.json()
            hits = data.get("hits", [])
            total_hits = data.get("totalHits", data.get("estimatedTotalHits", len(hits)))

            return IndexResults(
                total_hits=total_hits,
                documents=[self._to_document(hit) for hit in hits],
                metadata={
                    "processing_time_ms": data.get("processingTimeMs", 0),
                    "query": data.get("query", query),
                },
                took_ms=took_ms,
            )
        except httpx.HTTPError as e:
            raise IndexBackendError(f"MeiliSearch query failed: {e}") from e
        except ValueError as e:
            raise IndexBackendError(f"MeiliSearch returned an unreadable search response: {e}") from e

    async def fetch_document(self, doc_id: int) -> dict[str, Any]:
        """Retrieve a single document from MeiliSearch by its primary key."""
        client = self._require_client()

        try:
            resp = await client.get(f"/indexes/{self._index}/documents/{doc_id}")
            if resp.status_code == 404:
                raise DocumentNotFoundError(f"Document '{doc_id}' not found.")
            resp.raise_for_status()
            return self._to_document(resp.json())
        except DocumentNotFoundError:
            raise
        except httpx.HTTPError as e:
            raise IndexBackendError(f"Failed to fetch document from MeiliSearch: {e}") from e
        except ValueError as e:
            raise IndexBackendError(f"MeiliSearch returned an unreadable document: {e}") from e

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> BackendHealth:
        """Check MeiliSearch health."""
        if not self._client:
            return BackendHealth(status="unhealthy", backend=self.name, message="Client not initialized")

        try:
            start = time.monotonic()
            resp = await self._client.get("/health")
            latency_ms = int((time.monotonic() - start) * 1000)

            if resp.status_code == 200:
                data = resp.json()
                status = data.get("status", "unknown")
                return BackendHealth(
                    status="healthy" if status == "available" else "degraded",
                    backend=self.name,
                    latency_ms=latency_ms,
                    last_check=datetime.now(UTC).isoformat(),
                    message=f"Index: {self._index}, status: {status}",
                )
            return BackendHealth(
                status="degraded",
                backend=self.name,
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"MeiliSearch returned HTTP {resp.status_code}",
            )
        except Exception as e:
            return BackendHealth(status="unhealthy", backend=self.name, message=str(e))

    # ── Helpers ──────────────────────────────────────────────────────────

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise IndexConnectionError("MeiliSearch client not initialized.")
        return self._client

    @staticmethod
    def _error_detail(resp: httpx.Response) -> str:
        """The ``message`` of a MeiliSearch error body, or the raw text when it is not JSON."""
        try:
            body = resp.json()
        except ValueError:
            return resp.text
        if isinstance(body, dict):
            return str(body.get("message", resp.text))
        return resp.text

    @staticmethod
    def _to_document(hit: dict[str, Any]) -> dict[str, Any]:
        """Strip MeiliSearch bookkeeping keys (``_formatted``, ``_rankingScore``) from a hit."""
        return {k: v for k, v in hit.items() if not k.startswith("_")}
