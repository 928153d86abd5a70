"""OpenSearch index — Full-text mirror on OpenSearch (v2+).

Queries use the ``query_string`` DSL, so callers get the full Lucene query
syntax (fields, phrases, wildcards, boolean operators). This backend uses
``opensearch-py`` (async).

Install the optional dependency::

    pip install taskboard[opensearch]
    # or: pip install opensearch-py
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from typing import Any

from taskboard.index.base.adapter import IndexResults, SearchIndex
from taskboard.index.base.exceptions import (
    DocumentNotFoundError,
    IndexBackendError,
    IndexConfigurationError,
    IndexConnectionError,
    IndexWriteError,
    QuerySyntaxError,
)
from taskboard.models.health import BackendHealth

logger = logging.getLogger(__name__)


class OpenSearchIndex(SearchIndex):
    """Search index on OpenSearch (v2+).

    Args:
        hosts: List of OpenSearch node URLs.
        index: Index name for this entity type.
        username: Optional HTTP basic-auth username.
        password: Optional HTTP basic-auth password.
        verify_certs: Whether to verify TLS certificates.
        refresh: ``refresh`` parameter for writes (``False``, ``True`` or
            ``"wait_for"``). ``"wait_for"`` makes a write searchable before
            the call returns, at the cost of write latency.
        **kwargs: Additional keyword arguments forwarded to ``AsyncOpenSearch``.
    """

    def __init__(
        self,
        hosts: list[str] | None = None,
        index: str = "documents",
        username: str | None = None,
        password: str | None = None,
        verify_certs: bool = True,
        refresh: bool | str = False,
        **kwargs: Any,
    ) -> None:
        self._hosts = hosts or ["https://localhost:9200"]
        self._index = index
        self._username = username
        self._password = password
        self._verify_certs = verify_certs
        self._refresh = refresh
        self._extra_kwargs = kwargs
        self._client: Any = None

    @property
    def name(self) -> str:
        return "opensearch"

    async def initialize(self) -> None:
        """Create and verify the ``AsyncOpenSearch`` client, then ensure the index exists."""
        try:
            from opensearchpy import AsyncOpenSearch
        except ImportError as e:
            raise IndexConfigurationError(
                "opensearch-py package is required.  Install with: pip install taskboard[opensearch]"
            ) from e

        client_kwargs: dict[str, Any] = {
            "hosts": self._hosts,
            "verify_certs": self._verify_certs,
            "ssl_show_warn": False,
        }
        if self._username and self._password:
            client_kwargs["http_auth"] = (self._username, self._password)

        client_kwargs.update(self._extra_kwargs)

        try:
            self._client = AsyncOpenSearch(**client_kwargs)
            info = await self._client.info()
            if not await self._client.indices.exists(index=self._index):
                await self._client.indices.create(index=self._index)
            version = info.get("version", {}).get("number", "unknown")
            cluster = info.get("cluster_name", "unknown")
            logger.info("Connected to OpenSearch cluster: %s (v%s), index: %s", cluster, version, self._index)
        except Exception as e:
            raise IndexConnectionError(f"Failed to connect to OpenSearch: {e}") from e

    async def shutdown(self) -> None:
        """Close the OpenSearch client."""
        if self._client:
            await self._client.close()
            self._client = None

    # ── Writes ───────────────────────────────────────────────────────────

    async def upsert(self, document: dict[str, Any]) -> None:
        """Index a document under its id, replacing any previous version."""
        client = self._require_client()
        doc_id = document["id"]
        try:
            await client.index(index=self._index, id=str(doc_id), body=document, refresh=self._refresh)
        except Exception as e:
            raise _write_error(f"OpenSearch upsert of {doc_id} failed", e) from e

    async def delete(self, doc_id: int) -> None:
        """Delete a document. A missing document is not an error."""
        client = self._require_client()
        try:
            await client.delete(index=self._index, id=str(doc_id), refresh=self._refresh)
        except Exception as e:
            if "NotFoundError" in type(e).__name__:
                return
            raise _write_error(f"OpenSearch delete of {doc_id} failed", e) from e

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, query: str, offset: int, limit: int) -> IndexResults:
        """Execute a ``query_string`` query against OpenSearch."""
        client = self._require_client()

        body: dict[str, Any] = {
            "query": {"query_string": {"query": query}},
            "from": offset,
            "size": limit,
            "track_total_hits": True,
            "_source": True,
        }

        try:
            start = time.monotonic()
            response = await client.search(index=self._index, body=body)
            took_ms = int((time.monotonic() - start) * 1000)
        except Exception as e:
            # query_string parse failures come back as HTTP 400
            if "RequestError" in type(e).__name__ or getattr(e, "status_code", None) == 400:
                raise QuerySyntaxError(f"OpenSearch could not parse query '{query}': {e}") from e
            raise IndexBackendError(f"OpenSearch query failed: {e}") from e

        hits = response.get("hits", {})
        total = hits.get("total", {}).get("value", 0)
        return IndexResults(
            total_hits=total,
            documents=[self._to_document(hit) for hit in hits.get("hits", [])],
            metadata={"took_os_ms": response.get("took", 0)},
            took_ms=took_ms,
        )

    async def fetch_document(self, doc_id: int) -> dict[str, Any]:
        """Retrieve a single document by ID."""
        client = self._require_client()
        try:
            response = await client.get(index=self._index, id=str(doc_id))
            return self._to_document(dict(response))
        except Exception as e:
            if "NotFoundError" in type(e).__name__:
                raise DocumentNotFoundError(f"Document '{doc_id}' not found.") from e
            raise IndexBackendError(f"Failed to fetch document: {e}") from e

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> BackendHealth:
        """Check OpenSearch cluster health."""
        if not self._client:
            return BackendHealth(status="unhealthy", backend=self.name, message="Client not initialized")

        try:
            start = time.monotonic()
            health = await self._client.cluster.health()
            latency_ms = int((time.monotonic() - start) * 1000)

            status_map = {"green": "healthy", "yellow": "degraded", "red": "unhealthy"}

            return BackendHealth(
                status=status_map.get(health.get("status", "red"), "unhealthy"),
                backend=self.name,
                latency_ms=latency_ms,
                last_check=datetime.now(UTC).isoformat(),
                message=f"Cluster: {health.get('cluster_name')}, Index: {self._index}",
            )
        except Exception as e:
            return BackendHealth(status="unhealthy", backend=self.name, message=str(e))

    # ── Helpers ──────────────────────────────────────────────────────────

    def _require_client(self) -> Any:
        if not self._client:
            raise IndexConnectionError("OpenSearch client not initialized.")
        return self._client

    @staticmethod
    def _to_document(hit: dict[str, Any]) -> dict[str, Any]:
        """Rebuild a stored document from an OpenSearch hit (``_id`` + ``_source``)."""
        source = dict(hit.get("_source", {}))
        if source.get("id") is None and hit.get("_id") is not None:
            source["id"] = int(hit["_id"])
        return source


def _write_error(message: str, error: Exception) -> IndexBackendError:
    if "ConnectionError" in type(error).__name__ or "ConnectionTimeout" in type(error).__name__:
        return IndexConnectionError(f"{message}: {error}")
    return IndexWriteError(f"{message}: {error}")
