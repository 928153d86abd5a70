"""In-memory search index — process-local full-text index for development and tests.

Documents are tokenized on upsert; queries use the Lucene-like subset
described in ``taskboard.index.memory.query``. Hits are ordered by score,
then by id (insertion order).
"""

from __future__ import annotations

import copy
import logging
import time
from datetime import UTC, datetime
from typing import Any

from taskboard.index.base.adapter import IndexResults, SearchIndex
from taskboard.index.base.exceptions import DocumentNotFoundError
from taskboard.index.memory.query import analyze_document, parse_query, score
from taskboard.models.health import BackendHealth

logger = logging.getLogger(__name__)


class InMemorySearchIndex(SearchIndex):
    """Search index held in process memory.

    Args:
        index: Index name (used in logs and health).
    """

    def __init__(self, index: str = "documents") -> None:
        self._index = index
        self._documents: dict[int, dict[str, Any]] = {}
        self._fields: dict[int, dict[str, list[str]]] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        logger.info("Using in-memory search index '%s'", self._index)

    async def shutdown(self) -> None:
        self._documents.clear()
        self._fields.clear()

    # ── Writes ───────────────────────────────────────────────────────────

    async def upsert(self, document: dict[str, Any]) -> None:
        doc_id = int(document["id"])
        self._documents[doc_id] = copy.deepcopy(document)
        self._fields[doc_id] = analyze_document(document)

    async def delete(self, doc_id: int) -> None:
        self._documents.pop(doc_id, None)
        self._fields.pop(doc_id, None)

    # ── Search ───────────────────────────────────────────────────────────

    async def search(self, query: str, offset: int, limit: int) -> IndexResults:
        start = time.monotonic()
        clauses = parse_query(query)

        scored: list[tuple[int, int]] = []
        for doc_id, fields in self._fields.items():
            doc_score = score(clauses, fields)
            if doc_score is not None:
                scored.append((doc_score, doc_id))
        scored.sort(key=lambda item: (-item[0], item[1]))

        window = scored[offset : offset + limit]
        return IndexResults(
            total_hits=len(scored),
            documents=[copy.deepcopy(self._documents[doc_id]) for _, doc_id in window],
            metadata={"index": self._index, "clauses": len(clauses)},
            took_ms=int((time.monotonic() - start) * 1000),
        )

    async def fetch_document(self, doc_id: int) -> dict[str, Any]:
        document = self._documents.get(doc_id)
        if document is None:
            raise DocumentNotFoundError(f"Document '{doc_id}' not found.")
        return copy.deepcopy(document)

    # ── Health ───────────────────────────────────────────────────────────

    async def health_check(self) -> BackendHealth:
        return BackendHealth(
            status="healthy",
            backend=self.name,
            last_check=datetime.now(UTC).isoformat(),
            message=f"Index: {self._index}, documents: {len(self._documents)}",
        )
