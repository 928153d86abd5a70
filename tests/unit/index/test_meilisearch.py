"""Tests for the MeiliSearch index backend."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from taskboard.index.base.exceptions import (
    DocumentNotFoundError,
    IndexBackendError,
    IndexConnectionError,
    IndexWriteError,
    QuerySyntaxError,
)
from taskboard.index.meilisearch.adapter import MeiliSearchIndex

# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture
def index() -> MeiliSearchIndex:
    return MeiliSearchIndex(
        base_url="http://localhost:7700",
        index="taskboard-task",
        api_key="test-key",
    )


@pytest.fixture
def sample_meili_response() -> dict[str, Any]:
    """Sample MeiliSearch search response (page-based)."""
    return {
        "hits": [
            {
                "id": 4,
                "action": "ship",
                "deadline": "2024-01-10",
                "user": "alice",
                "stage_id": 7,
                "_rankingScore": 0.92,
            }
        ],
        "totalHits": 1,
        "page": 1,
        "hitsPerPage": 20,
        "processingTimeMs": 2,
        "query": "ship",
    }


def _response(status_code: int = 200, payload: Any = None) -> AsyncMock:
    resp = AsyncMock(spec=httpx.Response)
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    resp.raise_for_status = lambda: None
    return resp


def _client(**methods: Any) -> AsyncMock:
    client = AsyncMock(spec=httpx.AsyncClient)
    for name, value in methods.items():
        getattr(client, name).return_value = value
    return client


# ── Properties ───────────────────────────────────────────────────────────────


class TestMeiliSearchProperties:
    def test_name(self, index: MeiliSearchIndex) -> None:
        assert index.name == "meilisearch"

    def test_default_values(self) -> None:
        idx = MeiliSearchIndex()
        assert idx._base_url == "http://localhost:7700"
        assert idx._index == "documents"

    def test_custom_values(self, index: MeiliSearchIndex) -> None:
        assert index._index == "taskboard-task"
        assert index._api_key == "test-key"


# ── Writes ───────────────────────────────────────────────────────────────────


class TestMeiliSearchWrites:
    async def test_upsert_not_initialized_raises(self, index: MeiliSearchIndex) -> None:
        with pytest.raises(IndexConnectionError, match="not initialized"):
            await index.upsert({"id": 1})

    async def test_upsert_posts_document(self, index: MeiliSearchIndex) -> None:
        index._client = _client(post=_response(202))
        await index.upsert({"id": 1, "action": "ship"})

        index._client.post.assert_called_once_with(
            "/indexes/taskboard-task/documents",
            params={"primaryKey": "id"},
            json=[{"id": 1, "action": "ship"}],
        )

    async def test_upsert_rejected(self, index: MeiliSearchIndex) -> None:
        resp = _response(400)
        resp.raise_for_status = MagicMock(
            side_effect=httpx.HTTPStatusError(
                "Bad Request",
                request=httpx.Request("POST", "http://test"),
                response=httpx.Response(400),
            )
        )
        index._client = _client(post=resp)

        with pytest.raises(IndexWriteError):
            await index.upsert({"id": 1})

    async def test_upsert_connection_failure(self, index: MeiliSearchIndex) -> None:
        client = AsyncMock(spec=httpx.AsyncClient)
        client.post.side_effect = httpx.ConnectError("refused")
        index._client = client

        with pytest.raises(IndexConnectionError):
            await index.upsert({"id": 1})

    async def test_delete_missing_is_ignored(self, index: MeiliSearchIndex) -> None:
        index._client = _client(delete=_response(404))
        await index.delete(99)
        index._client.delete.assert_called_once_with("/indexes/taskboard-task/documents/99")


# ── Search ───────────────────────────────────────────────────────────────────


class TestMeiliSearchSearch:
    async def test_search_returns_results(self, index: MeiliSearchIndex, sample_meili_response: dict) -> None:
        index._client = _client(post=_response(200, sample_meili_response))

        results = await index.search("ship", offset=0, limit=20)

        assert results.total_hits == 1
        assert results.documents == [
            {"id": 4, "action": "ship", "deadline": "2024-01-10", "user": "alice", "stage_id": 7}
        ]
        index._client.post.assert_called_once_with(
            "/indexes/taskboard-task/search",
            json={"q": "ship", "page": 1, "hitsPerPage": 20},
        )

    async def test_unaligned_offset_uses_offset_limit(self, index: MeiliSearchIndex) -> None:
        index._client = _client(post=_response(200, {"hits": [], "estimatedTotalHits": 0}))
        await index.search("ship", offset=5, limit=20)
        _, kwargs = index._client.post.call_args
        assert kwargs["json"] == {"q": "ship", "offset": 5, "limit": 20}

    async def test_match_all_query(self, index: MeiliSearchIndex) -> None:
        index._client = _client(post=_response(200, {"hits": [], "totalHits": 0}))
        await index.search("*", offset=0, limit=10)
        _, kwargs = index._client.post.call_args
        assert kwargs["json"]["q"] == ""

    async def test_bad_query(self, index: MeiliSearchIndex) -> None:
        index._client = _client(post=_response(400, {"message": "invalid filter"}))
        with pytest.raises(QuerySyntaxError, match="invalid filter"):
            await index.search("ship", offset=0, limit=10)

    async def test_bad_query_with_html_body(self, index: MeiliSearchIndex) -> None:
        request = httpx.Request("POST", "http://localhost:7700/indexes/taskboard-task/search")
        index._client = _client(post=httpx.Response(400, text="<html>bad</html>", request=request))
        with pytest.raises(QuerySyntaxError, match="<html>bad</html>"):
            await index.search("ship", offset=0, limit=20)

    async def test_non_json_search_response(self, index: MeiliSearchIndex) -> None:
        request = httpx.Request("POST", "http://localhost:7700/indexes/taskboard-task/search")
        index._client = _client(post=httpx.Response(200, text="<html>gateway</html>", request=request))
        with pytest.raises(IndexBackendError, match="unreadable"):
            await index.search("ship", offset=0, limit=20)


# ── Fetch Document ───────────────────────────────────────────────────────────


class TestMeiliSearchFetchDocument:
    async def test_fetch_not_found(self, index: MeiliSearchIndex) -> None:
        index._client = _client(get=_response(404))
        with pytest.raises(DocumentNotFoundError):
            await index.fetch_document(404)

    async def test_fetch_returns_doc(self, index: MeiliSearchIndex) -> None:
        index._client = _client(get=_response(200, {"id": 1, "action": "ship"}))
        assert await index.fetch_document(1) == {"id": 1, "action": "ship"}


# ── Health ───────────────────────────────────────────────────────────────────


class TestMeiliSearchHealth:
    async def test_health_not_initialized(self, index: MeiliSearchIndex) -> None:
        health = await index.health_check()
        assert health.status == "unhealthy"

    async def test_health_available(self, index: MeiliSearchIndex) -> None:
        index._client = _client(get=_response(200, {"status": "available"}))
        health = await index.health_check()
        assert health.status == "healthy"
        assert "taskboard-task" in (health.message or "")

    async def test_shutdown_closes_client(self, index: MeiliSearchIndex) -> None:
        client = AsyncMock(spec=httpx.AsyncClient)
        index._client = client
        await index.shutdown()
        client.aclose.assert_called_once()
        assert index._client is None
