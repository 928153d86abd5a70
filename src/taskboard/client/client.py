"""Taskboard Python SDK — Async and sync clients for the Taskboard REST API.

Usage::

    # Async
    async with AsyncTaskboardClient("http://localhost:8080") as client:
        task = await client.create_task({"action": "ship", "deadline": "2024-01-10", "user": "alice"})

    # Sync (wraps async client internally)
    client = TaskboardClient("http://localhost:8080")
    page = client.search_tasks("ship")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar, cast

import httpx

_T = TypeVar("_T")

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Response types (plain dicts, not server models)
# ═══════════════════════════════════════════════════════════════════════════════

EntityDict = dict[str, Any]
"""A Stage or Task as JSON (mirrors ``Stage`` / ``Task``)."""

PageDict = dict[str, Any]
"""One page of entities (mirrors ``Page`` JSON: ``content``, ``total_elements`` ...)."""

_COLLECTIONS = ("stages", "tasks")


class TaskboardAPIError(Exception):
    """Raised when the server answers with an error status.

    Attributes:
        status_code: HTTP status code.
        error_key: Machine-readable reason from the body, if any (``idexists``, ``queryinvalid`` ...).
        body: Decoded JSON body, or ``{}``.
    """

    def __init__(self, status_code: int, body: dict[str, Any]) -> None:
        self.status_code = status_code
        self.body = body
        self.error_key: str | None = body.get("error_key")
        super().__init__(f"HTTP {status_code}: {body.get('title') or body.get('detail') or body}")


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.is_success:
        return
    try:
        body = resp.json()
    except ValueError:
        body = {"detail": resp.text}
    raise TaskboardAPIError(resp.status_code, body if isinstance(body, dict) else {"detail": body})


def _check_collection(collection: str) -> None:
    if collection not in _COLLECTIONS:
        raise ValueError(f"Unknown collection '{collection}', expected one of {_COLLECTIONS}")


# ═══════════════════════════════════════════════════════════════════════════════
# Async client
# ═══════════════════════════════════════════════════════════════════════════════


class AsyncTaskboardClient:
    """Async Python client for the Taskboard API.

    Generic methods take the collection name (``"stages"`` or ``"tasks"``);
    ``*_stage`` / ``*_task`` shortcuts are provided for each.

    Args:
        base_url: Taskboard server URL, e.g. ``"http://localhost:8080"``.
        timeout: Request timeout in seconds.
        **httpx_kwargs: Additional keyword arguments passed to ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        timeout: float = 30.0,
        **httpx_kwargs: Any,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            **httpx_kwargs,
        )

    async def __aenter__(self) -> AsyncTaskboardClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ── Health ──

    async def health(self) -> dict[str, Any]:
        """Check server health."""
        resp = await self._client.get("/v1/health")
        _raise_for_status(resp)
        return cast(dict[str, Any], resp.json())

    async def backend_health(self) -> dict[str, Any]:
        """Per-backend health and index-write failure counters."""
        resp = await self._client.get("/v1/health/backends")
        _raise_for_status(resp)
        return cast(dict[str, Any], resp.json())

    # ── Generic entity operations ──

    async def create(self, collection: str, entity: EntityDict) -> EntityDict:
        """Create an entity. ``entity`` must not carry an ``id``."""
        _check_collection(collection)
        resp = await self._client.post(f"/v1/{collection}", json=entity)
        _raise_for_status(resp)
        return cast(EntityDict, resp.json())

    async def update(self, collection: str, entity: EntityDict) -> EntityDict:
        """Fully replace an entity by its ``id``. Omitted fields become null."""
        _check_collection(collection)
        resp = await self._client.put(f"/v1/{collection}", json=entity)
        _raise_for_status(resp)
        return cast(EntityDict, resp.json())

    async def get(self, collection: str, entity_id: int) -> EntityDict:
        """Fetch one entity by id.

        Raises:
            TaskboardAPIError: With ``status_code == 404`` if it does not exist.
        """
        _check_collection(collection)
        resp = await self._client.get(f"/v1/{collection}/{entity_id}")
        _raise_for_status(resp)
        return cast(EntityDict, resp.json())

    async def delete(self, collection: str, entity_id: int) -> None:
        """Delete an entity. Deleting a missing id is not an error."""
        _check_collection(collection)
        resp = await self._client.delete(f"/v1/{collection}/{entity_id}")
        _raise_for_status(resp)

    async def list(self, collection: str, *, page: int = 0, size: int | None = None) -> PageDict:
        """Fetch one page of entities in id order."""
        _check_collection(collection)
        params: dict[str, Any] = {"page": page}
        if size is not None:
            params["size"] = size
        resp = await self._client.get(f"/v1/{collection}", params=params)
        _raise_for_status(resp)
        return cast(PageDict, resp.json())

    async def search(self, collection: str, query: str, *, page: int = 0, size: int | None = None) -> PageDict:
        """Free-text search over the collection's index."""
        _check_collection(collection)
        params: dict[str, Any] = {"query": query, "page": page}
        if size is not None:
            params["size"] = size
        resp = await self._client.get(f"/v1/_search/{collection}", params=params)
        _raise_for_status(resp)
        return cast(PageDict, resp.json())

    async def reindex(self, collection: str) -> dict[str, Any]:
        """Rebuild the collection's search index from the record store."""
        _check_collection(collection)
        resp = await self._client.post(f"/v1/_index/{collection}")
        _raise_for_status(resp)
        return cast(dict[str, Any], resp.json())

    # ── Shortcuts ──

    async def create_stage(self, stage: EntityDict | None = None) -> EntityDict:
        return await self.create("stages", stage or {})

    async def create_task(self, task: EntityDict) -> EntityDict:
        return await self.create("tasks", task)

    async def update_task(self, task: EntityDict) -> EntityDict:
        return await self.update("tasks", task)

    async def get_task(self, task_id: int) -> EntityDict:
        return await self.get("tasks", task_id)

    async def search_tasks(self, query: str, *, page: int = 0, size: int | None = None) -> PageDict:
        return await self.search("tasks", query, page=page, size=size)


# ═══════════════════════════════════════════════════════════════════════════════
# Sync client (wraps AsyncTaskboardClient)
# ═══════════════════════════════════════════════════════════════════════════════


class TaskboardClient:
    """Synchronous Python client for the Taskboard API.

    Wraps :class:`AsyncTaskboardClient` using ``asyncio.run``; each call opens
    and closes its own connection.

    Args:
        base_url: Taskboard server URL.
        timeout: Request timeout in seconds.
        **httpx_kwargs: Additional keyword arguments passed to ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8080",
        *,
        timeout: float = 30.0,
        **httpx_kwargs: Any,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._httpx_kwargs = httpx_kwargs

    def _run(self, coro: Coroutine[Any, Any, _T]) -> _T:
        """Run an async coroutine synchronously."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop and loop.is_running():
            # Already inside an event loop (e.g. Jupyter), run on a worker thread
            import concurrent.futures

            with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
                return pool.submit(asyncio.run, coro).result()
        return asyncio.run(coro)

    def _make_client(self) -> AsyncTaskboardClient:
        return AsyncTaskboardClient(
            self._base_url,
            timeout=self._timeout,
            **self._httpx_kwargs,
        )

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        async def _invoke() -> Any:
            async with self._make_client() as c:
                return await getattr(c, method)(*args, **kwargs)

        return self._run(_invoke())

    def health(self) -> dict[str, Any]:
        """Check server health."""
        return cast(dict[str, Any], self._call("health"))

    def backend_health(self) -> dict[str, Any]:
        return cast(dict[str, Any], self._call("backend_health"))

    def create(self, collection: str, entity: EntityDict) -> EntityDict:
        return cast(EntityDict, self._call("create", collection, entity))

    def update(self, collection: str, entity: EntityDict) -> EntityDict:
        return cast(EntityDict, self._call("update", collection, entity))

    def get(self, collection: str, entity_id: int) -> EntityDict:
        return cast(EntityDict, self._call("get", collection, entity_id))

    def delete(self, collection: str, entity_id: int) -> None:
        self._call("delete", collection, entity_id)

    def list(self, collection: str, *, page: int = 0, size: int | None = None) -> PageDict:
        return cast(PageDict, self._call("list", collection, page=page, size=size))

    def search(self, collection: str, query: str, *, page: int = 0, size: int | None = None) -> PageDict:
        """Free-text search over the collection's index."""
        return cast(PageDict, self._call("search", collection, query, page=page, size=size))

    def reindex(self, collection: str) -> dict[str, Any]:
        return cast(dict[str, Any], self._call("reindex", collection))

    def search_tasks(self, query: str, *, page: int = 0, size: int | None = None) -> PageDict:
        return self.search("tasks", query, page=page, size=size)
