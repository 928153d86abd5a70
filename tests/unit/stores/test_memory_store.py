"""Tests for the in-memory record store."""

from __future__ import annotations

import pytest

from taskboard.stores.memory import InMemoryRecordStore


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore(collection="task")


class TestInMemoryRecordStore:
    def test_name(self, store: InMemoryRecordStore) -> None:
        assert store.name == "memory"

    async def test_insert_assigns_sequential_ids(self, store: InMemoryRecordStore) -> None:
        first = await store.insert({"action": "a"})
        second = await store.insert({"action": "b", "id": 99})
        assert first["id"] == 1
        assert second["id"] == 2

    async def test_get_returns_copy(self, store: InMemoryRecordStore) -> None:
        stored = await store.insert({"action": "a"})
        fetched = await store.get(stored["id"])
        assert fetched == stored
        fetched["action"] = "mutated"
        assert (await store.get(stored["id"]))["action"] == "a"

    async def test_get_missing(self, store: InMemoryRecordStore) -> None:
        assert await store.get(42) is None

    async def test_replace_drops_omitted_fields(self, store: InMemoryRecordStore) -> None:
        stored = await store.insert({"action": "a", "user": "alice"})
        replaced = await store.replace(stored["id"], {"action": "b"})
        assert replaced == {"id": stored["id"], "action": "b"}
        assert await store.get(stored["id"]) == {"id": stored["id"], "action": "b"}

    async def test_replace_unknown_id_inserts_and_moves_counter(self, store: InMemoryRecordStore) -> None:
        await store.replace(10, {"action": "x"})
        assert (await store.get(10))["action"] == "x"
        assert (await store.insert({}))["id"] == 11

    async def test_delete_is_idempotent(self, store: InMemoryRecordStore) -> None:
        stored = await store.insert({"action": "a"})
        assert await store.delete(stored["id"]) is True
        assert await store.delete(stored["id"]) is False
        assert await store.get(stored["id"]) is None

    async def test_scan_pages_in_id_order(self, store: InMemoryRecordStore) -> None:
        await store.replace(5, {"n": 5})
        await store.replace(2, {"n": 2})
        await store.replace(9, {"n": 9})

        first = await store.scan(offset=0, limit=2)
        rest = await store.scan(offset=2, limit=2)

        assert first.total == 3
        assert [d["id"] for d in first.documents] == [2, 5]
        assert [d["id"] for d in rest.documents] == [9]

    async def test_health(self, store: InMemoryRecordStore) -> None:
        await store.insert({})
        health = await store.health_check()
        assert health.status == "healthy"
        assert "records: 1" in (health.message or "")
