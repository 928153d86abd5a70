"""Tests for the query service (list, get_by_id, search)."""

from __future__ import annotations

import pytest

from taskboard.core.errors import EntityNotFoundError, InvalidArgumentError
from taskboard.core.instrumentation import OperationRecorder
from taskboard.core.queries import QueryService
from taskboard.core.synchronizer import EntitySynchronizer
from taskboard.index.base.exceptions import IndexConnectionError
from taskboard.models.entity import Task
from taskboard.models.page import PageRequest
from taskboard.stores.memory import InMemoryRecordStore


@pytest.fixture
def sync(task_store: InMemoryRecordStore, task_index, recorder: OperationRecorder) -> EntitySynchronizer[Task]:
    return EntitySynchronizer(Task, task_store, task_index, recorder)


@pytest.fixture
def queries(task_store: InMemoryRecordStore, task_index, recorder: OperationRecorder) -> QueryService[Task]:
    return QueryService(Task, task_store, task_index, recorder, max_page_size=50)


class TestList:
    async def test_pages_cover_every_entity_once(
        self, sync: EntitySynchronizer[Task], queries: QueryService[Task]
    ) -> None:
        created = [await sync.create(Task(action=f"t{i}")) for i in range(23)]

        pages = []
        page_request = PageRequest(page=0, size=5)
        while True:
            page = await queries.list(page_request)
            pages.append(page)
            if not page.has_next:
                break
            page_request = PageRequest(page=page_request.page + 1, size=5)

        assert len(pages) == 5
        assert all(p.total_pages == 5 and p.total_elements == 23 for p in pages)
        assert all(len(p.content) <= 5 for p in pages)
        ids = [t.id for p in pages for t in p.content]
        assert ids == [t.id for t in created]

    async def test_empty(self, queries: QueryService[Task]) -> None:
        page = await queries.list(PageRequest())
        assert page.content == []
        assert page.total_pages == 0

    async def test_page_size_is_clamped(self, sync: EntitySynchronizer[Task], queries: QueryService[Task]) -> None:
        for i in range(60):
            await sync.create(Task(action=f"t{i}"))

        page = await queries.list(PageRequest(size=500))

        assert page.size == 50
        assert len(page.content) == 50

    async def test_does_not_touch_index(self, sync: EntitySynchronizer[Task], queries: QueryService[Task], task_index) -> None:
        await sync.create(Task(action="ship"))
        task_index.fail_search = True
        task_index.fail_writes = True

        assert (await queries.list(PageRequest())).total_elements == 1


class TestGetById:
    async def test_found(self, sync: EntitySynchronizer[Task], queries: QueryService[Task], sample_task: Task) -> None:
        created = await sync.create(sample_task)
        fetched = await queries.get_by_id(created.id)
        assert fetched == created
        assert fetched.action == "ship"

    async def test_visible_even_when_index_write_failed(
        self, sync: EntitySynchronizer[Task], queries: QueryService[Task], task_index, sample_task: Task
    ) -> None:
        task_index.fail_writes = True
        created = await sync.create(sample_task)
        assert (await queries.get_by_id(created.id)).user == "alice"

    async def test_not_found(self, queries: QueryService[Task]) -> None:
        with pytest.raises(EntityNotFoundError) as exc_info:
            await queries.get_by_id(404)
        assert exc_info.value.entity_id == 404
        assert exc_info.value.entity_name == "task"

    async def test_not_found_after_delete(
        self, sync: EntitySynchronizer[Task], queries: QueryService[Task], sample_task: Task
    ) -> None:
        created = await sync.create(sample_task)
        await sync.remove(created.id)
        with pytest.raises(EntityNotFoundError):
            await queries.get_by_id(created.id)


class TestSearch:
    async def test_finds_created_entity(
        self, sync: EntitySynchronizer[Task], queries: QueryService[Task], sample_task: Task
    ) -> None:
        created = await sync.create(sample_task)
        await sync.create(Task(action="write docs", user="bob"))

        page = await queries.search("ship", PageRequest())

        assert page.content == [created]
        assert page.total_elements == 1
        assert page.query == "ship"

    async def test_pages_search_results(self, sync: EntitySynchronizer[Task], queries: QueryService[Task]) -> None:
        for i in range(7):
            await sync.create(Task(action="ship", user=f"u{i}"))

        page = await queries.search("ship", PageRequest(page=1, size=3))

        assert page.total_elements == 7
        assert page.total_pages == 3
        assert len(page.content) == 3

    async def test_search_lags_failed_index_write(
        self, sync: EntitySynchronizer[Task], queries: QueryService[Task], task_index, sample_task: Task
    ) -> None:
        task_index.fail_writes = True
        await sync.create(sample_task)
        task_index.fail_writes = False

        assert (await queries.search("ship", PageRequest())).total_elements == 0

    @pytest.mark.parametrize("query", ["", "   "])
    async def test_blank_query(self, queries: QueryService[Task], query: str) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            await queries.search(query, PageRequest())
        assert exc_info.value.error_key == "querymissing"

    async def test_unparsable_query(self, queries: QueryService[Task]) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            await queries.search('"unterminated', PageRequest())
        assert exc_info.value.error_key == "queryinvalid"

    async def test_index_outage_propagates(self, queries: QueryService[Task], task_index) -> None:
        task_index.fail_search = True
        with pytest.raises(IndexConnectionError):
            await queries.search("ship", PageRequest())
