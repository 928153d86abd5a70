"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date
from typing import Any

import pytest

from taskboard.api.deps import set_engine
from taskboard.config.settings import Settings
from taskboard.core.engine import TaskboardEngine
from taskboard.core.instrumentation import OperationRecorder
from taskboard.index.base.exceptions import IndexConnectionError
from taskboard.index.memory.adapter import InMemorySearchIndex
from taskboard.models.entity import Stage, Task
from taskboard.stores.memory import InMemoryRecordStore


class FlakySearchIndex(InMemorySearchIndex):
    """In-memory index whose writes and searches can be switched to fail."""

    def __init__(self, index: str = "flaky") -> None:
        super().__init__(index=index)
        self.fail_writes = False
        self.fail_search = False
        self.calls: list[tuple[str, Any]] = []

    async def upsert(self, document: dict[str, Any]) -> None:
        self.calls.append(("upsert", document.get("id")))
        if self.fail_writes:
            raise IndexConnectionError("index down")
        await super().upsert(document)

    async def delete(self, doc_id: int) -> None:
        self.calls.append(("delete", doc_id))
        if self.fail_writes:
            raise IndexConnectionError("index down")
        await super().delete(doc_id)

    async def search(self, query: str, offset: int, limit: int):  # type: ignore[override]
        if self.fail_search:
            raise IndexConnectionError("index down")
        return await super().search(query, offset, limit)


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with in-memory backends."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        observability={"log_level": "warning", "log_format": "console"},
    )


@pytest.fixture
def recorder() -> OperationRecorder:
    return OperationRecorder()


@pytest.fixture
def task_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(collection="task")


@pytest.fixture
def task_index() -> FlakySearchIndex:
    return FlakySearchIndex(index="taskboard-task")


@pytest.fixture
def engine(settings: Settings, task_store: InMemoryRecordStore, task_index: FlakySearchIndex) -> TaskboardEngine:
    """Engine on in-memory backends; the task index can be made to fail."""
    return TaskboardEngine(settings, stores={"task": task_store}, indexes={"task": task_index})


@pytest.fixture
def live_engine(engine: TaskboardEngine) -> Iterator[TaskboardEngine]:
    """The engine registered for dependency injection without running the app lifespan."""
    set_engine(engine)
    yield engine
    set_engine(None)


@pytest.fixture
def sample_task() -> Task:
    """The task used across the scenario tests (no id yet)."""
    return Task(action="ship", deadline=date(2024, 1, 10), user="alice")


@pytest.fixture
def sample_stage() -> Stage:
    return Stage()
