"""Taskboard Engine — wires the Stage and Task services and owns their lifecycle.

The engine:
  1. Builds a record store and a search index per entity type from settings
  2. Wraps each pair in an ``EntityService`` (synchronizer + query service)
  3. Applies cross-entity policy (what happens to tasks when a stage is removed)
  4. Initializes, health-checks and shuts down every backend
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from taskboard.core.backends import build_record_store, build_search_index
from taskboard.core.errors import StoreUnavailableError
from taskboard.core.instrumentation import OperationRecorder
from taskboard.core.service import EntityService
from taskboard.models.entity import Stage, Task
from taskboard.models.health import BackendHealth
from taskboard.models.page import PageRequest

if TYPE_CHECKING:
    from taskboard.config.settings import Settings
    from taskboard.index.base.adapter import SearchIndex
    from taskboard.stores.base import RecordStore

logger = logging.getLogger(__name__)

# URL collection name -> entity name
COLLECTIONS: dict[str, str] = {"stages": "stage", "tasks": "task"}


class TaskboardEngine:
    """Owns the per-entity services.

    Args:
        settings: Application configuration.
        stores: Optional pre-built record stores keyed by entity name
            (``"stage"``, ``"task"``). Missing entries are built from settings.
        indexes: Optional pre-built search indexes keyed by entity name.
        recorder: Instrumentation sink shared by all services.

    Attributes:
        stages: Service for Stage.
        tasks: Service for Task.
    """

    def __init__(
        self,
        settings: Settings,
        stores: Mapping[str, RecordStore] | None = None,
        indexes: Mapping[str, SearchIndex] | None = None,
        recorder: OperationRecorder | None = None,
    ) -> None:
        self.settings = settings
        self.recorder = recorder or OperationRecorder()
        stores = stores or {}
        indexes = indexes or {}

        def _service(entity_type: Any) -> EntityService:
            name = entity_type.entity_name
            store = stores.get(name) or build_record_store(settings.store, name)
            index = indexes.get(name) or build_search_index(settings.index, name)
            return EntityService(entity_type, store, index, settings, self.recorder)

        self.stages: EntityService[Stage] = _service(Stage)
        self.tasks: EntityService[Task] = _service(Task)

        if settings.sync.stage_delete_policy == "nullify":
            self.stages.synchronizer.add_remove_hook(self._detach_tasks_from_stage)

    @property
    def services(self) -> dict[str, EntityService]:
        return {"stage": self.stages, "task": self.tasks}

    def service_for(self, collection: str) -> EntityService:
        """Look up a service by URL collection (``"stages"``) or entity name (``"stage"``).

        Raises:
            KeyError: If the name is not a known entity type.
        """
        entity_name = COLLECTIONS.get(collection, collection)
        return self.services[entity_name]

    async def initialize(self) -> None:
        """Initialize every backend. Record store failures propagate."""
        for service in self.services.values():
            await service.initialize()
        logger.info(
            "Taskboard engine initialized (store: %s, index: %s)",
            self.settings.store.backend,
            self.settings.index.backend,
        )

    async def shutdown(self) -> None:
        """Gracefully shut down all backends."""
        for service in self.services.values():
            await service.shutdown()
        logger.info("Taskboard engine shut down")

    async def health_check_all(self) -> dict[str, BackendHealth]:
        """Run health checks on every backend, keyed ``"<entity>.<store|index>"``."""
        results: dict[str, BackendHealth] = {}
        for name, service in self.services.items():
            for role, health in (await service.health_check()).items():
                results[f"{name}.{role}"] = health
        return results

    async def _detach_tasks_from_stage(self, stage_id: int) -> None:
        """Clear ``stage`` on every task that references a removed stage.

        Runs after the stage is gone from both stores, so the removal is not
        undone when detaching fails: store failures are logged and the
        affected tasks keep the dangling reference, as under ``keep``.
        """
        page_request = PageRequest(page=0, size=self.settings.sync.reindex_batch_size)
        detached = 0
        failed = 0
        try:
            while True:
                page = await self.tasks.list(page_request)
                for task in page.content:
                    if task.stage is None or task.stage.id != stage_id:
                        continue
                    try:
                        await self.tasks.update(task.model_copy(update={"stage": None}))
                    except StoreUnavailableError:
                        logger.warning(
                            "Could not detach task %s from removed stage %s", task.id, stage_id, exc_info=True
                        )
                        failed += 1
                        continue
                    detached += 1
                if not page.has_next:
                    break
                page_request = PageRequest(page=page_request.page + 1, size=page_request.size)
        except StoreUnavailableError:
            logger.warning("Stopped detaching tasks from removed stage %s", stage_id, exc_info=True)
        if detached or failed:
            logger.info("Detached %d task(s) from removed stage %s, %d failed", detached, stage_id, failed)
