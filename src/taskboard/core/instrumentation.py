"""Operation instrumentation — entry events and index-write failure events.

The synchronizer and the query service call an ``OperationRecorder``
explicitly at the start of every operation and whenever an index write
fails. The recorder logs a structured event and keeps in-process counters
that the health endpoint reports.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

import structlog

from taskboard.core.errors import IndexWriteFailure

logger = structlog.get_logger(__name__)


class OperationRecorder:
    """Counts operations and index-write failures per entity type."""

    def __init__(self) -> None:
        self._operations: Counter[str] = Counter()
        self._index_failures: Counter[str] = Counter()

    def operation(self, entity_name: str, operation: str, **fields: Any) -> None:
        """Record the start of an operation."""
        self._operations[f"{entity_name}.{operation}"] += 1
        logger.debug("operation", entity=entity_name, operation=operation, **fields)

    def index_write_failed(self, failure: IndexWriteFailure) -> None:
        """Record an index write that failed after the record store write succeeded."""
        self._index_failures[f"{failure.entity_name}.{failure.operation}"] += 1
        logger.warning(
            "index_write_failed",
            entity=failure.entity_name,
            operation=failure.operation,
            entity_id=failure.entity_id,
            error=str(failure.cause),
            error_type=type(failure.cause).__name__,
        )

    @property
    def operations(self) -> dict[str, int]:
        return dict(self._operations)

    @property
    def index_failures(self) -> dict[str, int]:
        return dict(self._index_failures)

    def index_failure_count(self, entity_name: str | None = None) -> int:
        """Total index-write failures, optionally for one entity type."""
        if entity_name is None:
            return sum(self._index_failures.values())
        prefix = f"{entity_name}."
        return sum(n for key, n in self._index_failures.items() if key.startswith(prefix))
