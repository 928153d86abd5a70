"""Error taxonomy shared by the synchronizer, the query service, and the stores."""

from __future__ import annotations


class TaskboardError(Exception):
    """Base exception for Taskboard errors."""


class InvalidArgumentError(TaskboardError):
    """Raised when a caller violates a precondition. Nothing has been written.

    Attributes:
        entity_name: Entity type the request was about (``"task"``, ``"stage"``).
        error_key: Short machine-readable reason, e.g. ``"idexists"``.
    """

    def __init__(self, message: str, *, entity_name: str, error_key: str) -> None:
        super().__init__(message)
        self.message = message
        self.entity_name = entity_name
        self.error_key = error_key


class EntityNotFoundError(TaskboardError):
    """Raised when an id is absent from the record store."""

    def __init__(self, entity_name: str, entity_id: int) -> None:
        super().__init__(f"{entity_name.capitalize()} {entity_id} not found")
        self.entity_name = entity_name
        self.entity_id = entity_id


class StoreUnavailableError(TaskboardError):
    """Raised when the record store cannot be reached. Fatal to the operation."""


class IndexWriteFailure(TaskboardError):
    """An index mutation failed after the record store mutation succeeded.

    Never raised to callers of the synchronizer; it is built so the failure
    can be logged and counted with its context.
    """

    def __init__(self, entity_name: str, operation: str, entity_id: int | None, cause: Exception) -> None:
        super().__init__(f"Index {operation} failed for {entity_name} {entity_id}: {cause}")
        self.entity_name = entity_name
        self.operation = operation
        self.entity_id = entity_id
        self.cause = cause


class ConfigurationError(TaskboardError):
    """Raised when a backend is configured with an unknown name or bad options."""
