"""API dependencies — Dependency injection for FastAPI endpoints."""

from __future__ import annotations

from taskboard.core.engine import TaskboardEngine

# Global engine instance (set during application lifespan)
_engine: TaskboardEngine | None = None


def set_engine(engine: TaskboardEngine | None) -> None:
    """Set the global engine instance (called during app lifespan)."""
    global _engine
    _engine = engine


def get_engine() -> TaskboardEngine:
    """Get the global Taskboard engine instance.

    Returns:
        The initialized TaskboardEngine.

    Raises:
        RuntimeError: If the engine is not initialized.
    """
    if _engine is None:
        raise RuntimeError("Taskboard engine not initialized. Is the server running?")
    return _engine
