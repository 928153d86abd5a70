"""Record stores, the source of truth for entities."""

from taskboard.stores.base import RecordSlice, RecordStore

__all__ = ["RecordSlice", "RecordStore"]
