"""Backend factory — builds the record store and search index for an entity type from settings.

Backend classes are imported lazily so optional dependencies (``opensearch-py``,
``sqlalchemy``) are only needed when their backend is configured.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from taskboard.config.settings import IndexSettings, StoreSettings
from taskboard.core.errors import ConfigurationError
from taskboard.index.base.adapter import SearchIndex
from taskboard.stores.base import RecordStore

logger = logging.getLogger(__name__)

# Maps backend names to (module_path, class_name) for lazy import
_STORE_MAP: dict[str, tuple[str, str]] = {
    "memory": ("taskboard.stores.memory", "InMemoryRecordStore"),
    "sqlalchemy": ("taskboard.stores.sql", "SqlAlchemyRecordStore"),
}

_INDEX_MAP: dict[str, tuple[str, str]] = {
    "memory": ("taskboard.index.memory.adapter", "InMemorySearchIndex"),
    "meilisearch": ("taskboard.index.meilisearch.adapter", "MeiliSearchIndex"),
    "opensearch": ("taskboard.index.opensearch.adapter", "OpenSearchIndex"),
}


def _load(kind: str, mapping: dict[str, tuple[str, str]], backend: str) -> type:
    entry = mapping.get(backend)
    if entry is None:
        raise ConfigurationError(f"Unknown {kind} backend '{backend}'. Available: {sorted(mapping)}")
    module_path, class_name = entry
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ConfigurationError(f"Failed to import {kind} backend '{backend}': {e}") from e
    return getattr(module, class_name)


def build_record_store(settings: StoreSettings, entity_name: str) -> RecordStore:
    """Create (but do not initialize) the record store for one entity type."""
    store_class = _load("store", _STORE_MAP, settings.backend)
    kwargs: dict[str, Any] = {}
    if settings.backend == "sqlalchemy":
        kwargs.update(url=settings.url, table=entity_name, echo=settings.echo)
    else:
        kwargs["collection"] = entity_name
    logger.debug("Building %s record store for %s", settings.backend, entity_name)
    return store_class(**kwargs)


def build_search_index(settings: IndexSettings, entity_name: str) -> SearchIndex:
    """Create (but do not initialize) the search index for one entity type.

    The physical index is named ``<index_prefix>-<entity_name>``.
    """
    index_class = _load("index", _INDEX_MAP, settings.backend)
    kwargs: dict[str, Any] = {"index": f"{settings.index_prefix}-{entity_name}"}

    if settings.backend == "meilisearch":
        if settings.hosts:
            kwargs["base_url"] = settings.hosts[0]
        if settings.api_key:
            kwargs["api_key"] = settings.api_key
        kwargs["timeout"] = settings.timeout
    elif settings.backend == "opensearch":
        if settings.hosts:
            kwargs["hosts"] = settings.hosts
        if settings.username:
            kwargs["username"] = settings.username
        if settings.password:
            kwargs["password"] = settings.password
        kwargs["timeout"] = settings.timeout

    # Pass through any extra config
    if settings.backend != "memory":
        kwargs.update(settings.extra)
    logger.debug("Building %s search index for %s", settings.backend, entity_name)
    return index_class(**kwargs)
