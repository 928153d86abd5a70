"""Tests for building stores and indexes from settings."""

from __future__ import annotations

import pytest

from taskboard.config.settings import IndexSettings, StoreSettings
from taskboard.core.backends import _load, build_record_store, build_search_index
from taskboard.core.errors import ConfigurationError
from taskboard.index.meilisearch.adapter import MeiliSearchIndex
from taskboard.index.memory.adapter import InMemorySearchIndex
from taskboard.index.opensearch.adapter import OpenSearchIndex
from taskboard.stores.memory import InMemoryRecordStore
from taskboard.stores.sql import SqlAlchemyRecordStore


class TestBuildRecordStore:
    def test_memory(self) -> None:
        store = build_record_store(StoreSettings(), "task")
        assert isinstance(store, InMemoryRecordStore)

    def test_sqlalchemy_uses_entity_table(self) -> None:
        store = build_record_store(StoreSettings(backend="sqlalchemy", url="sqlite+aiosqlite:///x.db"), "task")
        assert isinstance(store, SqlAlchemyRecordStore)
        assert store._table.name == "task"
        assert store._url == "sqlite+aiosqlite:///x.db"


class TestBuildSearchIndex:
    def test_memory(self) -> None:
        assert isinstance(build_search_index(IndexSettings(), "stage"), InMemorySearchIndex)

    def test_meilisearch(self) -> None:
        index = build_search_index(
            IndexSettings(backend="meilisearch", hosts=["http://meili:7700"], api_key="k", index_prefix="tb"),
            "task",
        )
        assert isinstance(index, MeiliSearchIndex)
        assert index._base_url == "http://meili:7700"
        assert index._index == "tb-task"
        assert index._api_key == "k"

    def test_opensearch_with_extra(self) -> None:
        index = build_search_index(
            IndexSettings(
                backend="opensearch",
                hosts='["https://os:9200"]',
                username="admin",
                password="secret",
                extra={"verify_certs": False},
            ),
            "stage",
        )
        assert isinstance(index, OpenSearchIndex)
        assert index._hosts == ["https://os:9200"]
        assert index._index == "taskboard-stage"
        assert index._verify_certs is False
        assert index._extra_kwargs == {"timeout": 10.0}


class TestLoad:
    def test_unknown_backend(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown index backend"):
            _load("index", {}, "solr")
