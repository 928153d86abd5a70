"""Base index interface — Abstract classes for search index backends."""

from taskboard.index.base.adapter import IndexResults, SearchIndex

__all__ = ["IndexResults", "SearchIndex"]
