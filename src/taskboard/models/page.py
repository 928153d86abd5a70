"""Pagination models shared by the list and search read paths."""

from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field

from taskboard.models.entity import Entity

EntityT = TypeVar("EntityT", bound=Entity)


class PageRequest(BaseModel):
    """A zero-based page index and a page size."""

    page: int = Field(default=0, ge=0, description="Zero-based page index")
    size: int = Field(default=20, ge=1, description="Maximum number of items per page")

    @property
    def offset(self) -> int:
        return self.page * self.size

    def clamp(self, max_size: int) -> PageRequest:
        """Return a request whose size does not exceed ``max_size``."""
        if self.size <= max_size:
            return self
        return PageRequest(page=self.page, size=max_size)


class Page(BaseModel, Generic[EntityT]):
    """One page of entities plus what a client needs to navigate the rest."""

    content: list[EntityT] = Field(default_factory=list, description="Entities on this page")
    page: int = Field(description="Zero-based index of this page")
    size: int = Field(description="Requested page size")
    total_elements: int = Field(description="Number of matching entities across all pages")
    total_pages: int = Field(description="Number of pages at this size")
    query: str | None = Field(default=None, description="Search query echoed back (search only)")

    @classmethod
    def of(
        cls,
        content: list[EntityT],
        request: PageRequest,
        total_elements: int,
        query: str | None = None,
    ) -> Page[EntityT]:
        return cls(
            content=content,
            page=request.page,
            size=request.size,
            total_elements=total_elements,
            total_pages=math.ceil(total_elements / request.size),
            query=query,
        )

    @property
    def is_first(self) -> bool:
        return self.page == 0

    @property
    def is_last(self) -> bool:
        return self.page >= self.total_pages - 1

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 0
