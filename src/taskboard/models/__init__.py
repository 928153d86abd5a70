"""Entity, paging and health models."""

from taskboard.models.entity import Entity, Stage, Task
from taskboard.models.health import BackendHealth
from taskboard.models.page import Page, PageRequest

__all__ = ["BackendHealth", "Entity", "Page", "PageRequest", "Stage", "Task"]
