"""Entity models — Stage and Task, the two record types kept in sync across stores.

Entities are plain value objects until they are created: ``id`` is ``None``
until the record store assigns one. Equality and hashing use the id only, so
two unsaved entities are never equal even when all their fields match.

Stores and indexes never see these models directly. They exchange flat JSON
documents produced by ``to_document()`` and read back with ``from_document()``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field


class Entity(BaseModel):
    """Base class for records with a store-assigned integer identity."""

    entity_name: ClassVar[str] = "entity"

    id: int | None = Field(default=None, description="Identity assigned by the record store on creation")

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if other is None or type(other) is not type(self):
            return False
        if self.id is None or other.id is None:  # type: ignore[attr-defined]
            return False
        return self.id == other.id  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        return hash(self.id)

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON document stored and indexed for this entity."""
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Entity:
        """Rebuild an entity from a stored or indexed document."""
        return cls.model_validate(document)


class Stage(Entity):
    """A Stage. Only the identity is declared; any other attribute is kept as supplied."""

    model_config = ConfigDict(extra="allow")

    entity_name: ClassVar[str] = "stage"

    def __str__(self) -> str:
        return f"Stage{{id={self.id}}}"


class Task(Entity):
    """A Task, optionally assigned to one Stage.

    The stage is referenced by id only. Deleting the stage does not touch the
    task, so ``stage.id`` may point at a stage that no longer exists.
    """

    entity_name: ClassVar[str] = "task"

    action: str | None = Field(default=None, description="Free-text label")
    deadline: date | None = Field(default=None, description="Due date (no time component)")
    user: str | None = Field(default=None, description="Owner identifier")
    stage: Stage | None = Field(default=None, description="Assigned stage, by reference")

    def to_document(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "user": self.user,
            "stage_id": self.stage.id if self.stage else None,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> Task:
        stage_id = document.get("stage_id")
        return cls(
            id=document.get("id"),
            action=document.get("action"),
            deadline=document.get("deadline"),
            user=document.get("user"),
            stage=Stage(id=stage_id) if stage_id is not None else None,
        )

    def __str__(self) -> str:
        return (
            f"Task{{id={self.id}, action='{self.action}', deadline='{self.deadline}', "
            f"user='{self.user}', stage={self.stage.id if self.stage else None}}}"
        )
