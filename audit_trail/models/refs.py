"""Typed references to persisted entities."""

from pydantic import BaseModel, ConfigDict


class EntityRef(BaseModel):
    """Reference to a row of a registered entity type by type name and primary key."""

    model_config = ConfigDict(frozen=True)

    type: str
    id: int

    def __str__(self) -> str:
        return f"{self.type}#{self.id}"


class AuditGroup(BaseModel):
    """Tag and comment shared by every audit written inside one grouping scope."""

    model_config = ConfigDict(frozen=True)

    tag: str
    comment: str
