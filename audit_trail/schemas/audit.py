"""Audit trail API schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class EntityRefRead(BaseModel):
    type: str
    id: int

    model_config = ConfigDict(from_attributes=True)


class AuditRead(BaseModel):
    """Serialized audit record."""

    id: int
    auditable: EntityRefRead
    associated: EntityRefRead | None = None
    actor: EntityRefRead | str | None = None
    action: str
    version: int
    audited_changes: dict[str, Any]
    group_tag: str | None = None
    group_comment: str | None = None
    created_at: datetime


class RevisionRead(BaseModel):
    """Entity attributes reconstructed at one version."""

    entity_type: str
    entity_id: int
    version: int
    action: str
    was_deleted: bool
    attributes: dict[str, Any]


class AuditedTypesResponse(BaseModel):
    items: list[str]
