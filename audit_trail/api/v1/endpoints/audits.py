"""Audit trail read endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from audit_trail.db.session import get_db
from audit_trail.models import Audit
from audit_trail.schemas.audit import AuditRead, AuditedTypesResponse, EntityRefRead, RevisionRead
from audit_trail.services.history import audits_for
from audit_trail.services.registry import registry
from audit_trail.services.revision_service import revision_state

router = APIRouter()


def _require_audited_type(entity_type: str) -> None:
    if entity_type not in registry.audited_types():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Type {entity_type} is not audited")


def _to_read(audit: Audit) -> AuditRead:
    actor = audit.actor
    return AuditRead(
        id=audit.id,
        auditable=EntityRefRead.model_validate(audit.auditable_ref),
        associated=EntityRefRead.model_validate(audit.associated_ref) if audit.associated_ref else None,
        actor=EntityRefRead.model_validate(actor) if actor is not None and not isinstance(actor, str) else actor,
        action=audit.action,
        version=audit.version,
        audited_changes=audit.audited_changes,
        group_tag=audit.group_tag,
        group_comment=audit.group_comment,
        created_at=audit.created_at,
    )


@router.get("/types", response_model=AuditedTypesResponse, summary="List audited entity types")
def list_types() -> AuditedTypesResponse:
    return AuditedTypesResponse(items=sorted(registry.audited_types()))


@router.get("/{entity_type}/{entity_id}", response_model=list[AuditRead])
def list_audits(entity_type: str, entity_id: int, descending: bool = False, db: Session = Depends(get_db)) -> list[AuditRead]:
    _require_audited_type(entity_type)
    return [_to_read(audit) for audit in audits_for(db, entity_type, entity_id, descending=descending)]


@router.get("/{entity_type}/{entity_id}/revisions/{version}", response_model=RevisionRead)
def get_revision(entity_type: str, entity_id: int, version: int, db: Session = Depends(get_db)) -> RevisionRead:
    """Return the entity's attributes as of ``version``."""
    _require_audited_type(entity_type)
    state = revision_state(db, entity_type, entity_id, version)
    if state.version is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No audits for {entity_type}#{entity_id}")
    return RevisionRead(
        entity_type=entity_type,
        entity_id=entity_id,
        version=state.version,
        action=state.action,
        was_deleted=state.was_deleted,
        attributes=state.attributes,
    )
