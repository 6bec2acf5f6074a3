"""Read-only queries over stored audits."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from audit_trail.models.audit import Audit
from audit_trail.models.refs import EntityRef


def ancestors_of(db: Session, entity_type: str, entity_id: int, upto_version: int) -> list[Audit]:
    """Audits of one entity up to and including ``upto_version``, oldest first."""
    return list(
        db.scalars(
            select(Audit)
            .where(
                Audit.auditable_type == entity_type,
                Audit.auditable_id == entity_id,
                Audit.version <= upto_version,
            )
            .order_by(Audit.version.asc())
        ).all()
    )


def audits_for(db: Session, entity_type: str, entity_id: int, *, descending: bool = False) -> list[Audit]:
    order = Audit.version.desc() if descending else Audit.version.asc()
    return list(
        db.scalars(
            select(Audit).where(Audit.auditable_type == entity_type, Audit.auditable_id == entity_id).order_by(order)
        ).all()
    )


def audits_associated_with(db: Session, parent: EntityRef) -> list[Audit]:
    """Audits of child rows registered with ``associated`` pointing at ``parent``."""
    return list(
        db.scalars(
            select(Audit)
            .where(Audit.associated_type == parent.type, Audit.associated_id == parent.id)
            .order_by(Audit.created_at.asc(), Audit.id.asc())
        ).all()
    )


def audit_as_of(db: Session, entity_type: str, entity_id: int, moment: datetime) -> Audit | None:
    """Latest audit of one entity created at or before ``moment``."""
    return db.scalar(
        select(Audit)
        .where(
            Audit.auditable_type == entity_type,
            Audit.auditable_id == entity_id,
            Audit.created_at <= moment,
        )
        .order_by(Audit.version.desc())
        .limit(1)
    )
