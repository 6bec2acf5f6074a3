"""Rebuild entities as they were at a past audit version."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from audit_trail.models.refs import EntityRef
from audit_trail.services.history import ancestors_of, audit_as_of, audits_for
from audit_trail.services.reconstruction import RevisionState, fold_forward, iter_states, reconstruct
from audit_trail.services.registry import registry

logger = logging.getLogger(__name__)


def assign_revision_attributes(record: Any, attributes: dict[str, Any]) -> Any:
    """Write reconstructed attributes onto ``record`` and return the instance that received them.

    Frozen (deleted) instances are copied first. Attributes the model cannot
    take, e.g. columns dropped since the audit was written, are skipped.
    """
    if record.is_frozen():
        record = record.mutable_copy()
    for name, value in attributes.items():
        if not record.apply_audited_attribute(name, value):
            logger.debug("[REVISION] %s has no field or setter for %r; skipped", type(record).__name__, name)
    return record


def _revision_base(db: Session, model: type, entity_id: int) -> Any:
    live = registry.load(db, EntityRef(type=registry.type_name_for(model), id=entity_id))
    if live is None:
        logger.debug("[REVISION] %s#%s has no live row; rebuilding on a new instance", model.__name__, entity_id)
        return model()
    # Revisions never join the session, so flushing it cannot write history back.
    return live.mutable_copy()


def materialize(db: Session, entity_type: str, entity_id: int, target_version: int) -> Any:
    """Return the entity as it looked right after audit ``target_version``."""
    model = registry.model_for(entity_type)
    record = _revision_base(db, model, entity_id)
    attributes = fold_forward(ancestors_of(db, entity_type, entity_id, target_version))
    attributes["version"] = target_version
    return assign_revision_attributes(record, attributes)


def revision_state(db: Session, entity_type: str, entity_id: int, version: int) -> RevisionState:
    """Reconstructed attributes at ``version`` without building a model instance."""
    return reconstruct(ancestors_of(db, entity_type, entity_id, version))


def revisions(db: Session, entity_type: str, entity_id: int, from_version: int = 1) -> Iterator[Any]:
    """Yield one rebuilt instance per version, starting at ``from_version``."""
    model = registry.model_for(entity_type)
    for state in iter_states(audits_for(db, entity_type, entity_id)):
        if state.version < from_version:
            continue
        attributes = dict(state.attributes)
        attributes["version"] = state.version
        yield assign_revision_attributes(_revision_base(db, model, entity_id), attributes)


def revision_at(db: Session, entity_type: str, entity_id: int, moment: datetime) -> Any | None:
    """The entity as of ``moment``, or None when it had no audits by then."""
    audit = audit_as_of(db, entity_type, entity_id, moment)
    if audit is None:
        return None
    return materialize(db, entity_type, entity_id, audit.version)
