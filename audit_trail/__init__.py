"""Versioned audit trail for SQLAlchemy models."""

from audit_trail.models import Audit, AuditedMixin, EntityRef, ImmutableAuditError
from audit_trail.services.attribution import (
    AttributionLeakError,
    as_group,
    as_user,
    auditing_disabled,
    current_actor,
    current_group,
    run_as,
    run_as_group,
)
from audit_trail.services.audit_service import audited, create_audit, list_audited_types, register_audited
from audit_trail.services.history import ancestors_of, audits_for
from audit_trail.services.reconstruction import RevisionState, fold_backward, fold_forward, reconstruct
from audit_trail.services.registry import UnregisteredTypeError, registry
from audit_trail.services.revision_service import materialize, revision_at, revision_state, revisions
from audit_trail.services.versioning import VersionConflictError

__all__ = [
    "AttributionLeakError",
    "Audit",
    "AuditedMixin",
    "EntityRef",
    "ImmutableAuditError",
    "RevisionState",
    "UnregisteredTypeError",
    "VersionConflictError",
    "ancestors_of",
    "as_group",
    "as_user",
    "audited",
    "audits_for",
    "auditing_disabled",
    "create_audit",
    "current_actor",
    "current_group",
    "fold_backward",
    "fold_forward",
    "list_audited_types",
    "materialize",
    "reconstruct",
    "register_audited",
    "registry",
    "revision_at",
    "revision_state",
    "revisions",
    "run_as",
    "run_as_group",
]
