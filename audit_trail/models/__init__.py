"""Audit trail models package."""

from audit_trail.models.refs import AuditGroup, EntityRef
from audit_trail.models.mixins import AuditedMixin
from audit_trail.models.audit import AUDIT_ACTIONS, Audit, ImmutableAuditError

__all__ = ["AUDIT_ACTIONS", "Audit", "AuditGroup", "AuditedMixin", "EntityRef", "ImmutableAuditError"]
