"""Schema exports."""

from audit_trail.schemas.audit import AuditRead, AuditedTypesResponse, EntityRefRead, RevisionRead

__all__ = ["AuditRead", "AuditedTypesResponse", "EntityRefRead", "RevisionRead"]
