"""Per-entity version numbering for audits."""

from sqlalchemy import func, select
from sqlalchemy.engine import Connection

from audit_trail.models.audit import Audit


class VersionConflictError(Exception):
    """Raised when concurrent writers kept claiming the same audit version."""

    def __init__(self, auditable_type: str, auditable_id: int, attempts: int) -> None:
        super().__init__(f"Could not assign an audit version to {auditable_type}#{auditable_id} after {attempts} attempts")
        self.auditable_type = auditable_type
        self.auditable_id = auditable_id
        self.attempts = attempts


def current_max_version(connection: Connection, auditable_type: str, auditable_id: int) -> int | None:
    """Return the highest stored version for one entity, or None if it has no audits."""
    return connection.execute(
        select(func.max(Audit.version)).where(
            Audit.auditable_type == auditable_type,
            Audit.auditable_id == auditable_id,
        )
    ).scalar_one_or_none()


def next_version(connection: Connection, auditable_type: str, auditable_id: int) -> int:
    """Return the version the next audit of this entity should carry."""
    return (current_max_version(connection, auditable_type, auditable_id) or 0) + 1


def is_version_taken(connection: Connection, auditable_type: str, auditable_id: int, version: int) -> bool:
    """True when another writer already stored ``version`` for this entity."""
    return (current_max_version(connection, auditable_type, auditable_id) or 0) >= version
