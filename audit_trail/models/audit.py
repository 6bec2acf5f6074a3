"""Immutable, versioned change records for audited entities."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, Enum, Index, Integer, JSON, String, Text, event
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapped, mapped_column, object_session

from audit_trail.db.base import Base
from audit_trail.models.refs import EntityRef
from audit_trail.services.attribution import current_actor, current_group
from audit_trail.services.reconstruction import fold_backward, fold_forward
from audit_trail.services.registry import registry

AUDIT_ACTIONS = ("create", "update", "delete")

Actor = EntityRef | str


class ImmutableAuditError(Exception):
    """Raised when a persisted audit record is about to be modified."""


class Audit(Base):
    """One diff applied to one entity, numbered within that entity's history.

    ``audited_changes`` maps field names to a single value for ``create`` and
    ``delete`` records and to an ``[old, new]`` pair for ``update`` records.
    """

    __tablename__ = "audits"

    id: Mapped[int] = mapped_column(primary_key=True)
    auditable_type: Mapped[str] = mapped_column(String(128), nullable=False)
    auditable_id: Mapped[int] = mapped_column(Integer, nullable=False)
    associated_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    associated_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    user_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    action: Mapped[str] = mapped_column(Enum(*AUDIT_ACTIONS, name="audit_action"), nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    audited_changes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    group_tag: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group_comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("uq_audits_auditable_version", "auditable_type", "auditable_id", "version", unique=True),
        Index("ix_audits_associated", "associated_type", "associated_id"),
        Index("ix_audits_user", "user_type", "user_id"),
        Index("ix_audits_created_at", "created_at"),
    )

    @property
    def auditable_ref(self) -> EntityRef:
        return EntityRef(type=self.auditable_type, id=self.auditable_id)

    @auditable_ref.setter
    def auditable_ref(self, ref: EntityRef) -> None:
        self.auditable_type = ref.type
        self.auditable_id = ref.id

    @property
    def associated_ref(self) -> EntityRef | None:
        if self.associated_type is None or self.associated_id is None:
            return None
        return EntityRef(type=self.associated_type, id=self.associated_id)

    @associated_ref.setter
    def associated_ref(self, ref: EntityRef | None) -> None:
        self.associated_type = ref.type if ref is not None else None
        self.associated_id = ref.id if ref is not None else None

    @property
    def actor(self) -> Actor | None:
        """Structured actor reference, or the plain display name when no user row applies."""
        if self.user_type is not None and self.user_id is not None:
            return EntityRef(type=self.user_type, id=self.user_id)
        return self.username

    @actor.setter
    def actor(self, value: Any) -> None:
        # Both forms are reset either way.
        self.user_type = self.user_id = self.username = None
        if value is None:
            return
        if isinstance(value, str):
            self.username = value
            return
        if not isinstance(value, EntityRef):
            value = registry.ref_for(value)
        self.user_type = value.type
        self.user_id = value.id

    @property
    def new_attributes(self) -> dict[str, Any]:
        """Changed fields with the values they held after this change."""
        return fold_forward([self])

    @property
    def old_attributes(self) -> dict[str, Any]:
        """Changed fields with the values they held before this change."""
        return fold_backward([self])

    def prepare(self, connection: Connection) -> None:
        """Run the before-create hooks: version number, actor, group, creation time."""
        self._set_version_number(connection)
        self._set_audit_user()
        self._set_audit_group()
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def column_values(self) -> dict[str, Any]:
        """Column values for a Core insert, primary key excluded."""
        return {column.key: getattr(self, column.key) for column in self.__table__.columns if not column.primary_key}

    def ancestors(self) -> list[Audit]:
        """Every audit of the same entity up to and including this one."""
        from audit_trail.services.history import ancestors_of

        return ancestors_of(self._require_session(), self.auditable_type, self.auditable_id, self.version)

    def revision(self) -> Any:
        """The entity as it looked right after this change."""
        from audit_trail.services.revision_service import materialize

        return materialize(self._require_session(), self.auditable_type, self.auditable_id, self.version)

    def _require_session(self):
        session = object_session(self)
        if session is None:
            raise RuntimeError(f"Audit {self.id} is not attached to a session")
        return session

    def _set_version_number(self, connection: Connection) -> None:
        from audit_trail.services.versioning import next_version

        self.version = next_version(connection, self.auditable_type, self.auditable_id)

    def _set_audit_user(self) -> None:
        actor = current_actor()
        if actor is not None:
            self.actor = actor

    def _set_audit_group(self) -> None:
        group = current_group()
        if group is not None:
            self.group_tag = group.tag
            self.group_comment = group.comment


@event.listens_for(Audit, "before_insert")
def _before_create(mapper, connection: Connection, target: Audit) -> None:
    """Prepare audits added to a session directly.

    These are flushed without a SAVEPOINT, so a version claimed concurrently
    surfaces as an ``IntegrityError`` from the flush. Use ``create_audit`` to
    get the bounded retry.
    """
    target.prepare(connection)


@event.listens_for(Audit, "before_update")
def _reject_update(mapper, connection: Connection, target: Audit) -> None:
    raise ImmutableAuditError(f"Audit {target.id} for {target.auditable_ref} is immutable")
