"""Audit creation and the lifecycle hooks that trigger it."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event, insert, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from audit_trail.core.config import settings
from audit_trail.models.audit import AUDIT_ACTIONS, Audit
from audit_trail.models.refs import EntityRef
from audit_trail.services.attribution import is_auditing_enabled
from audit_trail.services.changes import changed_pairs, snapshot, to_payload_value
from audit_trail.services.registry import ALL_ACTIONS, AuditConfig, registry
from audit_trail.services.versioning import VersionConflictError, is_version_taken

logger = logging.getLogger(__name__)


def write_audit(
    connection: Connection,
    auditable: EntityRef,
    action: str,
    changes: dict[str, Any],
    *,
    actor: Any = None,
    associated: EntityRef | None = None,
) -> int:
    """Insert one audit row on ``connection`` and return its id.

    The version is read as max + 1 and claimed by the insert itself; when a
    concurrent writer claimed it first the unique index rejects the row and the
    read-increment-insert sequence is retried inside a fresh SAVEPOINT.
    """
    if action not in AUDIT_ACTIONS:
        raise ValueError(f"Unknown audit action: {action!r}")

    attempts = max(1, settings.version_conflict_retries)
    for attempt in range(1, attempts + 1):
        audit = Audit(action=action, audited_changes=changes)
        audit.auditable_ref = auditable
        audit.associated_ref = associated
        audit.actor = actor
        audit.prepare(connection)
        try:
            with connection.begin_nested():
                result = connection.execute(insert(Audit.__table__).values(**audit.column_values()))
        except IntegrityError:
            if not is_version_taken(connection, audit.auditable_type, audit.auditable_id, audit.version):
                raise
            logger.warning(
                "[VERSION] %s version %s already taken (attempt %s/%s)",
                auditable,
                audit.version,
                attempt,
                attempts,
            )
            continue

        audit_id = result.inserted_primary_key[0]
        logger.debug("[AUDIT] %s %s v%s by %s", action, auditable, audit.version, audit.actor or "anonymous")
        return audit_id

    raise VersionConflictError(auditable.type, auditable.id, attempts)


def create_audit(
    db: Session,
    entity_ref: EntityRef,
    actor: Any,
    action: str,
    diff_payload: dict[str, Any],
    *,
    associated: EntityRef | None = None,
) -> Audit:
    """Record a change made outside the ORM hooks and return the stored audit."""
    changes = {name: to_payload_value(value) for name, value in diff_payload.items()}
    audit_id = write_audit(db.connection(), entity_ref, action, changes, actor=actor, associated=associated)
    return db.get(Audit, audit_id)


def _config_if_auditing(target: Any, action: str) -> AuditConfig | None:
    if not is_auditing_enabled():
        return None
    config = registry.config_for(type(target))
    if action not in config.on:
        return None
    return config


def _after_insert(mapper, connection: Connection, target: Any) -> None:
    config = _config_if_auditing(target, "create")
    if config is None:
        return
    changes = snapshot(target, config.audited_columns(mapper))
    write_audit(connection, registry.ref_for(target), "create", changes, associated=config.associated_ref(target))


def _after_update(mapper, connection: Connection, target: Any) -> None:
    config = _config_if_auditing(target, "update")
    if config is None:
        return
    changes = changed_pairs(target, config.audited_columns(mapper))
    if not changes:
        return
    write_audit(connection, registry.ref_for(target), "update", changes, associated=config.associated_ref(target))


def _after_delete(mapper, connection: Connection, target: Any) -> None:
    config = _config_if_auditing(target, "delete")
    if config is None:
        return
    changes = snapshot(target, config.audited_columns(mapper))
    write_audit(connection, registry.ref_for(target), "delete", changes, associated=config.associated_ref(target))


def _load_previous_value(target: Any, value: Any, oldvalue: Any, initiator: Any) -> None:
    """No-op "set" listener; registering it with active_history keeps replaced values in history."""


@event.listens_for(Session, "before_flush")
def _load_deleted_state(session: Session, flush_context, instances) -> None:
    # Expired columns of rows about to be deleted are loaded now, while loading is still allowed.
    for target in session.deleted:
        if not registry.is_audited(type(target)):
            continue
        unloaded = inspect(target).unloaded
        for key in registry.config_for(type(target)).audited_columns():
            if key in unloaded:
                getattr(target, key)


def register_audited(
    model: type,
    *,
    type_name: str | None = None,
    only: list[str] | tuple[str, ...] | None = None,
    exclude: list[str] | tuple[str, ...] = (),
    on: list[str] | tuple[str, ...] = ALL_ACTIONS,
    associated: tuple[str, str] | None = None,
) -> AuditConfig:
    """Register ``model`` for auditing and attach its create/update/delete hooks."""
    config, created = registry.add_audited(
        model,
        type_name=type_name,
        only=only,
        exclude=exclude,
        on=on,
        associated=associated,
    )
    if not created:
        return config

    event.listen(model, "after_insert", _after_insert)
    event.listen(model, "after_update", _after_update)
    event.listen(model, "after_delete", _after_delete)
    for key in config.audited_columns():
        event.listen(getattr(model, key), "set", _load_previous_value, active_history=True)
    return config


def audited(**options: Any):
    """Class decorator form of ``register_audited``."""

    def decorator(model: type) -> type:
        register_audited(model, **options)
        return model

    return decorator


def list_audited_types() -> set[str]:
    return registry.audited_types()
