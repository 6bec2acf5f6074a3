"""Fold audit diffs into attribute snapshots."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from audit_trail.models.audit import Audit


class RevisionState(BaseModel):
    """Attributes of an entity as of one version, plus how that version came about."""

    model_config = ConfigDict(frozen=True)

    attributes: dict[str, Any]
    version: int | None = None
    action: str | None = None
    was_deleted: bool = False


def _is_pair(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and len(value) == 2


def new_value(action: str, value: Any) -> Any:
    """Value a field held after the change; malformed update entries count as the new value."""
    if action == "update" and _is_pair(value):
        return value[1]
    return value


def old_value(action: str, value: Any) -> Any:
    """Value a field held before the change."""
    if action == "update" and _is_pair(value):
        return value[0]
    return value


def _by_version(records: Iterable[Audit]) -> list[Audit]:
    return sorted(records, key=lambda record: record.version)


def fold_forward(records: Iterable[Audit]) -> dict[str, Any]:
    """Attributes as of the last record: later versions overwrite earlier ones field by field."""
    attributes: dict[str, Any] = {}
    for record in _by_version(records):
        for name, value in (record.audited_changes or {}).items():
            attributes[name] = new_value(record.action, value)
    return attributes


def fold_backward(records: Iterable[Audit]) -> dict[str, Any]:
    """Attributes as they were before the first record changed them."""
    attributes: dict[str, Any] = {}
    for record in reversed(_by_version(records)):
        for name, value in (record.audited_changes or {}).items():
            attributes[name] = old_value(record.action, value)
    return attributes


def iter_states(records: Iterable[Audit]) -> Iterator[RevisionState]:
    """Yield the running state after each record, oldest first."""
    attributes: dict[str, Any] = {}
    for record in _by_version(records):
        for name, value in (record.audited_changes or {}).items():
            attributes[name] = new_value(record.action, value)
        yield RevisionState(
            attributes=dict(attributes),
            version=record.version,
            action=record.action,
            was_deleted=record.action == "delete",
        )


def reconstruct(records: Iterable[Audit]) -> RevisionState:
    """Fold ``records`` forward and report whether the last of them deleted the entity."""
    ordered = _by_version(records)
    if not ordered:
        return RevisionState(attributes={})
    last = ordered[-1]
    return RevisionState(
        attributes=fold_forward(ordered),
        version=last.version,
        action=last.action,
        was_deleted=last.action == "delete",
    )
