"""Version sequencing tests."""

import pytest
from sqlalchemy.orm import Session

from audit_trail.core.config import settings
from audit_trail.services import versioning
from audit_trail.services.history import audits_for
from audit_trail.services.versioning import VersionConflictError, current_max_version, next_version
from fixture_models import Widget


def test_nth_audit_of_an_entity_has_version_n(db: Session) -> None:
    widget = Widget(name="v1")
    db.add(widget)
    db.commit()
    for index in range(2, 6):
        widget.name = f"v{index}"
        db.commit()

    audits = audits_for(db, "Widget", widget.id)
    assert [audit.version for audit in audits] == [1, 2, 3, 4, 5]
    assert [audit.action for audit in audits] == ["create", "update", "update", "update", "update"]


def test_versions_are_numbered_per_entity(db: Session) -> None:
    first = Widget(name="first")
    second = Widget(name="second")
    db.add_all([first, second])
    db.commit()
    first.name = "first again"
    db.commit()

    assert [audit.version for audit in audits_for(db, "Widget", first.id)] == [1, 2]
    assert [audit.version for audit in audits_for(db, "Widget", second.id)] == [1]


def test_next_version_starts_at_one(db: Session) -> None:
    connection = db.connection()

    assert current_max_version(connection, "Widget", 12345) is None
    assert next_version(connection, "Widget", 12345) == 1


def test_stale_version_read_is_retried(db: Session, monkeypatch) -> None:
    widget = Widget(name="racy")
    db.add(widget)
    db.commit()

    real_next_version = versioning.next_version
    calls: list[int] = []

    def stale_once(connection, auditable_type: str, auditable_id: int) -> int:
        calls.append(auditable_id)
        if len(calls) == 1:
            return 1
        return real_next_version(connection, auditable_type, auditable_id)

    monkeypatch.setattr(versioning, "next_version", stale_once)
    widget.name = "racy v2"
    db.commit()

    assert len(calls) == 2
    assert [audit.version for audit in audits_for(db, "Widget", widget.id)] == [1, 2]


def test_exhausted_retries_raise_version_conflict(db: Session, monkeypatch) -> None:
    widget = Widget(name="contested")
    db.add(widget)
    db.commit()
    widget_id = widget.id

    monkeypatch.setattr(settings, "version_conflict_retries", 2)
    monkeypatch.setattr(versioning, "next_version", lambda connection, auditable_type, auditable_id: 1)
    widget.name = "contested v2"

    with pytest.raises(VersionConflictError) as excinfo:
        db.commit()

    assert excinfo.value.attempts == 2
    db.rollback()
    assert [audit.version for audit in audits_for(db, "Widget", widget_id)] == [1]
    assert db.get(Widget, widget_id).name == "contested"
