"""Rebuilding entities at past versions."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from audit_trail.services.history import ancestors_of, audits_for
from audit_trail.services.registry import UnregisteredTypeError
from audit_trail.services.revision_service import (
    assign_revision_attributes,
    materialize,
    revision_at,
    revision_state,
    revisions,
)
from fixture_models import Widget


def _widget_with_three_versions(db: Session) -> Widget:
    widget = Widget(id=7, name="a", price=Decimal("1.00"))
    db.add(widget)
    db.commit()
    widget.name = "b"
    db.commit()
    widget.name = "c"
    widget.price = Decimal("2.00")
    db.commit()
    return widget


def test_materialize_rebuilds_the_entity_at_a_version(db: Session) -> None:
    _widget_with_three_versions(db)

    revision = materialize(db, "Widget", 7, 2)

    assert revision.name == "b"
    assert revision.price == Decimal("1.00")
    assert revision.version == 2
    assert revision.id == 7
    assert [audit.version for audit in ancestors_of(db, "Widget", 7, 2)] == [1, 2]


def test_materialize_is_repeatable_and_leaves_live_row_alone(db: Session) -> None:
    widget = _widget_with_three_versions(db)

    first = materialize(db, "Widget", 7, 1)
    second = materialize(db, "Widget", 7, 1)

    assert (first.name, first.price, first.version) == (second.name, second.price, second.version)
    assert first is not widget
    assert first not in db
    assert widget.name == "c"
    assert widget.version is None

    db.commit()
    assert len(audits_for(db, "Widget", 7)) == 3
    assert db.get(Widget, 7).name == "c"


def test_each_version_matches_its_folded_state(db: Session) -> None:
    _widget_with_three_versions(db)

    for version in (1, 2, 3):
        state = revision_state(db, "Widget", 7, version)
        revision = materialize(db, "Widget", 7, version)
        assert state.version == version
        assert revision.name == state.attributes["name"]
        assert revision.price == Decimal(state.attributes["price"])


def test_deleted_entity_is_rebuilt_on_a_new_instance(db: Session) -> None:
    widget = Widget(name="gone", price=Decimal("3.50"))
    db.add(widget)
    db.commit()
    widget_id = widget.id
    db.delete(widget)
    db.commit()

    state = revision_state(db, "Widget", widget_id, 2)
    revision = materialize(db, "Widget", widget_id, 2)

    assert state.was_deleted is True
    assert state.action == "delete"
    assert revision.id is None
    assert revision.name == "gone"
    assert revision.price == Decimal("3.50")
    assert revision.version == 2


def test_attributes_on_a_deleted_instance_go_to_a_copy(db: Session) -> None:
    widget = Widget(name="frozen")
    db.add(widget)
    db.commit()
    widget_id = widget.id
    db.delete(widget)
    db.flush()

    assert widget.is_frozen() is True
    revision = assign_revision_attributes(widget, {"name": "thawed"})

    assert revision is not widget
    assert revision.id == widget_id
    assert revision.name == "thawed"
    assert widget.name == "frozen"


def test_setters_are_used_and_unknown_attributes_skipped(db: Session) -> None:
    widget = Widget(name="plain")
    db.add(widget)
    db.commit()

    revision = assign_revision_attributes(widget.mutable_copy(), {"label": "shiny", "ghost": 1, "name": "renamed"})

    assert revision.label == "shiny"
    assert revision.name == "renamed"
    assert not hasattr(revision, "ghost")


def test_dates_and_decimals_survive_the_payload(db: Session) -> None:
    released = datetime(2024, 1, 2, 9, 30, tzinfo=timezone.utc)
    widget = Widget(name="dated", price=Decimal("12.50"), released_at=released)
    db.add(widget)
    db.commit()

    revision = materialize(db, "Widget", widget.id, 1)

    assert revision.released_at == released
    assert revision.price == Decimal("12.50")


def test_revision_at_picks_latest_audit_by_timestamp(db: Session) -> None:
    _widget_with_three_versions(db)

    latest = revision_at(db, "Widget", 7, datetime(2999, 1, 1, tzinfo=timezone.utc))

    assert latest is not None
    assert latest.version == 3
    assert latest.name == "c"
    assert revision_at(db, "Widget", 7, datetime(2000, 1, 1, tzinfo=timezone.utc)) is None


def test_revisions_yield_one_instance_per_version(db: Session) -> None:
    _widget_with_three_versions(db)

    assert [(revision.version, revision.name) for revision in revisions(db, "Widget", 7)] == [
        (1, "a"),
        (2, "b"),
        (3, "c"),
    ]
    assert [revision.version for revision in revisions(db, "Widget", 7, from_version=2)] == [2, 3]


def test_unknown_type_cannot_be_materialized(db: Session) -> None:
    with pytest.raises(UnregisteredTypeError):
        materialize(db, "Gizmo", 1, 1)


def test_first_version_keeps_columns_that_were_set_later(db: Session) -> None:
    widget = Widget(name="a")
    db.add(widget)
    db.commit()
    widget.price = Decimal("5.00")
    db.commit()

    first = materialize(db, "Widget", widget.id, 1)
    second = materialize(db, "Widget", widget.id, 2)

    assert first.price is None
    assert first.released_at is None
    assert second.price == Decimal("5.00")
