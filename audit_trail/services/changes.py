"""Capture column changes from SQLAlchemy attribute history as JSON-ready diffs."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from pydantic import TypeAdapter, ValidationError
from pydantic_core import to_jsonable_python
from sqlalchemy import Column, inspect

RESTORABLE_TYPES: tuple[type, ...] = (datetime, date, time, Decimal, uuid.UUID)


def to_payload_value(value: Any) -> Any:
    """Convert a column value into something the JSON payload column can store."""
    return to_jsonable_python(value)


def restore_value(column: Column, value: Any) -> Any:
    """Coerce a stored payload value back to the python type of ``column``."""
    if value is None:
        return None
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        return value
    if python_type not in RESTORABLE_TYPES or isinstance(value, python_type):
        return value
    try:
        return TypeAdapter(python_type).validate_python(value)
    except ValidationError:
        return value


def snapshot(target: Any, columns: list[str]) -> dict[str, Any]:
    """Values of ``columns`` as stored.

    A column the INSERT left out is recorded as ``None`` unless the database
    generates its value, in which case it is omitted.
    """
    state = inspect(target)
    loaded = state.dict
    values: dict[str, Any] = {}
    for key in columns:
        if key in loaded:
            values[key] = to_payload_value(loaded[key])
        elif state.mapper.columns[key].server_default is None:
            values[key] = None
    return values


def changed_pairs(target: Any, columns: list[str]) -> dict[str, list[Any]]:
    """``[old, new]`` pairs for columns whose pending history holds a real change."""
    attrs = inspect(target).attrs
    changes: dict[str, list[Any]] = {}
    for key in columns:
        history = attrs[key].history
        if not history.has_changes():
            continue
        old = to_payload_value(history.deleted[0]) if history.deleted else None
        new = to_payload_value(history.added[0]) if history.added else None
        if old != new:
            changes[key] = [old, new]
    return changes
