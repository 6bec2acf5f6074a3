"""Capability mixin for models whose history is audited."""

from __future__ import annotations

from typing import Any

from sqlalchemy import inspect

from audit_trail.models.refs import EntityRef
from audit_trail.services.changes import restore_value


class AuditedMixin:
    """Lets the revision builder write reconstructed attributes onto a model.

    Models override ``apply_audited_attribute`` when a reconstructed field has
    to be mapped onto something other than a same-named column or setter.
    """

    @property
    def version(self) -> int | None:
        """Audit version this instance was rebuilt at, ``None`` for live rows."""
        return self.__dict__.get("_audit_version")

    @version.setter
    def version(self, value: int | None) -> None:
        self.__dict__["_audit_version"] = value

    @property
    def audit_ref(self) -> EntityRef:
        from audit_trail.services.registry import registry

        return registry.ref_for(self)

    def apply_audited_attribute(self, name: str, value: Any) -> bool:
        """Assign one reconstructed attribute and report whether it was applied."""
        column_attrs = inspect(type(self)).column_attrs
        if name in column_attrs:
            setattr(self, name, restore_value(column_attrs[name].columns[0], value))
            return True

        setter = getattr(self, f"set_{name}", None)
        if callable(setter):
            setter(value)
            return True

        descriptor = getattr(type(self), name, None)
        if isinstance(descriptor, property) and descriptor.fset is not None:
            setattr(self, name, value)
            return True
        return False

    def is_frozen(self) -> bool:
        state = inspect(self)
        return state.deleted or state.was_deleted

    def mutable_copy(self) -> Any:
        """Transient copy carrying the column values, primary key included.

        Deleted rows can no longer be loaded, so their copy only carries what
        was already in memory.
        """
        keys = inspect(type(self)).column_attrs.keys()
        if self.is_frozen():
            loaded = inspect(self).dict
            values = {key: loaded[key] for key in keys if key in loaded}
        else:
            values = {key: getattr(self, key) for key in keys}
        copy = type(self)()
        for key, value in values.items():
            setattr(copy, key, value)
        return copy
