"""Explicit registry of entity types known to the audit trail."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.orm import Mapper, Session

from audit_trail.models.mixins import AuditedMixin
from audit_trail.models.refs import EntityRef

logger = logging.getLogger(__name__)

ALL_ACTIONS: tuple[str, ...] = ("create", "update", "delete")
DEFAULT_IGNORED_COLUMNS: frozenset[str] = frozenset({"created_at", "updated_at", "created_on", "updated_on", "lock_version"})


class UnregisteredTypeError(KeyError):
    """Raised when a type name or class was never registered."""


@dataclass(frozen=True)
class AuditConfig:
    """How one registered model is audited."""

    type_name: str
    model: type
    only: frozenset[str] | None = None
    exclude: frozenset[str] = field(default_factory=frozenset)
    on: frozenset[str] = frozenset(ALL_ACTIONS)
    associated: tuple[str, str] | None = None

    def audited_columns(self, mapper: Mapper | None = None) -> list[str]:
        mapper = mapper or inspect(self.model)
        primary_keys = {column.key for column in mapper.primary_key}
        columns: list[str] = []
        for attr in mapper.column_attrs:
            key = attr.key
            if key in primary_keys or key in DEFAULT_IGNORED_COLUMNS or key in self.exclude:
                continue
            if self.only is not None and key not in self.only:
                continue
            columns.append(key)
        return columns

    def associated_ref(self, target: Any) -> EntityRef | None:
        """Reference to the parent row named by ``associated``, read from the loaded foreign key."""
        if self.associated is None:
            return None
        type_name, fk_column = self.associated
        parent_id = inspect(target).dict.get(fk_column)
        if parent_id is None:
            return None
        return EntityRef(type=type_name, id=parent_id)


class AuditRegistry:
    """Maps type names to model classes and audited models to their config."""

    def __init__(self) -> None:
        self._models: dict[str, type] = {}
        self._names: dict[type, str] = {}
        self._audited: dict[type, AuditConfig] = {}

    def register_model(self, model: type, type_name: str | None = None) -> str:
        """Make ``model`` resolvable by name, e.g. so it can act as an audit actor."""
        name = type_name or model.__name__
        existing = self._models.get(name)
        if existing is not None and existing is not model:
            raise ValueError(f"Type name {name!r} is already registered for {existing.__name__}")
        previous_name = self._names.get(model)
        if previous_name is not None and previous_name != name:
            raise ValueError(f"{model.__name__} is already registered as {previous_name!r}")
        self._models[name] = model
        self._names[model] = name
        return name

    def add_audited(
        self,
        model: type,
        *,
        type_name: str | None = None,
        only: list[str] | tuple[str, ...] | None = None,
        exclude: list[str] | tuple[str, ...] = (),
        on: list[str] | tuple[str, ...] = ALL_ACTIONS,
        associated: tuple[str, str] | None = None,
    ) -> tuple[AuditConfig, bool]:
        """Record ``model`` as audited; returns the config and whether it is new."""
        if not issubclass(model, AuditedMixin):
            raise TypeError(f"{model.__name__} must inherit AuditedMixin to be audited")
        unknown_actions = set(on) - set(ALL_ACTIONS)
        if unknown_actions:
            raise ValueError(f"Unknown audit actions: {sorted(unknown_actions)}")

        existing = self._audited.get(model)
        if existing is not None:
            return existing, False

        name = self.register_model(model, type_name)
        config = AuditConfig(
            type_name=name,
            model=model,
            only=frozenset(only) if only is not None else None,
            exclude=frozenset(exclude),
            on=frozenset(on),
            associated=associated,
        )
        self._audited[model] = config
        logger.info("[REGISTRY] auditing %s (%s)", name, ", ".join(sorted(config.on)))
        return config, True

    def audited_types(self) -> set[str]:
        return {config.type_name for config in self._audited.values()}

    def audited_classes(self) -> list[type]:
        return list(self._audited)

    def is_audited(self, model: type) -> bool:
        return model in self._audited

    def model_for(self, type_name: str) -> type:
        try:
            return self._models[type_name]
        except KeyError:
            raise UnregisteredTypeError(type_name) from None

    def config_for(self, model: type) -> AuditConfig:
        try:
            return self._audited[model]
        except KeyError:
            raise UnregisteredTypeError(model.__name__) from None

    def type_name_for(self, model: type) -> str:
        try:
            return self._names[model]
        except KeyError:
            raise UnregisteredTypeError(model.__name__) from None

    def ref_for(self, instance: Any) -> EntityRef:
        """Reference to a persisted instance of a registered model."""
        type_name = self.type_name_for(type(instance))
        state = inspect(instance)
        # Identity keys are only assigned once a flush completes; mapper hooks run before that.
        primary_key = state.identity or state.mapper.primary_key_from_instance(instance)
        if not primary_key or primary_key[0] is None:
            raise ValueError(f"{type_name} instance has no primary key yet")
        return EntityRef(type=type_name, id=primary_key[0])

    def load(self, session: Session, ref: EntityRef) -> Any | None:
        return session.get(self.model_for(ref.type), ref.id)


registry: AuditRegistry = AuditRegistry()
