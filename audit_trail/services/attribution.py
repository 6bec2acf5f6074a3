"""Scoped attribution of audits to an actor and a change group.

Audits pick up the active actor and group when they are written, so callers
establish them once around a unit of work instead of passing them to every
save. Values live in context variables: each thread and each asyncio task
sees its own values, nested scopes see the innermost one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any, TypeVar

from audit_trail.models.refs import AuditGroup

T = TypeVar("T")

_current_actor: ContextVar[Any | None] = ContextVar("audit_actor", default=None)
_current_group: ContextVar[AuditGroup | None] = ContextVar("audit_group", default=None)
_auditing_enabled: ContextVar[bool] = ContextVar("audit_enabled", default=True)


class AttributionLeakError(RuntimeError):
    """Raised when a scope cannot restore the value that was active on entry."""


def current_actor() -> Any | None:
    """Return the actor of the innermost active ``as_user`` scope."""
    return _current_actor.get()


def current_group() -> AuditGroup | None:
    """Return the tag and comment of the innermost active ``as_group`` scope."""
    return _current_group.get()


def is_auditing_enabled() -> bool:
    return _auditing_enabled.get()


@contextmanager
def _scoped(var: ContextVar, value: Any) -> Iterator[None]:
    token: Token = var.set(value)
    try:
        yield
    finally:
        try:
            var.reset(token)
        except ValueError as exc:
            raise AttributionLeakError(f"Could not restore {var.name}; scope left from another context") from exc


@contextmanager
def as_user(actor: Any) -> Iterator[None]:
    """Attribute every audit written inside the block to ``actor``.

    ``actor`` is a display string, an ``EntityRef`` or an instance of a
    registered model.
    """
    with _scoped(_current_actor, actor):
        yield


@contextmanager
def as_group(tag: str, comment: str) -> Iterator[None]:
    """Stamp every audit written inside the block with the same tag and comment."""
    with _scoped(_current_group, AuditGroup(tag=tag, comment=comment)):
        yield


@contextmanager
def auditing_disabled() -> Iterator[None]:
    """Suspend audit creation for the block, e.g. for fixtures or bulk imports."""
    with _scoped(_auditing_enabled, False):
        yield


def run_as(actor: Any, body: Callable[[], T]) -> T:
    """Call ``body`` with ``actor`` as the current actor and return its result."""
    with as_user(actor):
        return body()


def run_as_group(tag: str, comment: str, body: Callable[[], T]) -> T:
    """Call ``body`` inside an audit group and return its result."""
    with as_group(tag, comment):
        return body()
