"""Models used by the test suite to exercise auditing."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from audit_trail.db.base import Base
from audit_trail.models import AuditedMixin
from audit_trail.services.audit_service import audited, register_audited
from audit_trail.services.registry import registry


class User(Base):
    """Actor type: registered for references but not audited itself."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)


class Widget(AuditedMixin, Base):
    __tablename__ = "widgets"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    released_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    def set_label(self, value: str) -> None:
        self.label = value


class Part(AuditedMixin, Base):
    __tablename__ = "parts"

    id: Mapped[int] = mapped_column(primary_key=True)
    widget_id: Mapped[int | None] = mapped_column(ForeignKey("widgets.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(32), nullable=True)


@audited(exclude=["body"], on=["create", "update"])
class Note(AuditedMixin, Base):
    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)


registry.register_model(User)
register_audited(Widget)
register_audited(Part, only=["name", "widget_id"], associated=("Widget", "widget_id"))
