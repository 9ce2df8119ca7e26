# wholesale/models/base.py
"""
Declarative base with naming conventions and the common id/timestamp columns.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import DateTime, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTIONS: dict[str, str] = {
    "ix": "ix__%(table_name)s__%(column_0_N_name)s",
    "uq": "uq__%(table_name)s__%(column_0_N_name)s",
    "ck": "ck__%(table_name)s__%(constraint_name)s",
    "fk": "fk__%(table_name)s__%(column_0_N_name)s__%(referred_table_name)s",
    "pk": "pk__%(table_name)s",
}

CENTS = Decimal("0.01")


def utc_now() -> datetime:
    """Naive UTC timestamp (columns are declared without timezone)."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_decimal(v: Any) -> Decimal:
    if v is None:
        return Decimal("0")
    if isinstance(v, Decimal):
        return v
    return Decimal(str(v))


class Base(DeclarativeBase):
    """Root declarative base (SQLAlchemy 2.x) with naming conventions."""

    metadata = MetaData(naming_convention=NAMING_CONVENTIONS)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    def touch(self) -> None:
        self.updated_at = utc_now()


class BaseModel(TimestampMixin, Base):
    """Common base for tables keyed by an integer id."""

    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    def to_dict(self) -> dict[str, Any]:
        return {col.name: getattr(self, col.name) for col in self.__table__.columns}  # type: ignore[attr-defined]

    def __repr__(self) -> str:  # pragma: no cover
        return f"<{self.__class__.__name__} id={self.id}>"
