# wholesale/models/customer.py
from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from wholesale.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from wholesale.models.order import Order


class Customer(TimestampMixin, Base):
    """A registered wholesale buyer; `id` is the slug used in the customer link."""

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    business_name: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(32))

    orders: Mapped[list["Order"]] = relationship(back_populates="customer")

    @validates("id", "business_name", "contact_name", "email")
    def _validate_required(self, key: str, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError(f"{key} must be non-empty")
        return v

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Customer id={self.id!r} business={self.business_name!r}>"
