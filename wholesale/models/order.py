# wholesale/models/order.py
from __future__ import annotations

import enum
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint, Enum as SQLEnum, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wholesale.models.base import CENTS, BaseModel, to_decimal

if TYPE_CHECKING:
    from wholesale.models.customer import Customer
    from wholesale.models.product import Product


# ---------------------------------------------------------------------------
# Status and allowed transitions
# ---------------------------------------------------------------------------
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------
class Order(BaseModel):
    __tablename__ = "orders"

    customer_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )

    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_company: Mapped[Optional[str]] = mapped_column(String(255))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32))

    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )

    customer: Mapped[Optional["Customer"]] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )

    __table_args__ = (CheckConstraint("total_amount >= 0", name="total_non_negative"),)

    @property
    def is_editable(self) -> bool:
        return self.status == OrderStatus.PENDING

    def calculate_totals(self) -> Decimal:
        total = sum((to_decimal(i.total_price) for i in self.items), Decimal("0"))
        self.total_amount = total.quantize(CENTS)
        return self.total_amount

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS.get(OrderStatus(self.status), set())

    def change_status(self, new_status: OrderStatus) -> OrderStatus:
        """Move to `new_status`; returns the previous status. Same-status is a no-op."""
        old_status = OrderStatus(self.status)
        if new_status == old_status:
            return old_status
        if not self.can_transition_to(new_status):
            raise ValueError(f"Transition {old_status.value} -> {new_status.value} is not allowed")
        self.status = new_status
        return old_status

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Order id={self.id} status={self.status} total={self.total_amount}>"


class OrderItem(BaseModel):
    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    order: Mapped["Order"] = relationship(back_populates="items")
    product: Mapped["Product"] = relationship(back_populates="order_items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("unit_price >= 0 AND total_price >= 0", name="prices_non_negative"),
        Index("ix_order_items_order_product", "order_id", "product_id"),
    )

    def calculate_total(self) -> Decimal:
        self.total_price = (to_decimal(self.unit_price) * int(self.quantity or 0)).quantize(CENTS)
        return self.total_price

    def __repr__(self) -> str:  # pragma: no cover
        return f"<OrderItem id={self.id} product={self.product_id} qty={self.quantity}>"
