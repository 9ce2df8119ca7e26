# wholesale/services/reservation.py
"""
Stock reservation policies.

Both variants touch the shared counters only through single conditional UPDATE
statements, so two clients racing for the last units cannot both win:

- `OptimisticPolicy`: carts hold nothing; stock is deducted at checkout with
  ``stock = stock - n WHERE stock - reserved_stock >= n``.
- `EagerReservePolicy`: every cart change moves `reserved_stock` immediately with
  ``reserved_stock = reserved_stock + n WHERE stock - reserved_stock >= n``;
  checkout converts the hold into a sale.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import replace

from sqlalchemy import case, select, update
from sqlalchemy.orm import Session

from wholesale.core.exceptions import InsufficientStock, NotFoundError
from wholesale.core.logging import get_logger
from wholesale.models import Product
from wholesale.services.catalog import VariantSnapshot
from wholesale.services.stock_events import mark_stock_changed

logger = get_logger(__name__)


def _floored_release(quantity: int):
    return case(
        (Product.reserved_stock >= quantity, Product.reserved_stock - quantity),
        else_=0,
    )


class ReservationPolicy(ABC):
    name: str = ""
    holds_stock: bool = False

    # -------------------------------------------------------------- helpers
    def _execute(self, session: Session, stmt, product_id: int) -> bool:
        result = session.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount:
            mark_stock_changed(session, [product_id])
            return True
        return False

    def _current_available(self, session: Session, product_id: int) -> int:
        row = session.execute(
            select(Product.stock, Product.reserved_stock).where(Product.id == product_id)
        ).first()
        if row is None:
            raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
        return max(0, int(row.stock) - int(row.reserved_stock))

    def _insufficient(self, session: Session, product_id: int, quantity: int) -> InsufficientStock:
        available = self._current_available(session, product_id)
        logger.info("stock_conditional_update_rejected", product_id=product_id, requested=quantity, available=available)
        return InsufficientStock(
            f"Not enough stock. Only {available} units available.",
            product_id=product_id,
            available=available,
        )

    # -------------------------------------------------------------- contract
    def adjusted_snapshot(self, variant: VariantSnapshot, held: int) -> VariantSnapshot:
        """The variant as this cart should see it (its own holds excluded)."""
        return variant

    def reserve(self, session: Session, product_id: int, quantity: int) -> None:
        """Hold `quantity` more units for a cart."""

    def release(self, session: Session, product_id: int, quantity: int) -> None:
        """Give back `quantity` held units."""

    @abstractmethod
    def commit_sale(self, session: Session, product_id: int, quantity: int) -> None:
        """Deduct sold units from stock at checkout."""

    def restock(self, session: Session, product_id: int, quantity: int) -> None:
        """Return units to stock (order quantity lowered)."""
        if quantity <= 0:
            return
        stmt = update(Product).where(Product.id == product_id).values(stock=Product.stock + quantity)
        if not self._execute(session, stmt, product_id):
            raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")

    def sell_more(self, session: Session, product_id: int, quantity: int) -> None:
        """Deduct extra units for an edited order; never drives stock below held units."""
        if quantity <= 0:
            return
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock - Product.reserved_stock >= quantity)
            .values(stock=Product.stock - quantity)
        )
        if not self._execute(session, stmt, product_id):
            raise self._insufficient(session, product_id, quantity)


class OptimisticPolicy(ReservationPolicy):
    name = "optimistic"
    holds_stock = False

    def commit_sale(self, session: Session, product_id: int, quantity: int) -> None:
        self.sell_more(session, product_id, quantity)


class EagerReservePolicy(ReservationPolicy):
    name = "eager"
    holds_stock = True

    def adjusted_snapshot(self, variant: VariantSnapshot, held: int) -> VariantSnapshot:
        if not held:
            return variant
        return replace(variant, reserved_stock=max(0, variant.reserved_stock - held))

    def reserve(self, session: Session, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            return
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock - Product.reserved_stock >= quantity)
            .values(reserved_stock=Product.reserved_stock + quantity)
        )
        if not self._execute(session, stmt, product_id):
            raise self._insufficient(session, product_id, quantity)

    def release(self, session: Session, product_id: int, quantity: int) -> None:
        if quantity <= 0:
            return
        stmt = update(Product).where(Product.id == product_id).values(reserved_stock=_floored_release(quantity))
        self._execute(session, stmt, product_id)

    def commit_sale(self, session: Session, product_id: int, quantity: int) -> None:
        stmt = (
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity, reserved_stock=_floored_release(quantity))
        )
        if not self._execute(session, stmt, product_id):
            raise self._insufficient(session, product_id, quantity)


_POLICIES: dict[str, type[ReservationPolicy]] = {
    OptimisticPolicy.name: OptimisticPolicy,
    EagerReservePolicy.name: EagerReservePolicy,
}


def get_reservation_policy(name: str) -> ReservationPolicy:
    try:
        return _POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown reservation policy: {name!r}") from None
