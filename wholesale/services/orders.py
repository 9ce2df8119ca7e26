# wholesale/services/orders.py
"""
Order submission and administration.

Submission writes the order, its items and the stock conversion in one transaction;
notifications go out only after commit and can never undo the order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from wholesale.core.exceptions import (
    ConflictError,
    InvalidQuantity,
    NotFoundError,
    PersistenceError,
    WholesaleException,
    WholesaleValidationError,
)
from wholesale.core.logging import get_logger
from wholesale.models import Order, OrderItem, OrderStatus
from wholesale.schemas.customer import CustomerInfo
from wholesale.schemas.notifications import NotificationItem, NotificationOrder
from wholesale.services.cart import CartManager
from wholesale.services.customers import customer_info, get_customer
from wholesale.services.email_service import DispatchResult, EmailService
from wholesale.services.reservation import ReservationPolicy

logger = get_logger(__name__)


@dataclass
class OrderSubmissionResult:
    order: Order
    warnings: list[str] = field(default_factory=list)
    notifications: dict[str, DispatchResult] = field(default_factory=dict)


def notification_order(order: Order) -> NotificationOrder:
    return NotificationOrder(
        id=order.id,
        created_at=order.created_at,
        total_amount=order.total_amount,
        status=OrderStatus(order.status).value,
    )


def notification_items(order: Order) -> list[NotificationItem]:
    return [
        NotificationItem(
            description=item.product.description if item.product else None,
            reference=item.product.reference if item.product else None,
            size=item.product.size if item.product else None,
            quantity=item.quantity,
            unit_price=item.unit_price,
        )
        for item in order.items
    ]


class OrderService:
    def __init__(
        self,
        session: Session,
        policy: ReservationPolicy,
        email_service: Optional[EmailService] = None,
    ) -> None:
        self.session = session
        self.policy = policy
        self.email_service = email_service

    # ------------------------------------------------------------------ submit
    def _resolve_customer(self, info: Optional[CustomerInfo], customer_id: Optional[str]) -> CustomerInfo:
        customer_id = customer_id or (info.customer_id if info else None)
        if customer_id:
            registered = customer_info(get_customer(self.session, customer_id))
            if info is None:
                return registered
            # inline details win; the registered record fills the gaps
            return registered.model_copy(update=info.model_dump(exclude_none=True))
        return info or CustomerInfo()

    def submit(
        self,
        cart: CartManager,
        customer: Optional[CustomerInfo] = None,
        customer_id: Optional[str] = None,
    ) -> OrderSubmissionResult:
        """Persist the cart as a pending order, deduct stock, notify, clear the cart."""
        with cart.lock:
            return self._submit(cart, customer, customer_id)

    def _submit(
        self, cart: CartManager, customer: Optional[CustomerInfo], customer_id: Optional[str]
    ) -> OrderSubmissionResult:
        info = self._resolve_customer(customer, customer_id)
        if not info.is_complete or cart.is_empty:
            raise WholesaleValidationError(
                "Customer name, email, and at least one cart item are required.",
                code="ORDER_INCOMPLETE",
            )

        order = Order(
            customer_id=info.customer_id,
            customer_name=info.name,
            customer_email=str(info.email),
            customer_company=info.company,
            customer_phone=info.phone,
            status=OrderStatus.PENDING,
        )
        try:
            self.session.add(order)
            for line in cart.items:
                self.policy.commit_sale(self.session, line.product_id, line.quantity)
                item = OrderItem(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=line.wholesale_price,
                )
                item.calculate_total()
                order.items.append(item)
            order.calculate_totals()
            self.session.commit()
        except WholesaleException:
            self.session.rollback()
            logger.warning("order_submit_rejected", cart_id=cart.cart_id, items=len(cart.items))
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("order_submit_failed", cart_id=cart.cart_id, error=str(e))
            raise PersistenceError("Failed to save order", code="ORDER_SAVE_FAILED") from e

        order = self.get_order(order.id)
        logger.info(
            "order_submitted",
            order_id=order.id,
            customer_email=order.customer_email,
            total_amount=str(order.total_amount),
            items=len(order.items),
            policy=self.policy.name,
        )

        result = OrderSubmissionResult(order=order)
        self._notify(result, info)
        cart.clear_cart()
        return result

    def _notify(self, result: OrderSubmissionResult, info: CustomerInfo) -> None:
        if self.email_service is None:
            return
        payload_order = notification_order(result.order)
        payload_items = notification_items(result.order)

        sends = (
            ("admin_notification", self.email_service.send_admin_notification),
            ("customer_confirmation", self.email_service.send_customer_confirmation),
        )
        for kind, send in sends:
            try:
                dispatch = send(payload_order, info, payload_items)
            except Exception as e:
                logger.exception("order_notification_crashed", order_id=result.order.id, kind=kind)
                dispatch = DispatchResult(success=False, error=f"{type(e).__name__}: {e}")
            result.notifications[kind] = dispatch
            if not dispatch.success:
                logger.warning("order_notification_failed", order_id=result.order.id, kind=kind, error=dispatch.error)
                result.warnings.append(f"Order placed, but email failed: {dispatch.error}")

    # ------------------------------------------------------------------ reads
    def _query(self):
        return select(Order).options(selectinload(Order.items).selectinload(OrderItem.product))

    def list_orders(self, status: Optional[OrderStatus] = None, customer_id: Optional[str] = None) -> list[Order]:
        stmt = self._query().order_by(Order.created_at.desc(), Order.id.desc())
        if status is not None:
            stmt = stmt.where(Order.status == OrderStatus(status))
        if customer_id is not None:
            stmt = stmt.where(Order.customer_id == customer_id)
        return list(self.session.scalars(stmt))

    def get_order(self, order_id: int) -> Order:
        order = self.session.scalars(self._query().where(Order.id == order_id)).first()
        if order is None:
            raise NotFoundError(f"Order {order_id} not found", code="ORDER_NOT_FOUND")
        return order

    # ------------------------------------------------------------------ admin
    def update_status(self, order_id: int, new_status: OrderStatus) -> Order:
        order = self.get_order(order_id)
        try:
            old_status = order.change_status(OrderStatus(new_status))
        except ValueError as e:
            raise ConflictError(str(e), code="ILLEGAL_STATUS_TRANSITION") from e

        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("order_status_update_failed", order_id=order_id, error=str(e))
            raise PersistenceError("Failed to update order status", code="ORDER_SAVE_FAILED") from e

        logger.info("order_status_changed", order_id=order_id, old=old_status.value, new=OrderStatus(new_status).value)
        return self.get_order(order_id)

    def edit_order_items(self, order_id: int, quantities: dict[int, int]) -> Order:
        """Set new quantities on a pending order's items and move stock by the difference."""
        order = self.get_order(order_id)
        if not order.is_editable:
            raise ConflictError(
                f"Only pending orders can be edited (order is {OrderStatus(order.status).value})",
                code="ORDER_NOT_EDITABLE",
            )

        items = {item.id: item for item in order.items}
        unknown = [item_id for item_id in quantities if item_id not in items]
        if unknown:
            raise NotFoundError(
                f"Order {order_id} has no item(s) {', '.join(map(str, unknown))}",
                code="ORDER_ITEM_NOT_FOUND",
            )
        if any(q <= 0 for q in quantities.values()):
            raise InvalidQuantity()

        try:
            for item_id, new_quantity in quantities.items():
                item = items[item_id]
                diff = new_quantity - item.quantity
                if diff > 0:
                    self.policy.sell_more(self.session, item.product_id, diff)
                elif diff < 0:
                    self.policy.restock(self.session, item.product_id, -diff)
                item.quantity = new_quantity
                item.calculate_total()
            order.calculate_totals()
            order.touch()
            self.session.commit()
        except WholesaleException:
            self.session.rollback()
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("order_edit_failed", order_id=order_id, error=str(e))
            raise PersistenceError("Failed to update order", code="ORDER_SAVE_FAILED") from e

        logger.info("order_items_edited", order_id=order_id, items=len(quantities), total=str(order.total_amount))
        return self.get_order(order_id)


__all__ = ["OrderService", "OrderSubmissionResult", "notification_order", "notification_items"]
