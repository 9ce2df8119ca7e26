# wholesale/services/cart.py
"""
Shopping cart.

`CartManager` is the pure, per-session cart: it validates quantities against the
variant's available stock and keeps lines in insertion order. `CartService` wires
a cart to the database and the configured reservation policy. `CartRegistry` keeps
carts in process memory, keyed by an opaque id.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from wholesale.core.exceptions import InsufficientStock, InvalidQuantity, NotFoundError
from wholesale.core.logging import get_logger
from wholesale.models import Product
from wholesale.models.base import CENTS
from wholesale.services.catalog import VariantSnapshot
from wholesale.services.reservation import ReservationPolicy

logger = get_logger(__name__)


@dataclass
class CartItem:
    product_id: int
    reference: str
    size: str
    description: Optional[str]
    wholesale_price: Decimal
    quantity: int
    stock: int  # variant.stock when the line was created

    @property
    def line_total(self) -> Decimal:
        return (self.wholesale_price * self.quantity).quantize(CENTS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "reference": self.reference,
            "size": self.size,
            "description": self.description,
            "wholesale_price": self.wholesale_price,
            "quantity": self.quantity,
            "stock": self.stock,
            "line_total": self.line_total,
        }


class CartManager:
    def __init__(self, cart_id: Optional[str] = None) -> None:
        self.cart_id = cart_id or uuid.uuid4().hex
        self._items: dict[int, CartItem] = {}
        # held by CartService and checkout for the whole check, reserve, mutate sequence
        self.lock = threading.RLock()

    # ------------------------------------------------------------------ reads
    @property
    def items(self) -> list[CartItem]:
        return list(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self._items.values())

    def get(self, product_id: int) -> Optional[CartItem]:
        return self._items.get(product_id)

    def quantity_of(self, product_id: int) -> int:
        item = self._items.get(product_id)
        return item.quantity if item else 0

    def get_total_amount(self) -> Decimal:
        return sum((i.line_total for i in self._items.values()), Decimal("0")).quantize(CENTS)

    # --------------------------------------------------------------- mutations
    def check_add(self, variant: VariantSnapshot, quantity: int) -> int:
        """Validate an add without changing the cart; returns the resulting line quantity."""
        if quantity <= 0:
            raise InvalidQuantity()
        current = self.quantity_of(variant.id)
        available = variant.available_stock
        if current + quantity > available:
            remaining = max(0, available - current)
            raise InsufficientStock(
                f"Not enough stock. Only {remaining} more units can be added.",
                product_id=variant.id,
                available=available,
                remaining=remaining,
            )
        return min(current + quantity, available)

    def add_to_cart(self, variant: VariantSnapshot, quantity: int) -> CartItem:
        new_quantity = self.check_add(variant, quantity)
        item = self._items.get(variant.id)
        if item is not None:
            item.quantity = new_quantity
            return item
        item = CartItem(
            product_id=variant.id,
            reference=variant.reference,
            size=variant.size,
            description=variant.description,
            wholesale_price=variant.wholesale_price or Decimal("0"),
            quantity=new_quantity,
            stock=variant.stock,
        )
        self._items[variant.id] = item
        return item

    def target_quantity(self, product_id: int, new_quantity: int) -> Optional[int]:
        """What `update_quantity` would set, or None when it would do nothing."""
        item = self._items.get(product_id)
        if item is None or new_quantity < 0:
            return None
        if new_quantity == 0:
            return 0
        return min(new_quantity, item.stock)

    def update_quantity(self, product_id: int, new_quantity: int) -> Optional[CartItem]:
        target = self.target_quantity(product_id, new_quantity)
        if target is None:
            return None
        if target == 0:
            return self._items.pop(product_id)
        item = self._items[product_id]
        item.quantity = target
        return item

    def remove(self, product_id: int) -> Optional[CartItem]:
        return self._items.pop(product_id, None)

    def clear_cart(self) -> None:
        self._items.clear()

    def to_dict(self) -> dict[str, Any]:
        return {
            "cart_id": self.cart_id,
            "items": [i.to_dict() for i in self._items.values()],
            "total_amount": self.get_total_amount(),
            "item_count": self.item_count,
        }


class CartRegistry:
    """Process-local carts keyed by id."""

    def __init__(self) -> None:
        self._carts: dict[str, CartManager] = {}
        self._lock = threading.Lock()

    def create(self) -> CartManager:
        cart = CartManager()
        with self._lock:
            self._carts[cart.cart_id] = cart
        return cart

    def get(self, cart_id: str) -> CartManager:
        with self._lock:
            cart = self._carts.get(cart_id)
        if cart is None:
            raise NotFoundError(f"Cart {cart_id} not found", code="CART_NOT_FOUND")
        return cart

    def discard(self, cart_id: str) -> None:
        with self._lock:
            self._carts.pop(cart_id, None)

    def __len__(self) -> int:
        return len(self._carts)


class CartService:
    """
    Cart operations backed by live stock.

    Order of work for every change: validate on the cart, move the reservation in
    the database and commit, then mutate the cart. A failed reservation leaves
    the cart untouched.
    """

    def __init__(self, session: Session, policy: ReservationPolicy) -> None:
        self.session = session
        self.policy = policy

    def _variant(self, product_id: int, cart: CartManager) -> VariantSnapshot:
        product = self.session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found", code="PRODUCT_NOT_FOUND")
        snapshot = VariantSnapshot.from_product(product)
        return self.policy.adjusted_snapshot(snapshot, held=cart.quantity_of(product_id))

    def _move_reservation(self, product_id: int, delta: int) -> None:
        if not self.policy.holds_stock or delta == 0:
            return
        try:
            if delta > 0:
                self.policy.reserve(self.session, product_id, delta)
            else:
                self.policy.release(self.session, product_id, -delta)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def add(self, cart: CartManager, product_id: int, quantity: int) -> CartItem:
        with cart.lock:
            variant = self._variant(product_id, cart)
            before = cart.quantity_of(product_id)
            after = cart.check_add(variant, quantity)
            self._move_reservation(product_id, after - before)
            item = cart.add_to_cart(variant, quantity)
        logger.info("cart_item_added", cart_id=cart.cart_id, product_id=product_id, quantity=item.quantity)
        return item

    def update(self, cart: CartManager, product_id: int, new_quantity: int) -> Optional[CartItem]:
        with cart.lock:
            target = cart.target_quantity(product_id, new_quantity)
            if target is None:
                return None
            self._move_reservation(product_id, target - cart.quantity_of(product_id))
            item = cart.update_quantity(product_id, new_quantity)
        logger.info("cart_item_updated", cart_id=cart.cart_id, product_id=product_id, quantity=target)
        return item

    def remove(self, cart: CartManager, product_id: int) -> Optional[CartItem]:
        return self.update(cart, product_id, 0)

    def clear(self, cart: CartManager) -> None:
        with cart.lock:
            if self.policy.holds_stock:
                try:
                    for item in cart.items:
                        self.policy.release(self.session, item.product_id, item.quantity)
                    self.session.commit()
                except Exception:
                    self.session.rollback()
                    raise
            cart.clear_cart()
        logger.info("cart_cleared", cart_id=cart.cart_id)
