from decimal import Decimal

import pytest

from wholesale.core.exceptions import InsufficientStock, InvalidQuantity
from wholesale.services.cart import CartManager
from wholesale.services.catalog import VariantSnapshot


def _variant(pid=1, stock=10, reserved=0, price="100.00", size="M"):
    return VariantSnapshot(
        id=pid,
        reference="REF-1",
        size=size,
        description="Linen shirt",
        wholesale_price=Decimal(price),
        stock=stock,
        reserved_stock=reserved,
    )


class TestAddToCart:
    """Adding units of a variant."""

    def test_add_new_line(self):
        cart = CartManager()
        item = cart.add_to_cart(_variant(), 3)

        assert item.quantity == 3
        assert item.stock == 10
        assert cart.item_count == 3
        assert cart.get_total_amount() == Decimal("300.00")

    def test_add_merges_into_existing_line(self):
        cart = CartManager()
        cart.add_to_cart(_variant(), 3)
        cart.add_to_cart(_variant(), 4)

        assert len(cart.items) == 1
        assert cart.quantity_of(1) == 7

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_non_positive_quantity_rejected(self, quantity):
        cart = CartManager()
        with pytest.raises(InvalidQuantity) as exc:
            cart.add_to_cart(_variant(), quantity)
        assert exc.value.message == "Quantity must be greater than zero."
        assert cart.is_empty

    def test_exceeding_stock_reports_remaining(self):
        cart = CartManager()
        cart.add_to_cart(_variant(stock=5), 3)

        with pytest.raises(InsufficientStock) as exc:
            cart.add_to_cart(_variant(stock=5), 3)

        assert exc.value.remaining == 2
        assert exc.value.message == "Not enough stock. Only 2 more units can be added."
        assert cart.quantity_of(1) == 3

    def test_reserved_units_are_not_available(self):
        cart = CartManager()
        with pytest.raises(InsufficientStock) as exc:
            cart.add_to_cart(_variant(stock=5, reserved=4), 2)
        assert exc.value.available == 1

    def test_lines_keep_insertion_order(self):
        cart = CartManager()
        cart.add_to_cart(_variant(pid=2, size="L"), 1)
        cart.add_to_cart(_variant(pid=1, size="S"), 1)
        cart.add_to_cart(_variant(pid=2, size="L"), 1)

        assert [i.product_id for i in cart.items] == [2, 1]


class TestUpdateQuantity:
    """Setting a line quantity directly."""

    def test_zero_removes_line(self):
        cart = CartManager()
        cart.add_to_cart(_variant(), 3)
        cart.update_quantity(1, 0)

        assert cart.is_empty

    def test_clamped_to_stock_seen_at_add_time(self):
        cart = CartManager()
        cart.add_to_cart(_variant(stock=6), 2)
        item = cart.update_quantity(1, 50)

        assert item.quantity == 6

    def test_negative_and_unknown_are_ignored(self):
        cart = CartManager()
        cart.add_to_cart(_variant(), 2)

        assert cart.update_quantity(1, -1) is None
        assert cart.update_quantity(99, 3) is None
        assert cart.quantity_of(1) == 2

    def test_remove_and_clear(self):
        cart = CartManager()
        cart.add_to_cart(_variant(pid=1), 1)
        cart.add_to_cart(_variant(pid=2, size="L"), 1)

        cart.remove(1)
        assert [i.product_id for i in cart.items] == [2]

        cart.clear_cart()
        assert cart.is_empty
        assert cart.get_total_amount() == Decimal("0")


class TestCartTotals:
    """Totals use the wholesale price captured on the line."""

    def test_total_sums_lines(self):
        cart = CartManager()
        cart.add_to_cart(_variant(pid=1, price="12.50"), 2)
        cart.add_to_cart(_variant(pid=2, price="3.10", size="L"), 3)

        assert cart.get_total_amount() == Decimal("34.30")
        assert cart.to_dict()["item_count"] == 5

    def test_missing_price_counts_as_zero(self):
        cart = CartManager()
        variant = VariantSnapshot(id=1, reference="R", size="S", stock=3)
        cart.add_to_cart(variant, 2)

        assert cart.get_total_amount() == Decimal("0.00")
