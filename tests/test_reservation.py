import threading

import pytest

from wholesale.core.exceptions import InsufficientStock, NotFoundError
from wholesale.services.cart import CartManager, CartService
from wholesale.services.reservation import (
    EagerReservePolicy,
    OptimisticPolicy,
    get_reservation_policy,
)


def _reload(db, product):
    db.expire_all()
    return db.get(type(product), product.id)


class TestPolicyLookup:
    def test_known_names(self):
        assert isinstance(get_reservation_policy("optimistic"), OptimisticPolicy)
        assert isinstance(get_reservation_policy("eager"), EagerReservePolicy)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            get_reservation_policy("lazy")


class TestOptimisticPolicy:
    """Carts hold nothing; checkout deducts with a conditional UPDATE."""

    def test_cart_changes_do_not_touch_stock(self, db, make_product):
        product = make_product(stock=5)
        service = CartService(db, OptimisticPolicy())
        cart = CartManager()

        service.add(cart, product.id, 4)

        assert _reload(db, product).reserved_stock == 0
        assert _reload(db, product).stock == 5

    def test_commit_sale_deducts(self, db, make_product):
        product = make_product(stock=5)
        OptimisticPolicy().commit_sale(db, product.id, 3)
        db.commit()

        assert _reload(db, product).stock == 2

    def test_last_units_sold_once(self, db, make_product):
        product = make_product(stock=2)
        policy = OptimisticPolicy()

        policy.commit_sale(db, product.id, 2)
        db.commit()
        with pytest.raises(InsufficientStock) as exc:
            policy.commit_sale(db, product.id, 1)
        db.rollback()

        assert exc.value.available == 0
        assert _reload(db, product).stock == 0

    def test_sale_never_eats_held_units(self, db, make_product):
        product = make_product(stock=5, reserved_stock=4)
        with pytest.raises(InsufficientStock):
            OptimisticPolicy().commit_sale(db, product.id, 2)

    def test_restock_unknown_product(self, db):
        with pytest.raises(NotFoundError):
            OptimisticPolicy().restock(db, 999, 1)


class TestEagerReservePolicy:
    """Cart changes move reserved_stock immediately."""

    def test_add_and_update_move_reservation(self, db, make_product):
        product = make_product(stock=10)
        service = CartService(db, EagerReservePolicy())
        cart = CartManager()

        service.add(cart, product.id, 4)
        assert _reload(db, product).reserved_stock == 4

        service.update(cart, product.id, 1)
        assert _reload(db, product).reserved_stock == 1

        service.remove(cart, product.id)
        assert _reload(db, product).reserved_stock == 0
        assert cart.is_empty

    def test_second_cart_cannot_take_held_units(self, db, make_product):
        product = make_product(stock=3)
        service = CartService(db, EagerReservePolicy())
        first, second = CartManager(), CartManager()

        service.add(first, product.id, 3)
        with pytest.raises(InsufficientStock):
            service.add(second, product.id, 1)

        assert second.is_empty
        assert _reload(db, product).reserved_stock == 3

    def test_own_hold_does_not_block_growth(self, db, make_product):
        product = make_product(stock=5)
        service = CartService(db, EagerReservePolicy())
        cart = CartManager()

        service.add(cart, product.id, 2)
        service.add(cart, product.id, 3)

        assert cart.quantity_of(product.id) == 5
        assert _reload(db, product).reserved_stock == 5

    def test_release_floors_at_zero(self, db, make_product):
        product = make_product(stock=5, reserved_stock=1)
        EagerReservePolicy().release(db, product.id, 4)
        db.commit()

        assert _reload(db, product).reserved_stock == 0

    def test_commit_sale_converts_hold(self, db, make_product):
        product = make_product(stock=5, reserved_stock=2)
        EagerReservePolicy().commit_sale(db, product.id, 2)
        db.commit()

        fresh = _reload(db, product)
        assert fresh.stock == 3
        assert fresh.reserved_stock == 0

    def test_clear_releases_every_line(self, db, make_product):
        a = make_product(reference="A", stock=5)
        b = make_product(reference="B", stock=5)
        service = CartService(db, EagerReservePolicy())
        cart = CartManager()
        service.add(cart, a.id, 2)
        service.add(cart, b.id, 3)

        service.clear(cart)

        assert cart.is_empty
        assert _reload(db, a).reserved_stock == 0
        assert _reload(db, b).reserved_stock == 0

    def test_cart_changes_wait_for_the_cart_lock(self, db, make_product):
        product = make_product(stock=5)
        product_id = product.id
        service = CartService(db, EagerReservePolicy())
        cart = CartManager()
        worker = threading.Thread(target=service.add, args=(cart, product_id, 2))

        with cart.lock:
            worker.start()
            worker.join(timeout=0.2)
            assert worker.is_alive()
            assert cart.is_empty

        worker.join(timeout=5)
        assert not worker.is_alive()
        assert cart.quantity_of(product_id) == 2
        assert _reload(db, product).reserved_stock == 2
