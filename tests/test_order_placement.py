"""Order placement from cart: all-or-nothing semantics, stock guards, cart clearing."""

import threading
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, delete
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from config.database import Base
from common.exceptions import EmptyCartError, InsufficientStockError
from modules.cart.models import CartItem
from modules.cart.service import cart_service
from modules.catalog.models import Product
from modules.inventory.models import Inventory
from modules.inventory.service import inventory_service
from modules.order.models import Order, OrderStatus
from modules.order.service import CART_CLEAR_WARNING, order_service


def _stock(db, product_id):
    db.expire_all()
    return db.query(Inventory.quantity).filter(Inventory.product_id == product_id).scalar()


def _order_count(db, user_id=None):
    q = db.query(Order)
    if user_id:
        q = q.filter(Order.user_id == user_id)
    return q.count()


def _cart_lines(db, user_id):
    db.expire_all()
    return db.query(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.id).all()


class TestSuccessfulPlacement:
    def test_single_line_creates_pending_order(self, db, make_product, add_line):
        product = make_product(name="Tee", price="19.99", stock=10)
        add_line("u1", product.id, 3)

        result = order_service.place_order(db, "u1")

        assert len(result.orders) == 1
        order = result.orders[0]
        assert order.user_id == "u1"
        assert order.product_id == product.id
        assert order.quantity == 3
        assert order.total_price == Decimal("59.97")
        assert order.status == OrderStatus.PENDING.value
        assert result.warnings == []
        assert _stock(db, product.id) == 7
        assert _cart_lines(db, "u1") == []

    def test_one_order_per_line_in_cart_order(self, db, make_product, add_line):
        shirt = make_product(name="Shirt", price="25.00", stock=5)
        jeans = make_product(name="Jeans", price="60.00", stock=5)
        add_line("u1", jeans.id, 1)
        add_line("u1", shirt.id, 2)

        result = order_service.place_order(db, "u1")

        assert [o.product_id for o in result.orders] == [jeans.id, shirt.id]
        assert [o.total_price for o in result.orders] == [Decimal("60.00"), Decimal("50.00")]
        assert _stock(db, shirt.id) == 3
        assert _stock(db, jeans.id) == 4

    def test_exact_stock_is_enough(self, db, make_product, add_line):
        product = make_product(stock=2)
        add_line("u1", product.id, 2)

        order_service.place_order(db, "u1")

        assert _stock(db, product.id) == 0

    def test_price_is_frozen_at_purchase(self, db, make_product, add_line):
        product = make_product(price="10.00", stock=5)
        add_line("u1", product.id, 2)
        order_id = order_service.place_order(db, "u1").orders[0].id

        product.price = Decimal("99.00")
        db.commit()

        order = order_service.get_order(db, order_id)
        assert order.total_price == Decimal("20.00")

    def test_other_users_cart_untouched(self, db, make_product, add_line):
        product = make_product(stock=10)
        add_line("u1", product.id, 1)
        add_line("u2", product.id, 4)

        order_service.place_order(db, "u1")

        lines = _cart_lines(db, "u2")
        assert [(line.product_id, line.quantity) for line in lines] == [(product.id, 4)]
        assert _order_count(db, "u2") == 0


class TestRejectedPlacement:
    def test_empty_cart(self, db, make_product):
        product = make_product(stock=10)

        with pytest.raises(EmptyCartError) as exc:
            order_service.place_order(db, "u1")

        assert exc.value.message == "Cart is empty. Add items to cart before creating an order."
        assert _order_count(db) == 0
        assert _stock(db, product.id) == 10

    def test_insufficient_stock_applies_nothing(self, db, make_product, add_line):
        ok = make_product(name="Socks", stock=10)
        short = make_product(name="Hoodie", stock=2)
        add_line("u1", ok.id, 1)
        add_line("u1", short.id, 5)

        with pytest.raises(InsufficientStockError) as exc:
            order_service.place_order(db, "u1")

        assert exc.value.product_id == short.id
        assert exc.value.available == 2
        assert exc.value.requested == 5
        assert "Hoodie" in exc.value.message
        assert _order_count(db) == 0
        assert _stock(db, ok.id) == 10
        assert _stock(db, short.id) == 2
        assert len(_cart_lines(db, "u1")) == 2

    def test_missing_inventory_counts_as_zero(self, db, make_product, add_line):
        product = make_product(stock=None)
        add_line("u1", product.id, 1)

        with pytest.raises(InsufficientStockError) as exc:
            order_service.place_order(db, "u1")

        assert exc.value.available == 0
        assert exc.value.requested == 1
        assert _order_count(db) == 0

    def test_repeated_lines_for_one_product_add_up(self, db, make_product, add_line):
        product = make_product(stock=5)
        add_line("u1", product.id, 3)
        add_line("u1", product.id, 3)

        with pytest.raises(InsufficientStockError) as exc:
            order_service.place_order(db, "u1")

        assert exc.value.available == 5
        assert exc.value.requested == 6
        assert _stock(db, product.id) == 5
        assert _order_count(db) == 0


class TestStaleCartLines:
    def test_deleted_product_line_is_skipped(self, db, make_product, add_line):
        keep = make_product(name="Keep", stock=5)
        gone = make_product(name="Gone")
        add_line("u1", keep.id, 1)
        stale = add_line("u1", gone.id, 2)
        stale_id = stale.id
        db.execute(delete(Product).where(Product.id == gone.id))
        db.commit()

        result = order_service.place_order(db, "u1")

        assert [o.product_id for o in result.orders] == [keep.id]
        assert result.skipped_lines == [stale_id]
        # The stale line goes away with the rest of the cart
        assert _cart_lines(db, "u1") == []

    def test_inactive_product_line_is_skipped(self, db, make_product, add_line):
        keep = make_product(name="Keep", stock=5)
        retired = make_product(name="Retired", stock=5, is_active=False)
        add_line("u1", retired.id, 1)
        add_line("u1", keep.id, 1)

        result = order_service.place_order(db, "u1")

        assert [o.product_id for o in result.orders] == [keep.id]
        assert _stock(db, retired.id) == 5

    def test_only_stale_lines_is_an_empty_cart(self, db, make_product, add_line):
        retired = make_product(stock=5, is_active=False)
        add_line("u1", retired.id, 1)

        with pytest.raises(EmptyCartError):
            order_service.place_order(db, "u1")

        assert len(_cart_lines(db, "u1")) == 1
        assert _order_count(db) == 0


class TestNoOverselling:
    def test_second_buyer_sees_reduced_stock(self, db, make_product, add_line):
        product = make_product(name="Jacket", stock=5)
        add_line("alice", product.id, 3)
        add_line("bob", product.id, 3)

        order_service.place_order(db, "alice")
        with pytest.raises(InsufficientStockError) as exc:
            order_service.place_order(db, "bob")

        assert exc.value.available == 2
        assert exc.value.requested == 3
        assert _stock(db, product.id) == 2
        assert _order_count(db) == 1
        assert len(_cart_lines(db, "bob")) == 1

    def test_stock_taken_after_prevalidation_rolls_back_everything(
        self, db, make_product, add_line, monkeypatch,
    ):
        first = make_product(name="Cap", stock=5)
        contested = make_product(name="Scarf", stock=0)
        add_line("u1", first.id, 2)
        add_line("u1", contested.id, 1)

        # Pre-validation reads a snapshot that is already out of date
        monkeypatch.setattr(
            inventory_service, "available_map", lambda db, ids: {pid: 100 for pid in ids},
        )

        with pytest.raises(InsufficientStockError) as exc:
            order_service.place_order(db, "u1")

        assert exc.value.product_id == contested.id
        assert exc.value.available == 0
        assert "Scarf" in exc.value.message
        # The decrement already applied to the first line is undone
        assert _stock(db, first.id) == 5
        assert _stock(db, contested.id) == 0
        assert _order_count(db) == 0
        assert len(_cart_lines(db, "u1")) == 2


class TestCartClearFailure:
    def test_orders_survive_with_warning(self, db, make_product, add_line, monkeypatch):
        product = make_product(stock=10)
        add_line("u1", product.id, 4)

        def broken_clear(db, user_id):
            raise OperationalError("DELETE FROM cart_items", {}, Exception("disk I/O error"))

        monkeypatch.setattr(cart_service, "clear_cart", broken_clear)

        result = order_service.place_order(db, "u1")

        assert len(result.orders) == 1
        assert result.warnings == [CART_CLEAR_WARNING]
        assert _order_count(db, "u1") == 1
        assert _stock(db, product.id) == 6
        assert len(_cart_lines(db, "u1")) == 1


class TestStockReservationOrder:
    def test_decrements_once_per_product_in_id_order(self, db, make_product, add_line, monkeypatch):
        low = make_product(name="Belt", price="15.00", stock=10)
        high = make_product(name="Boots", price="120.00", stock=10)
        add_line("u1", high.id, 1)
        add_line("u1", low.id, 2)
        add_line("u1", high.id, 1)

        calls = []
        decrement = inventory_service.decrement_inventory

        def recording_decrement(db, product_id, amount):
            calls.append((product_id, amount))
            return decrement(db, product_id, amount)

        monkeypatch.setattr(inventory_service, "decrement_inventory", recording_decrement)

        result = order_service.place_order(db, "u1")

        assert calls == [(low.id, 2), (high.id, 2)]
        # Orders still follow the cart
        assert [(o.product_id, o.quantity) for o in result.orders] == [
            (high.id, 1), (low.id, 2), (high.id, 1),
        ]
        assert _stock(db, high.id) == 8
        assert _stock(db, low.id) == 8

    def test_opposite_cart_orders_lock_the_same_way(self, db, make_product, add_line, monkeypatch):
        a = make_product(name="A", stock=10)
        b = make_product(name="B", stock=10)
        add_line("first", a.id, 1)
        add_line("first", b.id, 1)
        add_line("second", b.id, 1)
        add_line("second", a.id, 1)

        calls = []
        decrement = inventory_service.decrement_inventory

        def recording_decrement(db, product_id, amount):
            calls.append(product_id)
            return decrement(db, product_id, amount)

        monkeypatch.setattr(inventory_service, "decrement_inventory", recording_decrement)

        order_service.place_order(db, "first")
        order_service.place_order(db, "second")

        assert calls == sorted([a.id, b.id]) * 2


class TestConcurrentPlacement:
    def test_parallel_checkouts_never_oversell(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'storefront.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        users = [f"u{i}" for i in range(6)]
        setup = Session()
        product = Product(name="Parka", price=Decimal("80.00"), category="coats")
        setup.add(product)
        setup.flush()
        product_id = product.id
        setup.add(Inventory(product_id=product_id, quantity=5))
        for user_id in users:
            setup.add(CartItem(user_id=user_id, product_id=product_id, quantity=2))
        setup.commit()
        setup.close()

        barrier = threading.Barrier(len(users))

        def checkout(user_id):
            session = Session()
            try:
                barrier.wait()
                order_service.place_order(session, user_id)
                return "ok"
            except InsufficientStockError:
                return "stock"
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=len(users)) as pool:
            outcomes = dict(zip(users, pool.map(checkout, users)))

        check = Session()
        try:
            remaining = check.query(Inventory.quantity).filter(Inventory.product_id == product_id).scalar()
            placed = check.query(Order).count()
        finally:
            check.close()
            engine.dispose()

        assert set(outcomes.values()) <= {"ok", "stock"}
        assert "stock" in outcomes.values()
        assert remaining >= 0
        assert placed == list(outcomes.values()).count("ok")
        assert 5 - remaining == placed * 2
        assert placed * 2 <= 5
