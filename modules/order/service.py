"""
Order Module - Service Layer
===============================
Order placement from cart, order queries, admin status transitions.

place_order owns its transaction; every other method only flushes and
leaves commit to the route.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from common.exceptions import (
    EmptyCartError, InsufficientStockError, InvalidStatusError, OrderNotFoundError,
)
from common.helpers import line_total, normalize_paging
from modules.cart.models import CartItem
from modules.cart.service import cart_service
from modules.catalog.models import Product
from modules.catalog.service import product_service
from modules.inventory.service import inventory_service
from modules.order.models import Order, OrderStatus

logger = logging.getLogger("storefront.order")

CART_CLEAR_WARNING = "Orders were placed but the cart could not be cleared. Please clear it manually."


@dataclass
class PlacementResult:
    orders: List[Order]
    warnings: List[str] = field(default_factory=list)
    skipped_lines: List[int] = field(default_factory=list)


class OrderService:

    # ==========================================
    # Place Order (checkout)
    # ==========================================

    def place_order(self, db: Session, user_id: str) -> PlacementResult:
        """
        Turn the user's cart into orders, all or nothing:
        1. Lock the user's cart lines (serializes double-submits)
        2. Drop lines whose product no longer exists
        3. Pre-validate stock for every line (read-only)
        4. Atomically decrement stock per product, then create one pending order per line
        5. Commit, clearing the cart in a savepoint

        Raises EmptyCartError / InsufficientStockError with nothing applied.
        A cart-clear failure does not undo the orders; it is returned as a warning.
        """
        try:
            lines = cart_service.list_cart_lines(db, user_id, for_update=True)
            if not lines:
                raise EmptyCartError()

            orderable, skipped = self._resolve_lines(db, user_id, lines)
            if not orderable:
                raise EmptyCartError()

            self._prevalidate_stock(db, orderable)
            self._reserve_stock(db, user_id, orderable)

            orders = [
                self.create_order(
                    db, user_id, product.id, line.quantity, line_total(product.price, line.quantity),
                )
                for line, product in orderable
            ]

            warnings = []
            try:
                with db.begin_nested():
                    cart_service.clear_cart(db, user_id)
            except SQLAlchemyError as e:
                logger.error(f"Cart clear failed for user {user_id} after placing {len(orders)} orders: {e}")
                warnings.append(CART_CLEAR_WARNING)

            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"User {user_id} placed {len(orders)} orders: "
            + ", ".join(f"#{o.id}" for o in orders)
        )
        return PlacementResult(orders=orders, warnings=warnings, skipped_lines=skipped)

    # ==========================================
    # Order Store
    # ==========================================

    def create_order(
        self,
        db: Session,
        user_id: str,
        product_id: int,
        quantity: int,
        total_price: Decimal,
        status: str = OrderStatus.PENDING.value,
    ) -> Order:
        order = Order(
            user_id=user_id,
            product_id=product_id,
            quantity=quantity,
            total_price=total_price,
            status=status,
        )
        db.add(order)
        db.flush()
        return order

    def update_order_status(self, db: Session, order_id: int, new_status: Optional[str]) -> Order:
        """Admin status transition. Only the five known statuses are accepted."""
        if new_status not in OrderStatus.values():
            raise InvalidStatusError(new_status, OrderStatus.values())

        order = db.query(Order).filter(Order.id == order_id).with_for_update().first()
        if not order:
            raise OrderNotFoundError()

        previous = order.status
        order.status = new_status
        db.flush()
        logger.info(f"Order #{order_id} status {previous} -> {new_status}")
        return order

    # ==========================================
    # Query
    # ==========================================

    def get_order(self, db: Session, order_id: int) -> Optional[Order]:
        return (
            db.query(Order)
            .options(joinedload(Order.product))
            .filter(Order.id == order_id)
            .first()
        )

    def get_user_orders(
        self, db: Session, user_id: str, page: Optional[int] = None, limit: Optional[int] = None,
    ) -> Tuple[List[Order], int, int, int]:
        return self._paged(db.query(Order).filter(Order.user_id == user_id), page, limit)

    def get_all_orders(
        self,
        db: Session,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Order], int, int, int]:
        q = db.query(Order)
        if status:
            q = q.filter(Order.status == status)
        if user_id:
            q = q.filter(Order.user_id == user_id)
        return self._paged(q, page, limit)

    # ==========================================
    # Private Helpers
    # ==========================================

    def _paged(self, q, page, limit) -> Tuple[List[Order], int, int, int]:
        page, limit, offset = normalize_paging(page, limit)
        total = q.count()
        orders = (
            q.options(joinedload(Order.product))
            .order_by(desc(Order.created_at), desc(Order.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return orders, total, page, limit

    def _resolve_lines(
        self, db: Session, user_id: str, lines: List[CartItem],
    ) -> Tuple[List[Tuple[CartItem, Product]], List[int]]:
        """Pair each line with its product, dropping dangling references."""
        orderable, skipped = [], []
        for line in lines:
            product = product_service.find_product(db, line.product_id)
            if not product:
                logger.warning(
                    f"Skipping stale cart line #{line.id} for user {user_id}: "
                    f"product #{line.product_id} no longer exists"
                )
                skipped.append(line.id)
                continue
            orderable.append((line, product))
        return orderable, skipped

    def _prevalidate_stock(self, db: Session, orderable: List[Tuple[CartItem, Product]]) -> None:
        """
        Fail fast on the first line whose product cannot cover the running
        requested total (repeated lines for one product add up).
        """
        available = inventory_service.available_map(db, [p.id for _, p in orderable])
        requested = defaultdict(int)
        for line, product in orderable:
            requested[product.id] += line.quantity
            have = available.get(product.id, 0)
            if requested[product.id] > have:
                logger.info(
                    f"Insufficient stock for product #{product.id}: "
                    f"available={have}, requested={requested[product.id]}"
                )
                raise InsufficientStockError(product.id, have, requested[product.id], product.name)

    def _reserve_stock(self, db: Session, user_id: str, orderable: List[Tuple[CartItem, Product]]) -> None:
        """
        Decrement each product once by its summed quantity.
        Stock rows are locked in ascending product id order, whatever the cart order.
        """
        products = {p.id: p for _, p in orderable}
        requested = defaultdict(int)
        for line, product in orderable:
            requested[product.id] += line.quantity

        for product_id in sorted(requested):
            try:
                inventory_service.decrement_inventory(db, product_id, requested[product_id])
            except InsufficientStockError as e:
                # Stock moved between pre-validation and decrement
                logger.warning(
                    f"Stock race on product #{product_id} for user {user_id}: "
                    f"available={e.available}, requested={e.requested}; rolling back placement"
                )
                raise InsufficientStockError(
                    product_id, e.available, e.requested, products[product_id].name,
                )


# Singleton
order_service = OrderService()
