"""
Cart Module - Service Layer
==============================
Cart management: list, add (merge), update, remove, clear.
Services flush but never commit; routes own the transaction.
"""

import logging
from typing import List, Tuple

from sqlalchemy.orm import Session, joinedload

from common.exceptions import CartItemNotFoundError, ProductNotFoundError, ValidationError
from modules.cart.models import CartItem
from modules.catalog.service import product_service

logger = logging.getLogger("storefront.cart")


class CartService:

    def list_cart_lines(self, db: Session, user_id: str, for_update: bool = False) -> List[CartItem]:
        """All lines for a user in creation order. `for_update` row-locks them."""
        q = db.query(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.id.asc())
        if for_update:
            q = q.with_for_update()
        else:
            q = q.options(joinedload(CartItem.product))
        return q.all()

    def add_item(self, db: Session, user_id: str, product_id: int, quantity: int) -> Tuple[CartItem, bool]:
        """
        Add `quantity` of a product, merging into an existing line.
        Returns: (line, created)
        """
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        if not product_service.find_product(db, product_id):
            raise ProductNotFoundError(product_id)

        item = (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .order_by(CartItem.id.asc())
            .with_for_update()
            .first()
        )
        if item:
            item.quantity += quantity
            db.flush()
            return item, False

        item = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.add(item)
        db.flush()
        return item, True

    def update_item(self, db: Session, user_id: str, item_id: int, quantity: int) -> CartItem:
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        item = self._owned_item(db, user_id, item_id)
        item.quantity = quantity
        db.flush()
        return item

    def remove_item(self, db: Session, user_id: str, item_id: int) -> None:
        item = self._owned_item(db, user_id, item_id)
        db.delete(item)
        db.flush()

    def clear_cart(self, db: Session, user_id: str) -> int:
        """Remove all lines for the user. Returns number of lines removed (0 for an empty cart)."""
        removed = (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .delete(synchronize_session=False)
        )
        db.flush()
        logger.debug(f"Cleared {removed} cart lines for user {user_id}")
        return removed

    # ==========================================
    # Private helpers
    # ==========================================

    def _owned_item(self, db: Session, user_id: str, item_id: int) -> CartItem:
        item = db.query(CartItem).filter(
            CartItem.id == item_id,
            CartItem.user_id == user_id,
        ).first()
        if not item:
            raise CartItemNotFoundError()
        return item


# Singleton
cart_service = CartService()
