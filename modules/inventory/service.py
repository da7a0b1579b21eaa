"""
Inventory Module - Service Layer
==================================
Stock lookup, atomic check-and-set decrement, and admin stock management.

Decrements are a single conditional UPDATE (`quantity >= amount`), so two
concurrent buyers can never both pass a stale read and oversell a product.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from common.exceptions import (
    DuplicateError, InsufficientStockError, InventoryNotFoundError,
    ProductNotFoundError, ValidationError,
)
from common.helpers import normalize_paging
from modules.catalog.service import product_service
from modules.inventory.models import Inventory

logger = logging.getLogger("storefront.inventory")


class InventoryService:

    # ==========================================
    # Read
    # ==========================================

    def get_inventory(self, db: Session, product_id: int) -> Optional[Inventory]:
        return db.query(Inventory).filter(Inventory.product_id == product_id).first()

    def available_map(self, db: Session, product_ids: Iterable[int]) -> Dict[int, int]:
        """Batch lookup: {product_id: quantity}. Products without a record are absent."""
        ids = list(set(product_ids))
        if not ids:
            return {}
        rows = db.query(Inventory.product_id, Inventory.quantity).filter(
            Inventory.product_id.in_(ids),
        ).all()
        return {pid: qty for pid, qty in rows}

    def list_inventory(
        self, db: Session, page: Optional[int] = None, limit: Optional[int] = None,
    ) -> Tuple[List[Inventory], int, int, int]:
        page, limit, offset = normalize_paging(page, limit)
        q = db.query(Inventory).options(joinedload(Inventory.product))
        total = q.count()
        items = q.order_by(Inventory.id.desc()).offset(offset).limit(limit).all()
        return items, total, page, limit

    # ==========================================
    # Check-and-set decrement
    # ==========================================

    def decrement_inventory(self, db: Session, product_id: int, amount: int) -> Inventory:
        """
        Reduce stock by `amount` only if at least `amount` is available.
        Raises InsufficientStockError (no effect) otherwise.
        Does not commit: the caller owns the transaction.
        """
        if amount < 1:
            raise ValueError("decrement amount must be >= 1")

        result = db.execute(
            update(Inventory)
            .where(Inventory.product_id == product_id, Inventory.quantity >= amount)
            .values(quantity=Inventory.quantity - amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = db.query(Inventory.quantity).filter(Inventory.product_id == product_id).scalar()
            raise InsufficientStockError(product_id, current or 0, amount)

        inv = self.get_inventory(db, product_id)
        db.refresh(inv)
        return inv

    # ==========================================
    # Admin stock management
    # ==========================================

    def create_inventory(self, db: Session, product_id: int, quantity: int) -> Inventory:
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative")
        if not product_service.find_product(db, product_id):
            raise ProductNotFoundError(product_id)
        if self.get_inventory(db, product_id):
            raise DuplicateError("Inventory already exists for this product. Use update instead.")

        inv = Inventory(product_id=product_id, quantity=quantity)
        db.add(inv)
        try:
            db.flush()
        except IntegrityError:
            # Lost a race with another create for the same product
            db.rollback()
            raise DuplicateError("Inventory already exists for this product. Use update instead.")
        logger.info(f"Inventory created for product #{product_id}: {quantity}")
        return inv

    def set_quantity(self, db: Session, product_id: int, quantity: int) -> Inventory:
        """Absolute restock/adjustment by an administrator."""
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative")
        if not product_service.find_product(db, product_id):
            raise ProductNotFoundError(product_id)

        inv = (
            db.query(Inventory)
            .filter(Inventory.product_id == product_id)
            .with_for_update()
            .first()
        )
        if not inv:
            raise InventoryNotFoundError(product_id)

        previous = inv.quantity
        inv.quantity = quantity
        db.flush()
        logger.info(f"Inventory for product #{product_id} set {previous} -> {quantity}")
        return inv

    def update_inventory(
        self,
        db: Session,
        inventory_id: int,
        quantity: Optional[int] = None,
        product_id: Optional[int] = None,
    ) -> Inventory:
        """Edit a record by its own id: new quantity and/or move it to another product."""
        if quantity is not None and quantity < 0:
            raise ValidationError("Quantity cannot be negative")

        inv = db.query(Inventory).filter(Inventory.id == inventory_id).with_for_update().first()
        if not inv:
            raise InventoryNotFoundError()

        if product_id is not None and product_id != inv.product_id:
            if not product_service.find_product(db, product_id):
                raise ProductNotFoundError(product_id)
            if self.get_inventory(db, product_id):
                raise DuplicateError("Inventory already exists for this product. Use update instead.")
            inv.product_id = product_id
        if quantity is not None:
            inv.quantity = quantity

        db.flush()
        logger.info(f"Inventory #{inventory_id} updated: product #{inv.product_id}, quantity {inv.quantity}")
        return inv


# Singleton
inventory_service = InventoryService()
