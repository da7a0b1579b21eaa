"""
Catalog Module - Service Layer
================================
Read-side product access: lookup by id and filtered listing.
Catalog writes are managed outside this service.
"""

from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import desc, or_
from sqlalchemy.orm import Session

from common.helpers import normalize_paging
from modules.catalog.models import Product


class ProductService:

    def find_product(self, db: Session, product_id: Optional[int]) -> Optional[Product]:
        """Active product by id, or None (also for a dangling id)."""
        if product_id is None:
            return None
        return db.query(Product).filter(
            Product.id == product_id,
            Product.is_active == True,  # noqa: E712
        ).first()

    def list_products(
        self,
        db: Session,
        category: Optional[str] = None,
        search: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Product], int, int, int]:
        """
        Filtered, newest-first product listing.
        Returns: (products, total, page, limit)
        """
        q = db.query(Product).filter(Product.is_active == True)  # noqa: E712

        if category:
            q = q.filter(Product.category == category)
        if search:
            pattern = f"%{search.strip()}%"
            q = q.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
        if min_price is not None:
            q = q.filter(Product.price >= min_price)
        if max_price is not None:
            q = q.filter(Product.price <= max_price)

        page, limit, offset = normalize_paging(page, limit)
        total = q.count()
        products = (
            q.order_by(desc(Product.created_at), desc(Product.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return products, total, page, limit


# Singleton
product_service = ProductService()
