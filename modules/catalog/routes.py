"""
Catalog Module - Public Routes
================================
Product listing (filters + pagination) and product detail.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import ProductNotFoundError
from common.helpers import pagination_meta
from modules.catalog.service import product_service

router = APIRouter(prefix="/api/products", tags=["catalog"])


@router.get("")
def list_products(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    min_price: Optional[Decimal] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[Decimal] = Query(None, alias="maxPrice", ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
):
    products, total, page, limit = product_service.list_products(
        db,
        category=category,
        search=search,
        min_price=min_price,
        max_price=max_price,
        page=page,
        limit=limit,
    )
    return {
        "success": True,
        "data": {
            "products": [p.to_dict() for p in products],
            "pagination": pagination_meta(page, limit, total),
        },
    }


@router.get("/{product_id}")
def get_product(product_id: int, db: Session = Depends(get_db)):
    product = product_service.find_product(db, product_id)
    if not product:
        raise ProductNotFoundError(product_id)
    return {"success": True, "data": product.to_dict()}
