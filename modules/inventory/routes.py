"""
Inventory Module - Public Routes
==================================
Stock lookup for a single product.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import InventoryNotFoundError, ProductNotFoundError
from modules.catalog.service import product_service
from modules.inventory.service import inventory_service

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/product/{product_id}")
def get_inventory_by_product(product_id: int, db: Session = Depends(get_db)):
    if not product_service.find_product(db, product_id):
        raise ProductNotFoundError(product_id)

    inv = inventory_service.get_inventory(db, product_id)
    if not inv:
        raise InventoryNotFoundError(product_id)

    return {"success": True, "data": inv.to_dict()}
