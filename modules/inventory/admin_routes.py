"""
Inventory Module - Admin Routes
=================================
Stock management for admins: list, create, set quantity (restock), edit by record id.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.helpers import pagination_meta
from common.security import Principal
from modules.auth.deps import require_admin
from modules.inventory.service import inventory_service

router = APIRouter(prefix="/api/inventory", tags=["inventory-admin"])


# ==========================================
# Schemas
# ==========================================

class InventoryCreateRequest(BaseModel):
    product_id: int = Field(..., alias="productId")
    quantity: int = Field(..., ge=0)


class InventoryQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=0)


class InventoryUpdateRequest(BaseModel):
    product_id: Optional[int] = Field(None, alias="productId")
    quantity: Optional[int] = Field(None, ge=0)


# ==========================================
# 📊 Inventory List
# ==========================================

@router.get("")
def list_inventory(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    items, total, page, limit = inventory_service.list_inventory(db, page=page, limit=limit)
    return {
        "success": True,
        "data": {
            "inventory": [inv.to_dict() for inv in items],
            "pagination": pagination_meta(page, limit, total),
        },
    }


# ==========================================
# ➕ Create Inventory Record
# ==========================================

@router.post("", status_code=201)
def create_inventory(
    body: InventoryCreateRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    inv = inventory_service.create_inventory(db, body.product_id, body.quantity)
    db.commit()
    db.refresh(inv)
    return {"success": True, "data": inv.to_dict()}


# ==========================================
# 🔄 Restock / Adjust
# ==========================================

@router.patch("/product/{product_id}")
def update_inventory_quantity(
    product_id: int,
    body: InventoryQuantityRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    inv = inventory_service.set_quantity(db, product_id, body.quantity)
    db.commit()
    db.refresh(inv)
    return {"success": True, "data": inv.to_dict()}


@router.put("/{inventory_id}")
def update_inventory(
    inventory_id: int,
    body: InventoryUpdateRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    inv = inventory_service.update_inventory(
        db, inventory_id, quantity=body.quantity, product_id=body.product_id,
    )
    db.commit()
    db.refresh(inv)
    return {"success": True, "data": inv.to_dict()}
