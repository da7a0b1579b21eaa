"""
Cart Routes
=============
Cart view, add item, update quantity, remove item, clear cart.
All routes act on the authenticated caller's own cart.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.security import Principal
from modules.auth.deps import require_user
from modules.cart.service import cart_service

router = APIRouter(prefix="/api/cart", tags=["cart"])


# ==========================================
# Schemas
# ==========================================

class CartAddRequest(BaseModel):
    product_id: int = Field(..., alias="productId")
    quantity: int = Field(..., ge=1)


class CartUpdateRequest(BaseModel):
    quantity: int = Field(..., ge=1)


# ==========================================
# 🛒 View Cart
# ==========================================

@router.get("")
def view_cart(
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    items = cart_service.list_cart_lines(db, me.user_id)
    return {"success": True, "data": [it.to_dict() for it in items]}


# ==========================================
# ➕ Add Item
# ==========================================

@router.post("")
def add_to_cart(
    body: CartAddRequest,
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    item, created = cart_service.add_item(db, me.user_id, body.product_id, body.quantity)
    db.commit()
    db.refresh(item)
    return JSONResponse(
        {"success": True, "data": item.to_dict()},
        status_code=201 if created else 200,
    )


# ==========================================
# ✏️ Update Quantity
# ==========================================

@router.put("/{item_id}")
def update_cart_item(
    item_id: int,
    body: CartUpdateRequest,
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    item = cart_service.update_item(db, me.user_id, item_id, body.quantity)
    db.commit()
    db.refresh(item)
    return {"success": True, "data": item.to_dict()}


# ==========================================
# ❌ Remove Item / Clear Cart
# ==========================================

@router.delete("/{item_id}")
def remove_from_cart(
    item_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    cart_service.remove_item(db, me.user_id, item_id)
    db.commit()
    return {"success": True, "data": {"message": "Item removed from cart successfully"}}


@router.delete("")
def clear_cart(
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    removed = cart_service.clear_cart(db, me.user_id)
    db.commit()
    return {
        "success": True,
        "data": {"message": "Cart cleared successfully", "deleted_count": removed},
    }
