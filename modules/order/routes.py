"""
Order Routes
==============
Place order from cart, order history, order detail.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import AuthorizationError, OrderNotFoundError
from common.helpers import pagination_meta
from common.security import Principal
from modules.auth.deps import require_user
from modules.order.service import order_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


# ==========================================
# ✅ Place Order
# ==========================================

@router.post("", status_code=201)
def place_order(
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    """Create one order per cart line and empty the cart."""
    result = order_service.place_order(db, me.user_id)
    return {
        "success": True,
        "data": [o.to_dict() for o in result.orders],
        "warnings": result.warnings,
        "skipped": result.skipped_lines,
    }


# ==========================================
# 📋 My Orders
# ==========================================

@router.get("")
def my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    orders, total, page, limit = order_service.get_user_orders(db, me.user_id, page=page, limit=limit)
    return {
        "success": True,
        "data": {
            "orders": [o.to_dict() for o in orders],
            "pagination": pagination_meta(page, limit, total),
        },
    }


@router.get("/{order_id}")
def order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    me: Principal = Depends(require_user),
):
    order = order_service.get_order(db, order_id)
    if not order:
        raise OrderNotFoundError()
    if order.user_id != me.user_id and not me.is_admin:
        raise AuthorizationError("Access denied. You can only view your own orders.")
    return {"success": True, "data": order.to_dict()}
