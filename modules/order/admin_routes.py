"""
Order Module - Admin Routes
==============================
Order management for admin: list with filters, status update.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db
from common.helpers import pagination_meta
from common.security import Principal
from modules.auth.deps import require_admin
from modules.order.service import order_service

router = APIRouter(prefix="/api/orders", tags=["order-admin"])


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


@router.get("/admin")
def admin_orders(
    status: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    orders, total, page, limit = order_service.get_all_orders(
        db, status=status, user_id=user_id, page=page, limit=limit,
    )
    return {
        "success": True,
        "data": {
            "orders": [o.to_dict() for o in orders],
            "pagination": pagination_meta(page, limit, total),
        },
    }


@router.patch("/{order_id}/status")
def update_order_status(
    order_id: int,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
    admin: Principal = Depends(require_admin),
):
    """Move an order to another status (pending/processing/shipped/delivered/cancelled)."""
    order_service.update_order_status(db, order_id, body.status)
    db.commit()
    order = order_service.get_order(db, order_id)
    return {"success": True, "data": order.to_dict()}
