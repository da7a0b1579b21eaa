"""
Cart Module - Models
=====================
Per-user cart lines. One line per (user, product) is maintained by
cart_service.add_item (merge on repeat add), not by a table constraint.
"""

from sqlalchemy import (
    Column, Integer, String, ForeignKey, DateTime, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    # SET NULL: a deleted product leaves a stale line behind
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_cart_qty"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "product_id": self.product_id,
            "product": self.product.summary() if self.product else None,
            "quantity": self.quantity,
        }
