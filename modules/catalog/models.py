"""
Catalog Module - Models
========================
Product records. Sizes, colors and images are opaque descriptive metadata.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text, JSON,
    DateTime, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String, nullable=True, index=True)
    sizes = Column(JSON, nullable=False, default=list)
    colors = Column(JSON, nullable=False, default=list)
    images = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    inventory = relationship("Inventory", back_populates="product", uselist=False)

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price"),
    )

    @property
    def default_image(self):
        return self.images[0] if self.images else None

    def summary(self) -> dict:
        """Compact product view embedded in cart lines and orders."""
        return {
            "id": self.id,
            "name": self.name,
            "price": str(self.price),
            "image": self.default_image,
            "category": self.category,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price": str(self.price),
            "category": self.category,
            "sizes": list(self.sizes or []),
            "colors": list(self.colors or []),
            "images": list(self.images or []),
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Product {self.name} ({self.price})>"
