"""
Storefront API - Custom Exceptions
===================================
Business-level exceptions that can be caught and converted to HTTP responses.
Each error carries a machine-readable `kind` and the HTTP status it maps to.
"""

from typing import Optional


class StorefrontError(Exception):
    """Base exception for all business logic errors."""
    kind = "StorefrontError"
    status_code = 500

    def __init__(self, message: str = "An unexpected error occurred."):
        self.message = message
        super().__init__(self.message)

    def details(self) -> dict:
        """Extra structured fields for the error envelope."""
        return {}

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, **self.details()}


class ValidationError(StorefrontError):
    """Raised for invalid user input that passed schema validation."""
    kind = "ValidationError"
    status_code = 400


class AuthenticationError(StorefrontError):
    """Raised when the bearer token is missing or invalid."""
    kind = "AuthenticationError"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class AuthorizationError(StorefrontError):
    """Raised when the caller lacks permission."""
    kind = "AuthorizationError"
    status_code = 403

    def __init__(self, message: str = "Access denied. Admin privileges required."):
        super().__init__(message)


class NotFoundError(StorefrontError):
    """Raised when a requested resource doesn't exist."""
    kind = "NotFound"
    status_code = 404


class ProductNotFoundError(NotFoundError):
    kind = "ProductNotFound"

    def __init__(self, product_id: Optional[int] = None):
        self.product_id = product_id
        super().__init__("Product not found")


class InventoryNotFoundError(NotFoundError):
    kind = "InventoryNotFound"

    def __init__(self, product_id: Optional[int] = None):
        self.product_id = product_id
        super().__init__("Inventory not found for this product")


class CartItemNotFoundError(NotFoundError):
    kind = "CartItemNotFound"

    def __init__(self):
        super().__init__("Cart item not found")


class OrderNotFoundError(NotFoundError):
    kind = "OrderNotFound"

    def __init__(self):
        super().__init__("Order not found")


class DuplicateError(StorefrontError):
    """Raised for unique constraint violations at the business level."""
    kind = "Duplicate"
    status_code = 409


class EmptyCartError(StorefrontError):
    """Raised when an order is placed from a cart with no orderable lines."""
    kind = "EmptyCart"
    status_code = 400

    def __init__(self):
        super().__init__("Cart is empty. Add items to cart before creating an order.")


class InsufficientStockError(StorefrontError):
    """Raised when product inventory is not enough for the requested quantity."""
    kind = "InsufficientStock"
    status_code = 400

    def __init__(self, product_id: int, available: int, requested: int, product_name: str = ""):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        label = product_name or f"#{product_id}"
        super().__init__(
            f"Insufficient inventory for product: {label}. "
            f"Available: {available}, Requested: {requested}"
        )

    def details(self) -> dict:
        return {
            "product_id": self.product_id,
            "available": self.available,
            "requested": self.requested,
        }


class InvalidStatusError(StorefrontError):
    """Raised when an order status outside the allowed set is requested."""
    kind = "InvalidStatus"
    status_code = 400

    def __init__(self, status: Optional[str], allowed):
        self.status = status
        self.allowed = tuple(allowed)
        super().__init__(f"Invalid status. Must be one of: {', '.join(self.allowed)}")

    def details(self) -> dict:
        return {"allowed": list(self.allowed)}
