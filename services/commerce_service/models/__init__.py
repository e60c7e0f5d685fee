"""Commerce Service models package."""

from services.commerce_service.models.catalog import (
    InventoryMovement,
    Product,
    ProductImage,
    ProductReview,
)
from services.commerce_service.models.commerce import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    OrderStatusHistory,
    UnmatchedCapture,
)
from services.commerce_service.models.delivery import DeliveryZone
from services.commerce_service.models.enums import (
    InventoryMovementType,
    OrderEvent,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    StockOperation,
)

__all__ = [
    "Cart",
    "CartItem",
    "DeliveryZone",
    "InventoryMovement",
    "InventoryMovementType",
    "Order",
    "OrderEvent",
    "OrderItem",
    "OrderStatus",
    "OrderStatusHistory",
    "PaymentMethod",
    "PaymentStatus",
    "Product",
    "ProductImage",
    "ProductReview",
    "StockOperation",
    "UnmatchedCapture",
]
