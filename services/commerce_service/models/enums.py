"""Enum definitions for commerce service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, enum.Enum):
    COD = "COD"
    RAZORPAY = "RAZORPAY"


class OrderEvent(str, enum.Enum):
    """What caused a status history entry."""

    PLACED = "placed"
    CANCELLED = "cancelled"
    STATUS_UPDATE = "status_update"
    PAYMENT_CAPTURED = "payment_captured"
    PAYMENT_FAILED = "payment_failed"
    GATEWAY_ORDER_PAID = "gateway_order_paid"


class InventoryMovementType(str, enum.Enum):
    RESERVATION = "reservation"
    RELEASE = "release"
    ADJUSTMENT = "adjustment"


class StockOperation(str, enum.Enum):
    SET = "set"
    ADD = "add"
    SUBTRACT = "subtract"
