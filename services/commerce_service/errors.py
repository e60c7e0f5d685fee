"""Typed failures raised by the commerce core.

Every error carries an HTTP status, a stable machine-readable ``code`` and a
human message. ``extra`` holds structured detail that is safe to return to
the client (e.g. available vs. requested stock).
"""

from typing import Any, Optional


class CommerceError(Exception):
    status_code: int = 400
    code: str = "commerce_error"

    def __init__(self, message: str, extra: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


class ValidationFailed(CommerceError):
    status_code = 400
    code = "validation_error"


class NotFound(CommerceError):
    status_code = 404
    code = "not_found"


class OrderNotFound(NotFound):
    code = "order_not_found"

    def __init__(self, order_ref: str):
        super().__init__(f"Order {order_ref} not found", {"order_id": order_ref})


class ProductNotFound(NotFound):
    code = "product_not_found"

    def __init__(self, product_code: str):
        super().__init__(
            f"Product {product_code} not found", {"product_id": product_code}
        )


class DeliveryZoneNotFound(NotFound):
    code = "pincode_not_found"


class EmptyCart(CommerceError):
    status_code = 400
    code = "empty_cart"

    def __init__(self, message: str = "Cart is empty"):
        super().__init__(message)


class InsufficientStock(CommerceError):
    status_code = 409
    code = "insufficient_stock"

    def __init__(self, product_code: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_code}: "
            f"{available} available, {requested} requested",
            {
                "product_id": product_code,
                "available": available,
                "requested": requested,
            },
        )
        self.product_code = product_code
        self.available = available
        self.requested = requested


class InvalidTransition(CommerceError):
    status_code = 400
    code = "invalid_transition"

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot move order from {current} to {target}",
            {"from_status": current, "to_status": target},
        )


class SignatureInvalid(CommerceError):
    status_code = 400
    code = "signature_invalid"

    def __init__(self, message: str = "Payment verification failed"):
        super().__init__(message)


class WebhookSignatureInvalid(CommerceError):
    status_code = 400
    code = "webhook_signature_invalid"

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message)


class PaymentAlreadyUsed(CommerceError):
    """The gateway payment already settled another principal's order."""

    status_code = 409
    code = "payment_already_used"

    def __init__(self, message: str = "Payment has already been used for another order"):
        super().__init__(message)


class DuplicateDeliveryZone(CommerceError):
    status_code = 400
    code = "duplicate_pincode"


class GatewayUnavailable(CommerceError):
    status_code = 502
    code = "gateway_unavailable"

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class PersistenceError(CommerceError):
    status_code = 500
    code = "persistence_error"

    def __init__(self, message: str = "Unexpected storage failure"):
        super().__init__(message)


class DatabaseUnavailable(PersistenceError):
    status_code = 503
    code = "database_unavailable"

    def __init__(self, message: str = "Database unavailable"):
        super().__init__(message)


class ConcurrentUpdate(CommerceError):
    """Another transaction changed the same row first; safe to retry."""

    status_code = 409
    code = "concurrent_update"

    def __init__(self, message: str = "Resource was modified concurrently, retry"):
        super().__init__(message)
