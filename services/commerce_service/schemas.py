"""Pydantic schemas for commerce service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.currency import DEFAULT_CURRENCY
from pydantic import BaseModel, ConfigDict, Field, computed_field
from services.commerce_service.models import (
    OrderEvent,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    StockOperation,
)

PINCODE_REGEX = r"^[1-9][0-9]{5}$"

# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductImageIn(BaseModel):
    """Image reference as returned by the object store after upload."""

    url: str = Field(..., max_length=1024)
    storage_handle: str = Field(..., max_length=255)


class ProductImageResponse(ProductImageIn):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sort_order: int


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    category: str = Field(..., min_length=1, max_length=100)
    details: Optional[str] = None
    price: Decimal = Field(..., ge=0, decimal_places=2)
    stock_quantity: int = Field(0, ge=0)
    low_stock_threshold: int = Field(5, ge=0)
    colour_options: list[str] = []
    images: list[ProductImageIn] = []


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)
    author_label: Optional[str] = Field(None, max_length=255)


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    rating: int
    comment: Optional[str]
    author_label: str
    created_at: datetime


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_code: str
    name: str
    category: str
    details: Optional[str]
    price: Decimal
    stock_quantity: int
    in_stock: bool
    low_stock_threshold: int
    colour_options: list[str]
    images: list[ProductImageResponse] = []
    reviews: list[ReviewResponse] = []
    created_at: datetime


class AvailabilityResponse(BaseModel):
    product_id: str
    available: bool
    stock_quantity: int
    requested: int


class StockAdjustment(BaseModel):
    """Direct stock change (admin)."""

    operation: StockOperation
    quantity: int = Field(..., ge=0)
    note: Optional[str] = None


class StockUpdateResponse(BaseModel):
    product_code: str
    name: str
    quantity: int
    previous_stock: int
    new_stock: int


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemAdd(BaseModel):
    product_id: str = Field(..., max_length=32)
    quantity: int = Field(1, ge=1)
    colour: Optional[str] = Field(None, max_length=50)


class CartItemUpdate(BaseModel):
    product_id: str = Field(..., max_length=32)
    quantity: int = Field(..., ge=1)


class CartLineResponse(BaseModel):
    product_id: str
    quantity: int
    colour: Optional[str] = None
    name: Optional[str] = None
    unit_price: Optional[Decimal] = None
    line_subtotal: Optional[Decimal] = None
    in_stock: bool = False


class CartResponse(BaseModel):
    items: list[CartLineResponse]
    item_count: int
    subtotal: Decimal


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class ShippingAddress(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=10, max_length=15)
    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: Optional[str] = Field(None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    pincode: str = Field(..., pattern=PINCODE_REGEX)
    country: str = "India"


class CreateOrderRequest(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod = PaymentMethod.COD


class RazorpayOrderRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)


class GatewayOrderResponse(BaseModel):
    id: str
    amount: int
    currency: str
    receipt: Optional[str]
    status: str


class RazorpayOrderResponse(BaseModel):
    success: bool = True
    order: GatewayOrderResponse
    key_id: str


class CheckoutOrderData(BaseModel):
    shipping_address: ShippingAddress


class VerifyPaymentRequest(BaseModel):
    # Optional so a missing field fails signature verification, not parsing
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    order_data: CheckoutOrderData


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class TrackingInfoIn(BaseModel):
    tracking_number: Optional[str] = Field(None, max_length=100)
    courier_service: Optional[str] = Field(None, max_length=100)
    estimated_delivery: Optional[datetime] = None


class OrderStatusUpdate(BaseModel):
    """Update order status (admin)."""

    status: OrderStatus
    notes: Optional[str] = None
    tracking_info: Optional[TrackingInfoIn] = None


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_code: str
    product_name: str
    category: str
    unit_price: Decimal
    quantity: int
    line_subtotal: Decimal
    colour: Optional[str]
    images: list[dict] = []


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    status: OrderStatus
    event: OrderEvent
    actor: str
    note: Optional[str]
    created_at: datetime


class OrderSummary(BaseModel):
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    currency: str


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    principal_id: str
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    currency: str
    shipping_address: dict
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus

    gateway_order_id: Optional[str]
    gateway_payment_id: Optional[str]
    payment_verified: bool
    amount_paid: Optional[Decimal]
    settled_at: Optional[datetime]

    tracking_number: Optional[str]
    courier_service: Optional[str]
    estimated_delivery: Optional[datetime]
    cancellation_reason: Optional[str]

    confirmed_at: Optional[datetime]
    shipped_at: Optional[datetime]
    delivered_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    created_at: datetime

    items: list[OrderItemResponse]
    status_history: list[StatusHistoryResponse]

    @computed_field
    @property
    def order_summary(self) -> OrderSummary:
        return OrderSummary(
            subtotal=self.subtotal,
            tax=self.tax,
            shipping=self.shipping,
            total=self.total,
            currency=self.currency,
        )


class CreateOrderResponse(BaseModel):
    success: bool = True
    order_id: str
    order: OrderResponse
    stock_updates: list[StockUpdateResponse]


class CancelOrderResponse(BaseModel):
    success: bool = True
    order: OrderResponse
    stock_restorations: list[StockUpdateResponse]


class StatusUpdateResponse(BaseModel):
    success: bool = True
    order: OrderResponse
    stock_restorations: list[StockUpdateResponse] = []


class OrderListResponse(BaseModel):
    """Paginated order list."""

    items: list[OrderResponse]
    total: int
    page: int
    limit: int


class OrderStatusStat(BaseModel):
    status: OrderStatus
    count: int
    total_value: Decimal


class AdminOrderListResponse(OrderListResponse):
    stats: list[OrderStatusStat]


# ============================================================================
# DELIVERY ZONE SCHEMAS
# ============================================================================


class DeliveryZoneCreate(BaseModel):
    pincode: str = Field(..., pattern=PINCODE_REGEX)
    area: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    cod_available: bool = True
    delivery_charge: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    estimated_delivery_days: int = Field(3, ge=1)


class DeliveryZoneResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    pincode: str
    area: str
    city: str
    state: str
    cod_available: bool
    delivery_charge: Decimal
    estimated_delivery_days: int
    is_active: bool
    added_by: Optional[str]
    created_at: datetime


class PincodeCheckResponse(BaseModel):
    available: bool
    cod_available: Optional[bool] = None
    delivery_charge: Optional[Decimal] = None
    estimated_delivery_days: Optional[int] = None
    area: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    message: Optional[str] = None
