"""Customer order router: checkout, payment verification, cancellation and history."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import rupees_to_paise
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.commerce_service.errors import (
    OrderNotFound,
    SignatureInvalid,
    ValidationFailed,
)
from services.commerce_service.models import Order, PaymentMethod
from services.commerce_service.razorpay_client import (
    RazorpayClient,
    get_razorpay_client,
    verify_signature,
)
from services.commerce_service.routers.delivery import check_pincode
from services.commerce_service.schemas import (
    CancelOrderRequest,
    CancelOrderResponse,
    CreateOrderRequest,
    CreateOrderResponse,
    GatewayOrderResponse,
    OrderListResponse,
    OrderResponse,
    PincodeCheckResponse,
    RazorpayOrderRequest,
    RazorpayOrderResponse,
    VerifyPaymentRequest,
)
from services.commerce_service.services import order_lifecycle
from services.commerce_service.services.order_lifecycle import VerifiedPayment
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)
settings = get_settings()


# ============================================================================
# DELIVERY AND PAYMENT INTENT
# ============================================================================


@router.get("/check-cod/{pincode}", response_model=PincodeCheckResponse)
async def check_cod(pincode: str, db: AsyncSession = Depends(get_async_db)):
    """COD eligibility for a pincode; ``available`` reflects the COD flag."""
    result = await check_pincode(pincode, db)
    if result.available and not result.cod_available:
        result.available = False
        result.message = "Cash on delivery not available to this pincode"
    return result


@router.post("/create-razorpay-order", response_model=RazorpayOrderResponse)
async def create_razorpay_order(
    intent_in: RazorpayOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    client: RazorpayClient = Depends(get_razorpay_client),
):
    """Create the gateway order the client-side checkout pays against."""
    receipt = f"rcpt_{uuid.uuid4().hex[:16]}"
    gateway_order = await client.create_intent(
        rupees_to_paise(intent_in.amount), intent_in.currency, receipt
    )
    logger.info(
        "Payment intent %s created for %s", gateway_order.id, current_user.user_id
    )
    return RazorpayOrderResponse(
        order=GatewayOrderResponse(**gateway_order.__dict__),
        key_id=client.key_id,
    )


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/verify-payment", response_model=CreateOrderResponse)
async def verify_payment(
    payment_in: VerifyPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Verify the checkout signature, then place a paid order from the cart."""
    try:
        verify_signature(
            payment_in.razorpay_order_id,
            payment_in.razorpay_payment_id,
            payment_in.razorpay_signature,
            settings.RAZORPAY_KEY_SECRET,
        )
    except SignatureInvalid as e:
        logger.warning(
            "Payment signature rejected for %s (gateway order %s)",
            current_user.user_id,
            payment_in.razorpay_order_id,
        )
        return JSONResponse(
            status_code=e.status_code,
            content={"success": False, "message": e.message, "code": e.code},
        )

    order, stock_updates = await order_lifecycle.create_from_cart(
        db,
        principal_id=current_user.user_id,
        shipping_address=payment_in.order_data.shipping_address.model_dump(),
        payment_method=PaymentMethod.RAZORPAY,
        payment=VerifiedPayment(
            gateway_order_id=payment_in.razorpay_order_id,
            payment_id=payment_in.razorpay_payment_id,
            signature=payment_in.razorpay_signature,
        ),
    )
    return CreateOrderResponse(
        order_id=order.order_number,
        order=OrderResponse.model_validate(order),
        stock_updates=[u.to_dict() for u in stock_updates],
    )


@router.post("/create", response_model=CreateOrderResponse, status_code=201)
async def create_cod_order(
    order_in: CreateOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place a cash-on-delivery order from the cart."""
    if order_in.payment_method != PaymentMethod.COD:
        raise ValidationFailed(
            "Online payments must go through /orders/verify-payment"
        )

    order, stock_updates = await order_lifecycle.create_from_cart(
        db,
        principal_id=current_user.user_id,
        shipping_address=order_in.shipping_address.model_dump(),
        payment_method=PaymentMethod.COD,
    )
    return CreateOrderResponse(
        order_id=order.order_number,
        order=OrderResponse.model_validate(order),
        stock_updates=[u.to_dict() for u in stock_updates],
    )


@router.patch("/cancel/{order_id}", response_model=CancelOrderResponse)
async def cancel_order(
    order_id: str,
    cancel_in: Optional[CancelOrderRequest] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order, restored = await order_lifecycle.cancel(
        db,
        order_id,
        actor=current_user.user_id,
        reason=cancel_in.reason if cancel_in else None,
        principal_id=current_user.user_id,
    )
    return CancelOrderResponse(
        order=OrderResponse.model_validate(order),
        stock_restorations=[u.to_dict() for u in restored],
    )


# ============================================================================
# READ PATHS
# ============================================================================


@router.get("/my-orders", response_model=OrderListResponse)
async def list_my_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Order).where(Order.principal_id == current_user.user_id)
    total = await db.scalar(select(func.count()).select_from(query.subquery()))

    result = await db.execute(
        query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in result.scalars().all()],
        total=total or 0,
        page=page,
        limit=limit,
    )


@router.get("/details/{order_id}", response_model=OrderResponse)
async def get_order_details(
    order_id: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Order).where(Order.order_number == order_id)
    if not current_user.is_admin:
        query = query.where(Order.principal_id == current_user.user_id)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFound(order_id)
    return order
