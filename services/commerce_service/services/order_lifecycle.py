"""Order lifecycle: checkout, cancellation, admin transitions and webhook reconciliation.

Each public operation is one database transaction. It commits on success; on
any failure the session is rolled back before the error reaches the caller,
so stock, cart and order rows are either all changed or all untouched.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.currency import paise_to_rupees
from libs.common.datetime_utils import as_utc, utc_now
from libs.common.logging import get_logger
from services.commerce_service.errors import (
    EmptyCart,
    OrderNotFound,
    PaymentAlreadyUsed,
    ProductNotFound,
)
from services.commerce_service.models import (
    Cart,
    Order,
    OrderEvent,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    PaymentMethod,
    PaymentStatus,
    UnmatchedCapture,
)
from services.commerce_service.razorpay_client import (
    OrderPaid,
    PaymentCaptured,
    PaymentFailed,
    WebhookEvent,
)
from services.commerce_service.services import stock_reservation
from services.commerce_service.services.order_state import (
    Effect,
    Transition,
    can_move_payment,
    is_cancellable,
    plan_transition,
)
from services.commerce_service.services.pricing import PricedLine, price_for_destination
from services.commerce_service.services.stock_reservation import StockRequest, StockUpdate
from services.commerce_service.services.transactions import unit_of_work
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

WEBHOOK_ACTOR = "razorpay-webhook"
DEFAULT_CANCEL_REASON = "Cancelled by customer"


@dataclass(frozen=True)
class VerifiedPayment:
    """Gateway payment whose checkout signature has already been checked."""

    gateway_order_id: str
    payment_id: str
    signature: str


@dataclass(frozen=True)
class TrackingInfo:
    tracking_number: Optional[str] = None
    courier_service: Optional[str] = None
    estimated_delivery: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _lock_order(db: AsyncSession, *conditions) -> Optional[Order]:
    query = (
        select(Order)
        .where(*conditions)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return result.scalars().first()


async def load_order(
    db: AsyncSession, order_number: str, principal_id: Optional[str] = None
) -> Order:
    """Lock an order by its public code, optionally scoped to its owner."""
    conditions = [Order.order_number == order_number]
    if principal_id is not None:
        conditions.append(Order.principal_id == principal_id)
    order = await _lock_order(db, *conditions)
    if order is None:
        raise OrderNotFound(order_number)
    return order


def _append_history(
    order: Order,
    event: OrderEvent,
    actor: str,
    note: Optional[str] = None,
) -> OrderStatusHistory:
    history = list(order.status_history)
    timestamp = utc_now()
    if history:
        # Never earlier than the previous entry, even if clocks disagree
        last = as_utc(history[-1].created_at)
        if last and last > timestamp:
            timestamp = last
    entry = OrderStatusHistory(
        sequence=len(history) + 1,
        status=order.order_status,
        event=event,
        actor=actor,
        note=note,
        created_at=timestamp,
    )
    order.status_history.append(entry)
    return entry


def _stock_requests(order: Order) -> list[StockRequest]:
    return [StockRequest(item.product_code, item.quantity) for item in order.items]


async def _apply_transition(
    db: AsyncSession,
    order: Order,
    transition: Transition,
    *,
    actor: str,
    event: OrderEvent,
    note: Optional[str],
) -> list[StockUpdate]:
    """Move the order and run the transition's side effects, then record history."""
    now = utc_now()
    restored: list[StockUpdate] = []
    order.order_status = transition.target

    for effect in transition.effects:
        if effect == Effect.STAMP_CONFIRMED:
            order.confirmed_at = now
        elif effect == Effect.STAMP_SHIPPED:
            order.shipped_at = now
        elif effect == Effect.STAMP_DELIVERED:
            order.delivered_at = now
        elif effect == Effect.STAMP_CANCELLED:
            order.cancelled_at = now
        elif effect == Effect.RELEASE_STOCK:
            restored = await stock_reservation.release(
                db,
                _stock_requests(order),
                actor=actor,
                reference_id=order.order_number,
                note=note,
            )
        elif effect == Effect.REFUND_IF_PAID:
            if (
                order.payment_method == PaymentMethod.RAZORPAY
                and can_move_payment(order.payment_status, PaymentStatus.REFUNDED)
            ):
                # Records refund intent only; execution happens at the gateway
                order.payment_status = PaymentStatus.REFUNDED

    _append_history(order, event, actor, note)
    return restored


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


async def _existing_gateway_order(
    db: AsyncSession, payment: VerifiedPayment, principal_id: str
) -> Optional[Order]:
    """Order already placed with this payment, if it belongs to ``principal_id``."""
    result = await db.execute(
        select(Order).where(Order.gateway_payment_id == payment.payment_id)
    )
    order = result.scalar_one_or_none()
    if order is not None and order.principal_id != principal_id:
        logger.warning(
            "Payment %s presented by %s already belongs to order %s",
            payment.payment_id,
            principal_id,
            order.order_number,
        )
        raise PaymentAlreadyUsed()
    return order


async def create_from_cart(
    db: AsyncSession,
    *,
    principal_id: str,
    shipping_address: dict,
    payment_method: PaymentMethod,
    payment: Optional[VerifiedPayment] = None,
) -> tuple[Order, list[StockUpdate]]:
    """Convert the principal's cart into an order.

    Cart read, stock reservation, order insert and cart clear happen in one
    transaction. A gateway payment that already produced an order for the
    same principal returns that order unchanged; one owned by another
    principal is refused.
    """
    async with unit_of_work(db, "create_from_cart"):
        result = await db.execute(
            select(Cart)
            .where(Cart.principal_id == principal_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        cart = result.scalar_one_or_none()

        # Checked under the cart lock so a concurrent duplicate sees the winner
        if payment is not None:
            existing = await _existing_gateway_order(db, payment, principal_id)
            if existing is not None:
                logger.info(
                    "Payment %s already placed order %s",
                    payment.payment_id,
                    existing.order_number,
                )
                return existing, []

        if cart is None or not cart.items:
            raise EmptyCart()

        products = {}
        for item in cart.items:
            product = await stock_reservation.lock_product(db, item.product_code)
            if product is None:
                raise ProductNotFound(item.product_code)
            products[item.product_code] = product

        order_number = Order.generate_order_number()
        stock_updates = await stock_reservation.reserve(
            db,
            [StockRequest(item.product_code, item.quantity) for item in cart.items],
            actor=principal_id,
            reference_id=order_number,
        )

        order_items = []
        for item in cart.items:
            product = products[item.product_code]
            line = PricedLine(unit_price=product.price, quantity=item.quantity)
            order_items.append(
                OrderItem(
                    product_code=product.product_code,
                    product_name=product.name,
                    category=product.category,
                    unit_price=product.price,
                    quantity=item.quantity,
                    line_subtotal=line.subtotal,
                    colour=item.colour,
                    images=[
                        {"url": image.url, "storage_handle": image.storage_handle}
                        for image in product.images
                    ],
                )
            )

        pricing = await price_for_destination(
            db,
            [PricedLine(i.unit_price, i.quantity) for i in order_items],
            shipping_address.get("pincode"),
        )

        order = Order(
            order_number=order_number,
            principal_id=principal_id,
            subtotal=pricing.subtotal,
            tax=pricing.tax,
            shipping=pricing.shipping,
            total=pricing.total,
            currency=pricing.currency,
            shipping_address=shipping_address,
            payment_method=payment_method,
            items=order_items,
            status_history=[],
        )
        if payment is not None:
            order.order_status = OrderStatus.CONFIRMED
            order.payment_status = PaymentStatus.PAID
            order.confirmed_at = utc_now()
            order.gateway_order_id = payment.gateway_order_id
            order.gateway_payment_id = payment.payment_id
            order.gateway_signature = payment.signature
            order.payment_verified = True
        else:
            order.order_status = OrderStatus.PENDING
            order.payment_status = PaymentStatus.PENDING

        _append_history(order, OrderEvent.PLACED, principal_id, "Order placed")
        if payment is not None:
            await _reconcile_early_capture(db, order, payment)
        db.add(order)

        cart.items.clear()
        await db.flush()

    logger.info(
        "Order %s placed by %s (%s, total=%s, %d lines)",
        order.order_number,
        principal_id,
        payment_method.value,
        order.total,
        len(order.items),
    )
    return order, stock_updates


# ---------------------------------------------------------------------------
# Cancellation and admin transitions
# ---------------------------------------------------------------------------


async def cancel(
    db: AsyncSession,
    order_number: str,
    *,
    actor: str,
    reason: Optional[str] = None,
    principal_id: Optional[str] = None,
) -> tuple[Order, list[StockUpdate]]:
    """Cancel a PENDING or CONFIRMED order and return its stock."""
    reason = reason or DEFAULT_CANCEL_REASON
    async with unit_of_work(db, "cancel"):
        order = await load_order(db, order_number, principal_id)
        transition = plan_transition(order.order_status, OrderStatus.CANCELLED)
        order.cancellation_reason = reason
        order.cancelled_by = actor
        restored = await _apply_transition(
            db,
            order,
            transition,
            actor=actor,
            event=OrderEvent.CANCELLED,
            note=reason,
        )
        await db.flush()

    logger.info(
        "Order %s cancelled by %s (%d lines restocked)",
        order.order_number,
        actor,
        len(restored),
    )
    return order, restored


async def transition_status(
    db: AsyncSession,
    order_number: str,
    *,
    actor: str,
    new_status: OrderStatus,
    notes: Optional[str] = None,
    tracking: Optional[TrackingInfo] = None,
) -> tuple[Order, list[StockUpdate]]:
    """Privileged status change. Exactly one history entry per call."""
    async with unit_of_work(db, "transition_status"):
        order = await load_order(db, order_number)
        previous = order.order_status
        transition = plan_transition(previous, new_status)

        if notes:
            order.admin_notes = notes
        if tracking is not None:
            if tracking.tracking_number is not None:
                order.tracking_number = tracking.tracking_number
            if tracking.courier_service is not None:
                order.courier_service = tracking.courier_service
            if tracking.estimated_delivery is not None:
                order.estimated_delivery = tracking.estimated_delivery
        if new_status == OrderStatus.CANCELLED:
            order.cancellation_reason = notes or "Cancelled by admin"
            order.cancelled_by = actor

        restored = await _apply_transition(
            db,
            order,
            transition,
            actor=actor,
            event=OrderEvent.STATUS_UPDATE,
            note=notes or f"Status updated to {new_status.value} by admin",
        )
        await db.flush()

    logger.info(
        "Order %s moved %s -> %s by %s",
        order.order_number,
        previous.value,
        new_status.value,
        actor,
    )
    return order, restored


# ---------------------------------------------------------------------------
# Webhook reconciliation
# ---------------------------------------------------------------------------


async def _order_for_payment(
    db: AsyncSession, payment_id: str, gateway_order_id: Optional[str]
) -> Optional[Order]:
    conditions = [Order.gateway_payment_id == payment_id]
    if gateway_order_id:
        conditions.append(Order.gateway_order_id == gateway_order_id)
    return await _lock_order(db, or_(*conditions))


def _record_settlement(
    order: Order, payment_id: str, amount_paise: int, method: Optional[str]
) -> None:
    amount = paise_to_rupees(amount_paise)
    if amount != order.total:
        logger.warning(
            "Captured amount %s differs from order %s total %s",
            amount,
            order.order_number,
            order.total,
        )

    order.payment_status = PaymentStatus.PAID
    order.gateway_payment_id = order.gateway_payment_id or payment_id
    order.amount_paid = amount
    order.gateway_payment_method = method
    order.settled_at = utc_now()
    _append_history(
        order,
        OrderEvent.PAYMENT_CAPTURED,
        WEBHOOK_ACTOR,
        "Payment captured via webhook",
    )


async def _hold_unmatched_capture(db: AsyncSession, event: PaymentCaptured) -> None:
    """Keep a capture whose order does not exist yet; checkout settles it later."""
    result = await db.execute(
        select(UnmatchedCapture).where(UnmatchedCapture.payment_id == event.payment_id)
    )
    if result.scalar_one_or_none() is not None:
        logger.info("payment.captured %s already held", event.payment_id)
        return
    db.add(
        UnmatchedCapture(
            payment_id=event.payment_id,
            gateway_order_id=event.order_id,
            amount=event.amount,
            method=event.method,
        )
    )
    logger.warning(
        "payment.captured for unknown payment %s held for reconciliation",
        event.payment_id,
    )


async def _reconcile_early_capture(
    db: AsyncSession, order: Order, payment: VerifiedPayment
) -> None:
    result = await db.execute(
        select(UnmatchedCapture)
        .where(UnmatchedCapture.payment_id == payment.payment_id)
        .with_for_update()
    )
    capture = result.scalar_one_or_none()
    if capture is None:
        return
    _record_settlement(order, capture.payment_id, capture.amount, capture.method)
    await db.delete(capture)
    logger.info(
        "Settled order %s from held capture %s", order.order_number, capture.payment_id
    )


async def _on_payment_captured(db: AsyncSession, event: PaymentCaptured) -> Optional[Order]:
    order = await _order_for_payment(db, event.payment_id, event.order_id)
    if order is None:
        await _hold_unmatched_capture(db, event)
        return None

    if order.payment_status == PaymentStatus.PAID and order.settled_at is not None:
        logger.info("payment.captured replay for order %s ignored", order.order_number)
        return order
    if order.payment_status not in (PaymentStatus.PENDING, PaymentStatus.PAID):
        logger.warning(
            "payment.captured for order %s in payment state %s ignored",
            order.order_number,
            order.payment_status.value,
        )
        return order

    _record_settlement(order, event.payment_id, event.amount, event.method)
    return order


async def _on_payment_failed(db: AsyncSession, event: PaymentFailed) -> Optional[Order]:
    order = await _order_for_payment(db, event.payment_id, event.order_id)
    if order is None:
        logger.warning("payment.failed for unknown payment %s", event.payment_id)
        return None

    if order.order_status == OrderStatus.CANCELLED or not can_move_payment(
        order.payment_status, PaymentStatus.FAILED
    ):
        logger.info(
            "payment.failed for order %s ignored (order=%s, payment=%s)",
            order.order_number,
            order.order_status.value,
            order.payment_status.value,
        )
        return order

    order.payment_status = PaymentStatus.FAILED
    note = "Payment failed via webhook"
    if event.reason:
        note = f"{note}: {event.reason}"

    if is_cancellable(order.order_status):
        order.cancellation_reason = note
        order.cancelled_by = WEBHOOK_ACTOR
        await _apply_transition(
            db,
            order,
            plan_transition(order.order_status, OrderStatus.CANCELLED),
            actor=WEBHOOK_ACTOR,
            event=OrderEvent.PAYMENT_FAILED,
            note=note,
        )
    else:
        _append_history(order, OrderEvent.PAYMENT_FAILED, WEBHOOK_ACTOR, note)
    return order


async def _on_order_paid(db: AsyncSession, event: OrderPaid) -> Optional[Order]:
    order = await _lock_order(db, Order.gateway_order_id == event.order_id)
    if order is None:
        logger.warning("order.paid for unknown gateway order %s", event.order_id)
        return None

    if order.order_status != OrderStatus.PENDING:
        logger.info(
            "order.paid for order %s in state %s ignored",
            order.order_number,
            order.order_status.value,
        )
        return order

    await _apply_transition(
        db,
        order,
        plan_transition(order.order_status, OrderStatus.CONFIRMED),
        actor=WEBHOOK_ACTOR,
        event=OrderEvent.GATEWAY_ORDER_PAID,
        note="Order paid via webhook",
    )
    return order


async def apply_webhook_event(db: AsyncSession, event: WebhookEvent) -> Optional[Order]:
    """Apply a verified gateway event. Safe to call repeatedly with the same event."""
    async with unit_of_work(db, "apply_webhook_event"):
        if isinstance(event, PaymentCaptured):
            order = await _on_payment_captured(db, event)
        elif isinstance(event, PaymentFailed):
            order = await _on_payment_failed(db, event)
        elif isinstance(event, OrderPaid):
            order = await _on_order_paid(db, event)
        else:
            raise TypeError(f"Unsupported webhook event: {event!r}")
        await db.flush()

    if order is not None:
        logger.info(
            "Applied %s to order %s",
            type(event).__name__,
            order.order_number,
        )
    return order
