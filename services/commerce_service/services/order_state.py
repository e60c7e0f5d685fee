"""Order and payment state machines.

The transition table is the single place that decides which status moves are
legal and which side effects each one carries. Callers look a move up with
``plan_transition`` and apply the returned effects; nothing else branches on
status strings.
"""

import enum
from dataclasses import dataclass

from services.commerce_service.errors import InvalidTransition
from services.commerce_service.models import OrderStatus, PaymentStatus


class Effect(str, enum.Enum):
    STAMP_CONFIRMED = "stamp_confirmed"
    STAMP_SHIPPED = "stamp_shipped"
    STAMP_DELIVERED = "stamp_delivered"
    STAMP_CANCELLED = "stamp_cancelled"
    RELEASE_STOCK = "release_stock"
    REFUND_IF_PAID = "refund_if_paid"


# Forward path; later states may be reached directly from earlier ones
FULFILMENT_FLOW = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)
TERMINAL_STATES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})
CANCELLABLE_STATES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

ARRIVAL_EFFECTS: dict[OrderStatus, tuple[Effect, ...]] = {
    OrderStatus.CONFIRMED: (Effect.STAMP_CONFIRMED,),
    OrderStatus.SHIPPED: (Effect.STAMP_SHIPPED,),
    OrderStatus.DELIVERED: (Effect.STAMP_DELIVERED,),
    OrderStatus.CANCELLED: (
        Effect.STAMP_CANCELLED,
        Effect.RELEASE_STOCK,
        Effect.REFUND_IF_PAID,
    ),
}


@dataclass(frozen=True)
class Transition:
    source: OrderStatus
    target: OrderStatus
    effects: tuple[Effect, ...]


def _build_order_table() -> dict[tuple[OrderStatus, OrderStatus], Transition]:
    table = {}
    for i, source in enumerate(FULFILMENT_FLOW):
        if source in TERMINAL_STATES:
            continue
        # Re-applying the current state records notes/tracking without effects
        table[(source, source)] = Transition(source, source, ())
        for target in FULFILMENT_FLOW[i + 1 :]:
            table[(source, target)] = Transition(
                source, target, ARRIVAL_EFFECTS.get(target, ())
            )
    for source in CANCELLABLE_STATES:
        table[(source, OrderStatus.CANCELLED)] = Transition(
            source, OrderStatus.CANCELLED, ARRIVAL_EFFECTS[OrderStatus.CANCELLED]
        )
    return table


ORDER_TRANSITIONS = _build_order_table()

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.FAILED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}


def plan_transition(current: OrderStatus, target: OrderStatus) -> Transition:
    """Return the table entry for ``current -> target`` or raise InvalidTransition."""
    transition = ORDER_TRANSITIONS.get((current, target))
    if transition is not None:
        return transition

    if current in TERMINAL_STATES:
        message = f"Order is already {current.value} and cannot be changed"
    elif target == OrderStatus.CANCELLED:
        message = f"Order cannot be cancelled once it is {current.value}"
    else:
        message = None
    raise InvalidTransition(current.value, target.value, message)


def is_cancellable(status: OrderStatus) -> bool:
    return status in CANCELLABLE_STATES


def can_move_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[current]
