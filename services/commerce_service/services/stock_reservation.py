"""Stock reservation: all-or-nothing decrements and compensating releases.

These functions never commit. They run inside the caller's transaction so a
reservation becomes visible together with the order that owns it, or not at
all. Every touched product row is locked (``SELECT ... FOR UPDATE``) before it
is read, and the optimistic ``version`` column guards backends without row
locks.
"""

from dataclasses import asdict, dataclass
from typing import Iterable, Optional

from libs.common.logging import get_logger
from services.commerce_service.errors import (
    InsufficientStock,
    ProductNotFound,
    ValidationFailed,
)
from services.commerce_service.models import (
    InventoryMovement,
    InventoryMovementType,
    Product,
    StockOperation,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class StockRequest:
    product_code: str
    quantity: int


@dataclass
class StockUpdate:
    product_code: str
    name: str
    quantity: int
    previous_stock: int
    new_stock: int

    def to_dict(self) -> dict:
        return asdict(self)


async def lock_product(db: AsyncSession, product_code: str) -> Optional[Product]:
    """Load a product row under a write lock, refreshing any cached copy."""
    query = (
        select(Product)
        .where(Product.product_code == product_code)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


def _record_movement(
    db: AsyncSession,
    product: Product,
    movement_type: InventoryMovementType,
    quantity: int,
    *,
    actor: Optional[str],
    reference_id: Optional[str],
    note: Optional[str] = None,
) -> None:
    db.add(
        InventoryMovement(
            product_id=product.id,
            movement_type=movement_type,
            quantity=quantity,
            quantity_after=product.stock_quantity,
            reference_type="order" if reference_id else None,
            reference_id=reference_id,
            actor=actor,
            note=note,
        )
    )


# ---------------------------------------------------------------------------
# Reserve / release
# ---------------------------------------------------------------------------


async def reserve(
    db: AsyncSession,
    items: Iterable[StockRequest],
    *,
    actor: Optional[str] = None,
    reference_id: Optional[str] = None,
) -> list[StockUpdate]:
    """Decrement stock for every item, in the order given.

    Raises InsufficientStock on the first item that cannot be covered. Earlier
    decrements in the same attempt are undone by the caller's rollback.
    """
    updates: list[StockUpdate] = []
    for item in items:
        if item.quantity <= 0:
            raise ValidationFailed(
                f"Quantity for {item.product_code} must be at least 1"
            )

        product = await lock_product(db, item.product_code)
        if product is None:
            raise ProductNotFound(item.product_code)

        available = product.stock_quantity
        if available < item.quantity:
            raise InsufficientStock(item.product_code, available, item.quantity)

        product.stock_quantity = available - item.quantity
        _record_movement(
            db,
            product,
            InventoryMovementType.RESERVATION,
            -item.quantity,
            actor=actor,
            reference_id=reference_id,
        )
        # Flush per row so a repeated product re-reads the decremented value
        await db.flush()
        updates.append(
            StockUpdate(
                product_code=product.product_code,
                name=product.name,
                quantity=item.quantity,
                previous_stock=available,
                new_stock=product.stock_quantity,
            )
        )

    logger.info(
        "Reserved stock for %s: %s",
        reference_id or "-",
        ", ".join(f"{u.product_code}x{u.quantity}" for u in updates),
    )
    return updates


async def release(
    db: AsyncSession,
    items: Iterable[StockRequest],
    *,
    actor: Optional[str] = None,
    reference_id: Optional[str] = None,
    note: Optional[str] = None,
) -> list[StockUpdate]:
    """Return stock for every item. Products that no longer exist are skipped."""
    updates: list[StockUpdate] = []
    for item in items:
        product = await lock_product(db, item.product_code)
        if product is None:
            logger.warning(
                "Cannot release %d of missing product %s (order %s)",
                item.quantity,
                item.product_code,
                reference_id,
            )
            continue

        previous = product.stock_quantity
        product.stock_quantity = previous + item.quantity
        _record_movement(
            db,
            product,
            InventoryMovementType.RELEASE,
            item.quantity,
            actor=actor,
            reference_id=reference_id,
            note=note,
        )
        await db.flush()
        updates.append(
            StockUpdate(
                product_code=product.product_code,
                name=product.name,
                quantity=item.quantity,
                previous_stock=previous,
                new_stock=product.stock_quantity,
            )
        )

    logger.info(
        "Released stock for %s: %s",
        reference_id or "-",
        ", ".join(f"{u.product_code}x{u.quantity}" for u in updates),
    )
    return updates


# ---------------------------------------------------------------------------
# Admin adjustment
# ---------------------------------------------------------------------------


async def adjust_stock(
    db: AsyncSession,
    product_code: str,
    operation: StockOperation,
    quantity: int,
    *,
    actor: str,
    note: Optional[str] = None,
) -> StockUpdate:
    """Set, add or subtract stock directly. Subtraction clamps at zero."""
    if quantity < 0:
        raise ValidationFailed("Quantity cannot be negative")

    product = await lock_product(db, product_code)
    if product is None:
        raise ProductNotFound(product_code)

    previous = product.stock_quantity
    if operation == StockOperation.SET:
        new_stock = quantity
    elif operation == StockOperation.ADD:
        new_stock = previous + quantity
    else:
        new_stock = max(0, previous - quantity)

    product.stock_quantity = new_stock
    _record_movement(
        db,
        product,
        InventoryMovementType.ADJUSTMENT,
        new_stock - previous,
        actor=actor,
        reference_id=None,
        note=note or f"Stock {operation.value} {quantity}",
    )
    await db.flush()

    logger.info(
        "Adjusted stock of %s: %d -> %d by %s", product_code, previous, new_stock, actor
    )
    return StockUpdate(
        product_code=product.product_code,
        name=product.name,
        quantity=new_stock - previous,
        previous_stock=previous,
        new_stock=new_stock,
    )
