"""Unit tests for stock reservation.

Reservation functions never commit; these tests commit or roll back
themselves to play the part of the enclosing transaction.
"""

import pytest
from services.commerce_service.errors import (
    InsufficientStock,
    ProductNotFound,
    ValidationFailed,
)
from services.commerce_service.models import (
    InventoryMovement,
    InventoryMovementType,
    StockOperation,
)
from services.commerce_service.services.stock_reservation import (
    StockRequest,
    adjust_stock,
    release,
    reserve,
)
from sqlalchemy import select
from tests.factories import ProductFactory


async def _add_products(db, *products):
    for product in products:
        db.add(product)
    await db.commit()
    return products


# ---------------------------------------------------------------------------
# reserve
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserve_decrements_every_item(db_session):
    """All requested quantities come off their products."""
    p1, p2 = await _add_products(
        db_session,
        ProductFactory.create(product_code="PROD-100001", stock_quantity=5),
        ProductFactory.create(product_code="PROD-100002", stock_quantity=3),
    )

    updates = await reserve(
        db_session,
        [StockRequest("PROD-100001", 2), StockRequest("PROD-100002", 3)],
        actor="customer-1",
        reference_id="ORD-TEST",
    )
    await db_session.commit()

    assert [(u.product_code, u.previous_stock, u.new_stock) for u in updates] == [
        ("PROD-100001", 5, 3),
        ("PROD-100002", 3, 0),
    ]
    assert p1.stock_quantity == 3
    assert p1.in_stock is True
    assert p2.stock_quantity == 0
    assert p2.in_stock is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserve_is_all_or_nothing(db_session):
    """A shortfall on a later item leaves earlier items untouched after rollback."""
    p1, p2 = await _add_products(
        db_session,
        ProductFactory.create(product_code="PROD-200001", stock_quantity=5),
        ProductFactory.create(product_code="PROD-200002", stock_quantity=1),
    )

    with pytest.raises(InsufficientStock) as exc_info:
        await reserve(
            db_session,
            [StockRequest("PROD-200001", 2), StockRequest("PROD-200002", 2)],
        )
    await db_session.rollback()

    assert exc_info.value.product_code == "PROD-200002"
    assert exc_info.value.available == 1
    assert exc_info.value.requested == 2

    await db_session.refresh(p1)
    await db_session.refresh(p2)
    assert p1.stock_quantity == 5
    assert p2.stock_quantity == 1

    movements = (await db_session.execute(select(InventoryMovement))).scalars().all()
    assert movements == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserve_same_product_twice_accumulates(db_session):
    """Repeated lines for one product are checked against the running balance."""
    (product,) = await _add_products(
        db_session, ProductFactory.create(product_code="PROD-300001", stock_quantity=3)
    )

    with pytest.raises(InsufficientStock) as exc_info:
        await reserve(
            db_session,
            [StockRequest("PROD-300001", 2), StockRequest("PROD-300001", 2)],
        )
    await db_session.rollback()

    assert exc_info.value.available == 1
    await db_session.refresh(product)
    assert product.stock_quantity == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserve_unknown_product(db_session):
    with pytest.raises(ProductNotFound):
        await reserve(db_session, [StockRequest("PROD-404404", 1)])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserve_rejects_non_positive_quantity(db_session):
    await _add_products(db_session, ProductFactory.create(product_code="PROD-300002"))

    with pytest.raises(ValidationFailed):
        await reserve(db_session, [StockRequest("PROD-300002", 0)])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_reserve_records_inventory_movements(db_session):
    await _add_products(
        db_session, ProductFactory.create(product_code="PROD-300003", stock_quantity=4)
    )

    await reserve(
        db_session,
        [StockRequest("PROD-300003", 3)],
        actor="customer-1",
        reference_id="ORD-1",
    )
    await db_session.commit()

    movement = (await db_session.execute(select(InventoryMovement))).scalar_one()
    assert movement.movement_type == InventoryMovementType.RESERVATION
    assert movement.quantity == -3
    assert movement.quantity_after == 1
    assert movement.reference_id == "ORD-1"


# ---------------------------------------------------------------------------
# release
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_release_restores_stock_and_recomputes_flag(db_session):
    """Released stock is added back and in_stock follows the quantity."""
    (product,) = await _add_products(
        db_session, ProductFactory.create(product_code="PROD-400001", stock_quantity=0)
    )
    assert product.in_stock is False

    updates = await release(
        db_session, [StockRequest("PROD-400001", 2)], reference_id="ORD-2"
    )
    await db_session.commit()

    assert product.stock_quantity == 2
    assert product.in_stock is True
    assert updates[0].previous_stock == 0
    assert updates[0].new_stock == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_release_skips_missing_products(db_session):
    await _add_products(
        db_session, ProductFactory.create(product_code="PROD-400002", stock_quantity=1)
    )

    updates = await release(
        db_session,
        [StockRequest("PROD-GONE01", 1), StockRequest("PROD-400002", 1)],
    )
    await db_session.commit()

    assert [u.product_code for u in updates] == ["PROD-400002"]


# ---------------------------------------------------------------------------
# adjust_stock
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_adjust_stock_operations(db_session):
    """set replaces, add increments, subtract clamps at zero."""
    (product,) = await _add_products(
        db_session, ProductFactory.create(product_code="PROD-500001", stock_quantity=4)
    )

    await adjust_stock(
        db_session, "PROD-500001", StockOperation.SET, 10, actor="admin-1"
    )
    assert product.stock_quantity == 10

    await adjust_stock(
        db_session, "PROD-500001", StockOperation.ADD, 5, actor="admin-1"
    )
    assert product.stock_quantity == 15

    update = await adjust_stock(
        db_session, "PROD-500001", StockOperation.SUBTRACT, 40, actor="admin-1"
    )
    await db_session.commit()

    assert product.stock_quantity == 0
    assert product.in_stock is False
    assert update.quantity == -15


@pytest.mark.unit
def test_negative_stock_is_rejected_by_the_model():
    """The stock invariant is enforced on assignment."""
    product = ProductFactory.create(stock_quantity=1)

    with pytest.raises(ValueError):
        product.stock_quantity = -1
