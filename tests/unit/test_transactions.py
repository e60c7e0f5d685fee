"""Unit tests for the shared transaction boundary."""

import pytest
import pytest_asyncio
from libs.db.base import Base
from services.commerce_service.errors import (
    ConcurrentUpdate,
    DatabaseUnavailable,
    InsufficientStock,
    PersistenceError,
)
from services.commerce_service.models import Order, PaymentMethod, Product
from services.commerce_service.services.transactions import unit_of_work
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm.exc import StaleDataError
from tests.factories import ProductFactory, shipping_address


async def _seed_product(db, stock=5) -> Product:
    product = ProductFactory.create(product_code="P1", stock_quantity=stock)
    db.add(product)
    await db.commit()
    return product


def _pending_order() -> Order:
    return Order(
        order_number=Order.generate_order_number(),
        principal_id="customer-1",
        subtotal=0,
        tax=0,
        shipping=0,
        total=0,
        shipping_address=shipping_address(),
        payment_method=PaymentMethod.COD,
    )


async def _fail_inside(db, product: Product, error: Exception):
    """Change stock and add an order, flush both, then fail."""
    async with unit_of_work(db, "test"):
        product.stock_quantity = 1
        db.add(_pending_order())
        await db.flush()
        raise error


async def _assert_untouched(db, product: Product):
    await db.refresh(product)
    assert product.stock_quantity == 5
    assert await db.scalar(select(func.count()).select_from(Order)) == 0


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stale_data_maps_to_concurrent_update(db_session):
    product = await _seed_product(db_session)

    with pytest.raises(ConcurrentUpdate) as exc_info:
        await _fail_inside(db_session, product, StaleDataError("version mismatch"))

    assert exc_info.value.status_code == 409
    assert isinstance(exc_info.value.__cause__, StaleDataError)
    await _assert_untouched(db_session, product)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_operational_error_maps_to_database_unavailable(db_session):
    product = await _seed_product(db_session)
    error = OperationalError("UPDATE commerce_products", {}, Exception("server gone"))

    with pytest.raises(DatabaseUnavailable) as exc_info:
        await _fail_inside(db_session, product, error)

    assert exc_info.value.status_code == 503
    await _assert_untouched(db_session, product)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_other_storage_errors_map_to_persistence_error(db_session):
    product = await _seed_product(db_session)
    error = IntegrityError("INSERT INTO commerce_orders", {}, Exception("duplicate"))

    with pytest.raises(PersistenceError) as exc_info:
        await _fail_inside(db_session, product, error)

    assert not isinstance(exc_info.value, DatabaseUnavailable)
    assert exc_info.value.status_code == 500
    await _assert_untouched(db_session, product)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_domain_errors_pass_through_after_rollback(db_session):
    product = await _seed_product(db_session)

    with pytest.raises(InsufficientStock):
        await _fail_inside(db_session, product, InsufficientStock("P1", 1, 2))

    await _assert_untouched(db_session, product)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unexpected_errors_are_reraised_after_rollback(db_session):
    product = await _seed_product(db_session)

    with pytest.raises(RuntimeError):
        await _fail_inside(db_session, product, RuntimeError("boom"))

    await _assert_untouched(db_session, product)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_success_commits(db_session):
    product = await _seed_product(db_session)

    async with unit_of_work(db_session, "test"):
        product.stock_quantity = 2

    await db_session.rollback()
    await db_session.refresh(product)
    assert product.stock_quantity == 2


# ---------------------------------------------------------------------------
# Optimistic locking across sessions
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def file_engine(tmp_path):
    """File-backed SQLite so two sessions hold separate connections."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'commerce.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.mark.asyncio
@pytest.mark.unit
async def test_racing_sessions_on_same_version(file_engine):
    """Two writers that read the same version: one wins, the other gets a conflict."""
    sessions = async_sessionmaker(
        bind=file_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with sessions() as setup:
        await _seed_product(setup, stock=1)

    query = select(Product).where(Product.product_code == "P1")
    async with sessions() as first, sessions() as second:
        winner = (await first.execute(query)).scalar_one()
        loser = (await second.execute(query)).scalar_one()
        assert winner.version == loser.version

        async with unit_of_work(first, "reserve"):
            winner.stock_quantity -= 1

        with pytest.raises(ConcurrentUpdate):
            async with unit_of_work(second, "reserve"):
                loser.stock_quantity -= 1

    async with sessions() as check:
        product = (await check.execute(query)).scalar_one()
        assert product.stock_quantity == 0
        assert product.version == winner.version
