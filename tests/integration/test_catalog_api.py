"""Integration tests for catalog and admin catalog endpoints."""

from decimal import Decimal

import pytest
from services.commerce_service.app.main import app
from services.commerce_service.models import InventoryMovement
from sqlalchemy import select
from tests.conftest import make_admin_user, override_auth
from tests.factories import ProductFactory

# ---------------------------------------------------------------------------
# Public catalog
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_and_get_products(client, db_session):
    product = ProductFactory.create(product_code="P1")
    db_session.add(product)
    await db_session.commit()

    listing = await client.get("/products")
    assert listing.status_code == 200
    assert [p["product_code"] for p in listing.json()] == ["P1"]

    detail = await client.get("/products/P1")
    assert detail.status_code == 200
    data = detail.json()
    assert Decimal(data["price"]) == Decimal("500.00")
    assert data["in_stock"] is True


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_unknown_product(client):
    response = await client.get("/products/NOPE")
    assert response.status_code == 404
    assert response.json()["code"] == "product_not_found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_availability_is_advisory(client, db_session):
    db_session.add(ProductFactory.create(product_code="P1", stock_quantity=3))
    await db_session.commit()

    enough = (await client.get("/products/P1/availability/3")).json()
    too_many = (await client.get("/products/P1/availability/4")).json()

    assert enough["available"] is True
    assert too_many["available"] is False
    assert too_many["stock_quantity"] == 3
    assert (await client.get("/products/P1/availability/0")).status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_review(client, db_session):
    db_session.add(ProductFactory.create(product_code="P1"))
    await db_session.commit()

    response = await client.post(
        "/products/P1/reviews", json={"rating": 4, "comment": "Solid frame"}
    )
    assert response.status_code == 201, response.text
    assert response.json()["author_label"] == "customer-1@example.com"

    invalid = await client.post("/products/P1/reviews", json={"rating": 6})
    assert invalid.status_code == 400


# ---------------------------------------------------------------------------
# Admin catalog
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product_requires_admin(client):
    response = await client.post(
        "/admin/products",
        json={"name": "Shuttle Tube", "category": "shuttles", "price": "250.00"},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_create_product(client):
    payload = {
        "name": "Shuttle Tube",
        "category": "shuttles",
        "price": "250.00",
        "stock_quantity": 40,
        "images": [
            {"url": "https://cdn.example.com/a.jpg", "storage_handle": "products/a"},
            {"url": "https://cdn.example.com/b.jpg", "storage_handle": "products/b"},
        ],
    }
    with override_auth(app, make_admin_user()):
        response = await client.post("/admin/products", json=payload)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["product_code"].startswith("PROD-")
    assert data["stock_quantity"] == 40
    assert [img["sort_order"] for img in data["images"]] == [0, 1]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_low_stock_listing(client, db_session):
    db_session.add_all(
        [
            ProductFactory.create(product_code="LOW", stock_quantity=2),
            ProductFactory.create(product_code="OK", stock_quantity=50),
        ]
    )
    await db_session.commit()

    with override_auth(app, make_admin_user()):
        response = await client.get("/admin/products/low-stock")

    assert response.status_code == 200
    assert [p["product_code"] for p in response.json()] == ["LOW"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_adjust_stock(client, db_session):
    db_session.add(ProductFactory.create(product_code="P1", stock_quantity=4))
    await db_session.commit()

    with override_auth(app, make_admin_user()):
        added = await client.patch(
            "/admin/products/P1/stock", json={"operation": "add", "quantity": 6}
        )
        clamped = await client.patch(
            "/admin/products/P1/stock", json={"operation": "subtract", "quantity": 99}
        )
        missing = await client.patch(
            "/admin/products/NOPE/stock", json={"operation": "set", "quantity": 1}
        )

    assert added.status_code == 200, added.text
    assert added.json()["new_stock"] == 10
    assert clamped.json() == {
        "product_code": "P1",
        "name": "Carbon Racket",
        "quantity": -10,
        "previous_stock": 10,
        "new_stock": 0,
    }
    assert missing.status_code == 404

    movements = (await db_session.execute(select(InventoryMovement))).scalars().all()
    assert sorted(m.quantity for m in movements) == [-10, 6]
