"""Integration tests for cart endpoints."""

from decimal import Decimal

import pytest
from services.commerce_service.app.main import app
from tests.conftest import make_user, override_auth
from tests.factories import ProductFactory


async def _seed_products(db_session):
    db_session.add_all(
        [
            ProductFactory.create(product_code="P1", price=Decimal("500")),
            ProductFactory.create(
                product_code="P2", name="Grip Tape", price=Decimal("120.50")
            ),
        ]
    )
    await db_session.commit()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_cart(client):
    response = await client.get("/cart")
    assert response.status_code == 200
    assert response.json() == {"items": [], "item_count": 0, "subtotal": "0.00"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_same_product_increments(client, db_session):
    await _seed_products(db_session)

    await client.post("/cart/add", json={"product_id": "P1", "quantity": 1})
    response = await client.post(
        "/cart/add", json={"product_id": "P1", "quantity": 2, "colour": "red"}
    )

    assert response.status_code == 200
    data = response.json()
    assert len(data["items"]) == 1
    assert data["items"][0]["quantity"] == 3
    assert data["items"][0]["colour"] == "red"
    assert Decimal(data["subtotal"]) == Decimal("1500.00")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_add_unknown_product(client):
    response = await client.post("/cart/add", json={"product_id": "NOPE"})
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_remove_and_clear(client, db_session):
    await _seed_products(db_session)
    await client.post("/cart/add", json={"product_id": "P1"})
    await client.post("/cart/add", json={"product_id": "P2"})

    updated = await client.patch(
        "/cart/update", json={"product_id": "P2", "quantity": 4}
    )
    assert updated.status_code == 200
    assert updated.json()["item_count"] == 5
    assert Decimal(updated.json()["subtotal"]) == Decimal("982.00")

    removed = await client.delete("/cart/remove/P1")
    assert [i["product_id"] for i in removed.json()["items"]] == ["P2"]

    missing = await client.delete("/cart/remove/P1")
    assert missing.status_code == 404

    cleared = await client.delete("/cart/clear")
    assert cleared.json()["items"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_rejects_zero_quantity(client, db_session):
    await _seed_products(db_session)
    await client.post("/cart/add", json={"product_id": "P1"})

    response = await client.patch(
        "/cart/update", json={"product_id": "P1", "quantity": 0}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_carts_are_per_principal(client, db_session):
    await _seed_products(db_session)
    await client.post("/cart/add", json={"product_id": "P1"})

    with override_auth(app, make_user("customer-2")):
        response = await client.get("/cart")

    assert response.json()["items"] == []
