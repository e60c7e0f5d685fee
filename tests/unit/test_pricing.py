"""Unit tests for the pricing engine.

compute_pricing is pure; the destination lookup test uses the db_session fixture.
"""

from decimal import Decimal

import pytest
from services.commerce_service.services.pricing import (
    FLAT_SHIPPING_FEE,
    PricedLine,
    compute_pricing,
    price_for_destination,
    shipping_for,
)
from tests.factories import DeliveryZoneFactory


def _lines(*pairs):
    return [PricedLine(Decimal(price), quantity) for price, quantity in pairs]


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_scenario_two_units_at_500():
    """2 x 500 -> subtotal 1000, tax 80, free shipping, total 1080."""
    pricing = compute_pricing(_lines(("500", 2)))

    assert pricing.subtotal == Decimal("1000.00")
    assert pricing.tax == Decimal("80.00")
    assert pricing.shipping == Decimal("0.00")
    assert pricing.total == Decimal("1080.00")
    assert pricing.currency == "INR"


@pytest.mark.unit
def test_total_is_exact_sum_of_parts_with_fractional_prices():
    """Odd prices still give total == subtotal + tax + shipping."""
    pricing = compute_pricing(_lines(("19.99", 3), ("0.37", 7), ("123.45", 1)))

    assert pricing.subtotal == Decimal("186.01")
    assert pricing.total == pricing.subtotal + pricing.tax + pricing.shipping
    assert pricing.tax == (pricing.subtotal * Decimal("0.08")).quantize(Decimal("0.01"))


@pytest.mark.unit
def test_tax_rounds_to_nearest_paisa():
    """Tax is quantized to two places."""
    assert compute_pricing(_lines(("0.19", 1))).tax == Decimal("0.02")  # 0.0152
    assert compute_pricing(_lines(("10.56", 1))).tax == Decimal("0.84")  # 0.8448
    assert compute_pricing(_lines(("0.06", 1))).tax == Decimal("0.00")  # 0.0048


# ---------------------------------------------------------------------------
# Shipping threshold
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_subtotal_exactly_750_pays_flat_fee():
    """The free-shipping threshold is exclusive."""
    assert shipping_for(Decimal("750")) == FLAT_SHIPPING_FEE


@pytest.mark.unit
def test_subtotal_above_750_ships_free():
    assert shipping_for(Decimal("750.01")) == Decimal("0.00")


@pytest.mark.unit
def test_zone_surcharge_wins_when_larger():
    """A surcharge above the rule result replaces it, even for free shipping."""
    assert shipping_for(Decimal("750.01"), Decimal("150")) == Decimal("150.00")
    assert shipping_for(Decimal("100"), Decimal("150")) == Decimal("150.00")


@pytest.mark.unit
def test_zone_surcharge_never_lowers_shipping():
    assert shipping_for(Decimal("100"), Decimal("40")) == FLAT_SHIPPING_FEE
    assert shipping_for(Decimal("1000"), Decimal("0")) == Decimal("0.00")


# ---------------------------------------------------------------------------
# Destination lookup
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_price_for_destination_applies_active_zone_surcharge(db_session):
    """Active zone charge is applied; inactive zones are ignored."""
    db_session.add(
        DeliveryZoneFactory.create(pincode="110001", delivery_charge=Decimal("200"))
    )
    db_session.add(
        DeliveryZoneFactory.create(
            pincode="400001", delivery_charge=Decimal("300"), is_active=False
        )
    )
    await db_session.commit()

    lines = _lines(("500", 2))
    remote = await price_for_destination(db_session, lines, "110001")
    inactive = await price_for_destination(db_session, lines, "400001")
    unknown = await price_for_destination(db_session, lines, "999999")

    assert remote.shipping == Decimal("200.00")
    assert remote.total == Decimal("1280.00")
    assert inactive.shipping == Decimal("0.00")
    assert unknown.shipping == Decimal("0.00")
