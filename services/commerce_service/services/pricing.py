"""Order pricing: subtotal, tax, shipping and total.

All amounts are ``Decimal`` rupees quantized to paise. ``total`` is always the
exact sum of its parts.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.currency import DEFAULT_CURRENCY, quantize_money
from services.commerce_service.models import DeliveryZone
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

TAX_RATE = Decimal("0.08")
FREE_SHIPPING_THRESHOLD = Decimal("750")  # exclusive
FLAT_SHIPPING_FEE = Decimal("99")


@dataclass(frozen=True)
class PricedLine:
    unit_price: Decimal
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return quantize_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class OrderPricing:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    currency: str = DEFAULT_CURRENCY


def shipping_for(subtotal: Decimal, zone_surcharge: Optional[Decimal] = None) -> Decimal:
    """Free above the threshold, flat fee otherwise; a larger zone surcharge wins."""
    shipping = Decimal("0") if subtotal > FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING_FEE
    if zone_surcharge is not None and zone_surcharge > shipping:
        shipping = zone_surcharge
    return quantize_money(shipping)


def compute_pricing(
    lines: Iterable[PricedLine], zone_surcharge: Optional[Decimal] = None
) -> OrderPricing:
    subtotal = quantize_money(sum((line.subtotal for line in lines), Decimal("0")))
    tax = quantize_money(subtotal * TAX_RATE)
    shipping = shipping_for(subtotal, zone_surcharge)
    return OrderPricing(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total=subtotal + tax + shipping,
    )


async def get_active_zone(db: AsyncSession, pincode: str) -> Optional[DeliveryZone]:
    query = select(DeliveryZone).where(
        DeliveryZone.pincode == pincode, DeliveryZone.is_active.is_(True)
    )
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def price_for_destination(
    db: AsyncSession, lines: Iterable[PricedLine], pincode: Optional[str]
) -> OrderPricing:
    """Price the lines, applying the destination zone's surcharge if one is active."""
    zone = await get_active_zone(db, pincode) if pincode else None
    surcharge = Decimal(zone.delivery_charge) if zone and zone.delivery_charge else None
    return compute_pricing(lines, surcharge)
