"""Currency helpers for INR amounts.

Internal storage unit: rupees as ``Decimal`` with two places (``Numeric(12, 2)``).
Gateway unit: paise (smallest INR unit, 100 paise = ₹1), always an ``int``.

Conversion chain
----------------
Rupees × 100 → Paise
Paise  ÷ 100 → Rupees
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

# ─── constants ───────────────────────────────────────────────────────────────

PAISE_PER_RUPEE: int = 100
DEFAULT_CURRENCY: str = "INR"
CENT = Decimal("0.01")


# ─── conversion helpers ───────────────────────────────────────────────────────


def quantize_money(amount: Decimal | int | str) -> Decimal:
    """Round to two places, half-up."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def rupees_to_paise(rupees: Decimal | int | str) -> int:
    """Convert rupees to paise. ₹1 = 100 paise."""
    return int(quantize_money(rupees) * PAISE_PER_RUPEE)


def paise_to_rupees(paise: int) -> Decimal:
    """Convert paise to rupees. 100 paise = ₹1."""
    return quantize_money(Decimal(paise) / PAISE_PER_RUPEE)
