"""Delivery zone lookup keyed by pincode."""

import re
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

PINCODE_PATTERN = re.compile(r"^[1-9][0-9]{5}$")


def is_valid_pincode(value: str) -> bool:
    return bool(PINCODE_PATTERN.match(value or ""))


class DeliveryZone(Base):
    """Serviceable pincodes with COD eligibility, surcharge and lead time."""

    __tablename__ = "commerce_delivery_zones"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Unique across active and deactivated rows
    pincode: Mapped[str] = mapped_column(
        String(6), unique=True, index=True, nullable=False
    )
    area: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)

    cod_available: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    delivery_charge: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), server_default="0"
    )
    estimated_delivery_days: Mapped[int] = mapped_column(
        Integer, default=3, server_default="3"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", index=True
    )
    added_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("delivery_charge >= 0", name="zone_charge_non_negative"),
        CheckConstraint("estimated_delivery_days >= 1", name="zone_lead_days_min"),
    )

    def __repr__(self):
        return f"<DeliveryZone {self.pincode} active={self.is_active}>"
