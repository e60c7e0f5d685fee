"""Delivery zone router: pincode registration and serviceability checks."""

import uuid

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.commerce_service.errors import DeliveryZoneNotFound, DuplicateDeliveryZone
from services.commerce_service.models import DeliveryZone
from services.commerce_service.models.delivery import is_valid_pincode
from services.commerce_service.schemas import (
    DeliveryZoneCreate,
    DeliveryZoneResponse,
    PincodeCheckResponse,
)
from services.commerce_service.services.pricing import get_active_zone
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/pincodes", tags=["delivery"])
logger = get_logger(__name__)

NOT_SERVICEABLE = "Delivery not available to this pincode"


@router.post("/add", response_model=DeliveryZoneResponse, status_code=201)
async def add_pincode(
    zone_in: DeliveryZoneCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Register a serviceable pincode. Deactivated pincodes still count as taken."""
    existing = await db.execute(
        select(DeliveryZone.id).where(DeliveryZone.pincode == zone_in.pincode)
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateDeliveryZone(f"Pincode {zone_in.pincode} already exists")

    zone = DeliveryZone(**zone_in.model_dump(), added_by=current_user.user_id)
    db.add(zone)
    await db.commit()
    await db.refresh(zone)

    logger.info("Pincode %s added by %s", zone.pincode, current_user.user_id)
    return zone


@router.delete("/admin/delete/{zone_id}")
async def delete_pincode(
    zone_id: uuid.UUID,
    permanent: bool = Query(False),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Deactivate a pincode, or remove it outright with ``permanent=true``."""
    zone = await db.get(DeliveryZone, zone_id)
    if zone is None:
        raise DeliveryZoneNotFound(f"Pincode record {zone_id} not found")

    if permanent:
        await db.delete(zone)
        message = "Pincode deleted permanently"
    else:
        zone.is_active = False
        message = "Pincode deactivated"
    await db.commit()

    logger.info("%s: %s by %s", message, zone.pincode, current_user.user_id)
    return {"success": True, "message": message}


@router.get("/check/{pincode}", response_model=PincodeCheckResponse)
async def check_pincode(pincode: str, db: AsyncSession = Depends(get_async_db)):
    pincode = pincode.strip()
    if not is_valid_pincode(pincode):
        return PincodeCheckResponse(available=False, message="Invalid pincode")

    zone = await get_active_zone(db, pincode)
    if zone is None:
        return PincodeCheckResponse(available=False, message=NOT_SERVICEABLE)

    return PincodeCheckResponse(
        available=True,
        cod_available=zone.cod_available,
        delivery_charge=zone.delivery_charge,
        estimated_delivery_days=zone.estimated_delivery_days,
        area=zone.area,
        city=zone.city,
        state=zone.state,
    )
