"""Admin order router: order search with stats and status transitions."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.currency import quantize_money
from libs.db.session import get_async_db
from services.commerce_service.models import Order, OrderStatus
from services.commerce_service.schemas import (
    AdminOrderListResponse,
    OrderResponse,
    OrderStatusStat,
    OrderStatusUpdate,
    StatusUpdateResponse,
)
from services.commerce_service.services import order_lifecycle
from services.commerce_service.services.order_lifecycle import TrackingInfo
from sqlalchemy import String, cast, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders/admin", tags=["admin-orders"])


@router.get("/all", response_model=AdminOrderListResponse)
async def list_all_orders(
    status: Optional[OrderStatus] = None,
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List orders (admin). Search matches order code, customer name or phone."""
    query = select(Order)
    if status:
        query = query.where(Order.order_status == status)
    if search:
        term = f"%{search.strip()}%"
        query = query.where(
            or_(
                Order.order_number.ilike(term),
                # Name and phone live in the address snapshot
                cast(Order.shipping_address, String).ilike(term),
            )
        )

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.order_by(Order.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    orders = result.scalars().all()

    stats_result = await db.execute(
        select(
            Order.order_status,
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0),
        ).group_by(Order.order_status)
    )
    stats = [
        OrderStatusStat(
            status=row[0],
            count=row[1],
            total_value=quantize_money(Decimal(str(row[2]))),
        )
        for row in stats_result.all()
    ]

    return AdminOrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total or 0,
        page=page,
        limit=limit,
        stats=stats,
    )


@router.patch("/update-status/{order_id}", response_model=StatusUpdateResponse)
async def update_order_status(
    order_id: str,
    update_in: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    tracking = None
    if update_in.tracking_info is not None:
        tracking = TrackingInfo(**update_in.tracking_info.model_dump())

    order, restored = await order_lifecycle.transition_status(
        db,
        order_id,
        actor=current_user.user_id,
        new_status=update_in.status,
        notes=update_in.notes,
        tracking=tracking,
    )
    return StatusUpdateResponse(
        order=OrderResponse.model_validate(order),
        stock_restorations=[u.to_dict() for u in restored],
    )
