"""Admin catalog router: product creation and stock management."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.commerce_service.models import Product, ProductImage
from services.commerce_service.schemas import (
    ProductCreate,
    ProductResponse,
    StockAdjustment,
    StockUpdateResponse,
)
from services.commerce_service.services.stock_reservation import adjust_stock
from services.commerce_service.services.transactions import unit_of_work
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/products", tags=["admin-catalog"])
logger = get_logger(__name__)


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a product. Images are references already stored in the object store."""
    product = Product(
        name=product_in.name,
        category=product_in.category,
        details=product_in.details,
        price=product_in.price,
        stock_quantity=product_in.stock_quantity,
        low_stock_threshold=product_in.low_stock_threshold,
        colour_options=product_in.colour_options,
        images=[
            ProductImage(url=image.url, storage_handle=image.storage_handle, sort_order=i)
            for i, image in enumerate(product_in.images)
        ],
        reviews=[],
    )
    async with unit_of_work(db, "create_product"):
        db.add(product)
        await db.flush()

    logger.info("Product %s created by %s", product.product_code, current_user.user_id)
    return product


@router.get("/low-stock", response_model=list[ProductResponse])
async def list_low_stock(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = (
        select(Product)
        .where(Product.stock_quantity <= Product.low_stock_threshold)
        .order_by(Product.stock_quantity.asc())
    )
    result = await db.execute(query)
    return result.scalars().all()


@router.patch("/{product_code}/stock", response_model=StockUpdateResponse)
async def update_stock(
    product_code: str,
    adjustment: StockAdjustment,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    async with unit_of_work(db, "adjust_stock"):
        update = await adjust_stock(
            db,
            product_code,
            adjustment.operation,
            adjustment.quantity,
            actor=current_user.user_id,
            note=adjustment.note,
        )
    return update.to_dict()
