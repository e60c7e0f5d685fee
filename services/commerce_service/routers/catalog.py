"""Public catalog router: product listing, detail, availability and reviews."""

from fastapi import APIRouter, Depends, Path
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.commerce_service.errors import ProductNotFound
from services.commerce_service.models import Product, ProductReview
from services.commerce_service.schemas import (
    AvailabilityResponse,
    ProductResponse,
    ReviewCreate,
    ReviewResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/products", tags=["catalog"])


async def get_product_or_404(db: AsyncSession, product_code: str) -> Product:
    result = await db.execute(
        select(Product).where(Product.product_code == product_code)
    )
    product = result.scalar_one_or_none()
    if product is None:
        raise ProductNotFound(product_code)
    return product


@router.get("", response_model=list[ProductResponse])
async def list_products(db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(Product).order_by(Product.created_at.desc()))
    return result.scalars().all()


@router.get("/{product_code}", response_model=ProductResponse)
async def get_product(product_code: str, db: AsyncSession = Depends(get_async_db)):
    return await get_product_or_404(db, product_code)


@router.get(
    "/{product_code}/availability/{quantity}", response_model=AvailabilityResponse
)
async def check_availability(
    product_code: str,
    quantity: int = Path(..., ge=1),
    db: AsyncSession = Depends(get_async_db),
):
    """Advisory check only; stock is claimed at checkout."""
    product = await get_product_or_404(db, product_code)
    return AvailabilityResponse(
        product_id=product.product_code,
        available=product.stock_quantity >= quantity,
        stock_quantity=product.stock_quantity,
        requested=quantity,
    )


@router.post(
    "/{product_code}/reviews", response_model=ReviewResponse, status_code=201
)
async def add_review(
    product_code: str,
    review_in: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    product = await get_product_or_404(db, product_code)
    review = ProductReview(
        product_id=product.id,
        rating=review_in.rating,
        comment=review_in.comment,
        author_label=review_in.author_label or current_user.email or "Customer",
        principal_id=current_user.user_id,
    )
    db.add(review)
    await db.commit()
    await db.refresh(review)
    return review
