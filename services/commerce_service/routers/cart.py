"""Cart router: one cart per principal, one line per product."""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.currency import quantize_money
from libs.db.session import get_async_db
from services.commerce_service.errors import NotFound
from services.commerce_service.models import Cart, CartItem, Product
from services.commerce_service.routers.catalog import get_product_or_404
from services.commerce_service.schemas import (
    CartItemAdd,
    CartItemUpdate,
    CartLineResponse,
    CartResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/cart", tags=["cart"])


# ============================================================================
# CART HELPERS
# ============================================================================


async def get_cart(db: AsyncSession, principal_id: str) -> Optional[Cart]:
    result = await db.execute(select(Cart).where(Cart.principal_id == principal_id))
    return result.scalar_one_or_none()


async def get_or_create_cart(db: AsyncSession, principal_id: str) -> Cart:
    cart = await get_cart(db, principal_id)
    if cart is None:
        cart = Cart(principal_id=principal_id, items=[])
        db.add(cart)
        await db.flush()
    return cart


async def build_cart_response(db: AsyncSession, cart: Optional[Cart]) -> CartResponse:
    """Join cart lines with live product data. Prices here are indicative only."""
    items = list(cart.items) if cart else []
    products: dict[str, Product] = {}
    if items:
        result = await db.execute(
            select(Product).where(
                Product.product_code.in_([item.product_code for item in items])
            )
        )
        products = {p.product_code: p for p in result.scalars().all()}

    lines = []
    subtotal = Decimal("0")
    for item in items:
        product = products.get(item.product_code)
        line = CartLineResponse(
            product_id=item.product_code, quantity=item.quantity, colour=item.colour
        )
        if product is not None:
            line.name = product.name
            line.unit_price = product.price
            line.line_subtotal = quantize_money(product.price * item.quantity)
            line.in_stock = product.in_stock
            subtotal += line.line_subtotal
        lines.append(line)

    return CartResponse(
        items=lines,
        item_count=sum(item.quantity for item in items),
        subtotal=quantize_money(subtotal),
    )


# ============================================================================
# CART ENDPOINTS
# ============================================================================


@router.get("", response_model=CartResponse)
async def read_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await get_cart(db, current_user.user_id)
    return await build_cart_response(db, cart)


@router.post("/add", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemAdd,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product; adding one already in the cart increments its quantity."""
    await get_product_or_404(db, item_in.product_id)
    cart = await get_or_create_cart(db, current_user.user_id)

    existing = next(
        (item for item in cart.items if item.product_code == item_in.product_id), None
    )
    if existing:
        existing.quantity += item_in.quantity
        if item_in.colour:
            existing.colour = item_in.colour
    else:
        cart.items.append(
            CartItem(
                product_code=item_in.product_id,
                quantity=item_in.quantity,
                colour=item_in.colour,
            )
        )

    await db.commit()
    return await build_cart_response(db, cart)


@router.patch("/update", response_model=CartResponse)
async def update_cart_item(
    item_in: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await get_cart(db, current_user.user_id)
    item = next(
        (i for i in (cart.items if cart else []) if i.product_code == item_in.product_id),
        None,
    )
    if item is None:
        raise NotFound(f"Product {item_in.product_id} is not in the cart")

    item.quantity = item_in.quantity
    await db.commit()
    return await build_cart_response(db, cart)


@router.delete("/remove/{product_code}", response_model=CartResponse)
async def remove_from_cart(
    product_code: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await get_cart(db, current_user.user_id)
    item = next(
        (i for i in (cart.items if cart else []) if i.product_code == product_code),
        None,
    )
    if item is None:
        raise NotFound(f"Product {product_code} is not in the cart")

    cart.items.remove(item)
    await db.commit()
    return await build_cart_response(db, cart)


@router.delete("/clear", response_model=CartResponse)
async def clear_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await get_cart(db, current_user.user_id)
    if cart is not None:
        cart.items.clear()
        await db.commit()
    return await build_cart_response(db, cart)
