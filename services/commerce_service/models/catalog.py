"""Catalog models: products, images, reviews and the stock audit trail."""

import random
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.commerce_service.models.enums import InventoryMovementType, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates


def generate_product_code() -> str:
    """Generate a stable external product id like PROD-482913."""
    return f"PROD-{random.randint(100000, 999999)}"


# ============================================================================
# PRODUCT MODELS
# ============================================================================


class Product(Base):
    """Sellable products with an authoritative available-to-sell counter."""

    __tablename__ = "commerce_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_code: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, default=generate_product_code
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    stock_quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    # Derived from stock_quantity by the validator below
    in_stock: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    low_stock_threshold: Mapped[int] = mapped_column(
        Integer, default=5, server_default="5", nullable=False
    )
    colour_options: Mapped[list] = mapped_column(JSONType, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("price >= 0", name="product_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="product_stock_non_negative"),
    )
    __mapper_args__ = {"version_id_col": version}

    # Relationships
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.sort_order",
        lazy="selectin",
    )
    reviews = relationship(
        "ProductReview",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @validates("stock_quantity")
    def _sync_in_stock(self, key, value):
        if value is None:
            value = 0
        if value < 0:
            raise ValueError("stock_quantity cannot be negative")
        self.in_stock = value > 0
        return value

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def __repr__(self):
        return f"<Product {self.product_code} stock={self.stock_quantity}>"


class ProductImage(Base):
    """Product images held in the external object store."""

    __tablename__ = "commerce_product_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_products.id", ondelete="CASCADE"), nullable=False
    )

    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    # Handle returned by the object store, needed to delete the blob later
    storage_handle: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product = relationship("Product", back_populates="images")


class ProductReview(Base):
    __tablename__ = "commerce_product_reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_products.id", ondelete="CASCADE"), nullable=False
    )

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author_label: Mapped[str] = mapped_column(String(255), nullable=False)
    principal_id: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="review_rating_range"),
    )

    product = relationship("Product", back_populates="reviews")


# ============================================================================
# INVENTORY AUDIT
# ============================================================================


class InventoryMovement(Base):
    """Append-only audit of every stock change."""

    __tablename__ = "commerce_inventory_movements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("commerce_products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    movement_type: Mapped[InventoryMovementType] = mapped_column(
        SAEnum(
            InventoryMovementType,
            values_callable=enum_values,
            name="commerce_inventory_movement_type_enum",
        ),
        nullable=False,
    )
    # Positive = stock added, negative = stock removed
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)

    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    actor: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    product = relationship("Product")

    def __repr__(self):
        return f"<InventoryMovement {self.movement_type} {self.quantity:+d}>"
