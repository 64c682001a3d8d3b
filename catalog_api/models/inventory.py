"""
Inventory Models: snapshots, stock movements, purchase-order lines, costs
and reorder policies.

The catalog services only write snapshots (zero-valued base rows), the base
ProductCost and ReorderPolicy rows. Movements and purchase-order lines are
history read by the integrity guards.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from catalog_shared.config.constants import VariantKey

from .base import Base, TimestampMixin, new_id


class InventorySnapshot(TimestampMixin, Base):
    """Per store, per product (and variant) on-hand/on-order record."""

    __tablename__ = "inventory_snapshot"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("store.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("product_variant.id"), index=True
    )
    variant_key: Mapped[str] = mapped_column(
        String(64), nullable=False, default=VariantKey.BASE
    )
    on_hand: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    on_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    allow_negative_stock: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "store_id", "product_id", "variant_key", name="uq_inventory_snapshot_key"
        ),
    )


class StockMovement(Base):
    """Stock ledger entry. Never written by the catalog services."""

    __tablename__ = "stock_movement"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("store.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("product_variant.id"), index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    qty_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text)


class PurchaseOrderLine(Base):
    """Purchase-order line referencing a product (and optional variant)."""

    __tablename__ = "purchase_order_line"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    purchase_order_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("product_variant.id"), index=True
    )
    qty_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    qty_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ProductCost(TimestampMixin, Base):
    """Average cost per product (variant_key BASE for the product level)."""

    __tablename__ = "product_cost"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    variant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("product_variant.id")
    )
    variant_key: Mapped[str] = mapped_column(
        String(64), nullable=False, default=VariantKey.BASE
    )
    avg_cost_kgs: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    cost_basis_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "product_id", "variant_key", name="uq_product_cost_key"
        ),
    )


class ReorderPolicy(TimestampMixin, Base):
    """Minimum stock and replenishment planning parameters per store/product."""

    __tablename__ = "reorder_policy"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    store_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("store.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    min_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lead_time_days: Mapped[int] = mapped_column(Integer, nullable=False)
    review_period_days: Mapped[int] = mapped_column(Integer, nullable=False)
    safety_stock_days: Mapped[int] = mapped_column(Integer, nullable=False)
    min_order_qty: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("store_id", "product_id", name="uq_reorder_policy_store_product"),
        Index("ix_reorder_policy_product", "product_id"),
    )
