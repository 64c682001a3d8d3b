"""
Tenant Models: Organization, Store, Unit, Supplier.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from catalog_shared.config.constants import PlanTier

from .base import Base, TimestampMixin, new_id


class Organization(TimestampMixin, Base):
    """
    Tenant. Every catalog row is scoped to one organization.
    """

    __tablename__ = "organization"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    plan: Mapped[str] = mapped_column(String(32), nullable=False, default=PlanTier.STARTER.value)
    # Per-tenant override of the plan's product cap
    max_products: Mapped[Optional[int]] = mapped_column(Integer)


class Store(TimestampMixin, Base):
    """Physical store. Every non-deleted product has a base snapshot per store."""

    __tablename__ = "store"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    allow_negative_stock: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Unit(TimestampMixin, Base):
    """Unit of measure (base unit of products)."""

    __tablename__ = "unit"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(64), nullable=False)
    label_ru: Mapped[str] = mapped_column(Text, nullable=False)
    label_kg: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_unit_org_code"),
    )


class Supplier(TimestampMixin, Base):
    """Supplier a product is purchased from."""

    __tablename__ = "supplier"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
