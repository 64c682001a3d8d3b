"""
Catalog Models: Product and the rows it owns (barcodes, packs, images,
variants, variant attribute values, bundle components), plus the
organization-level category registry.

Tenant-wide uniqueness (SKU, barcode values, pack barcodes, pack names per
product) is enforced here as hard constraints. Service-level checks only
exist to produce a friendlier typed error first.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, new_id

if TYPE_CHECKING:
    from .tenant import Unit, Supplier


class Product(TimestampMixin, Base):
    """
    Tenant-scoped catalog item. Never hard-deleted; archived via is_deleted.
    """

    __tablename__ = "product"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    sku: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(Text, index=True)
    # Unit code mirrored from base_unit for display and import matching
    unit: Mapped[str] = mapped_column(String(64), nullable=False)
    base_unit_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("unit.id"), nullable=False, index=True
    )
    base_price_kgs: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    description: Mapped[Optional[str]] = mapped_column(Text)
    photo_url: Mapped[Optional[str]] = mapped_column(Text)
    supplier_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("supplier.id"), index=True
    )
    is_bundle: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    # Relationships (read side; writes go through the services by foreign key)
    base_unit: Mapped["Unit"] = relationship()
    supplier: Mapped[Optional["Supplier"]] = relationship()
    barcodes: Mapped[list["ProductBarcode"]] = relationship(
        back_populates="product", order_by="ProductBarcode.created_at"
    )
    packs: Mapped[list["ProductPack"]] = relationship(
        back_populates="product", order_by="ProductPack.pack_name"
    )
    images: Mapped[list["ProductImage"]] = relationship(
        back_populates="product", order_by="ProductImage.position"
    )
    variants: Mapped[list["ProductVariant"]] = relationship(
        back_populates="product", order_by="ProductVariant.created_at"
    )
    bundle_components: Mapped[list["ProductBundleComponent"]] = relationship(
        back_populates="bundle_product",
        foreign_keys="ProductBundleComponent.bundle_product_id",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "sku", name="uq_product_org_sku"),
        Index("ix_product_org_deleted", "organization_id", "is_deleted"),
    )


class ProductBarcode(TimestampMixin, Base):
    """Scannable code value, unique within the organization."""

    __tablename__ = "product_barcode"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    value: Mapped[str] = mapped_column(String(128), nullable=False)

    product: Mapped["Product"] = relationship(back_populates="barcodes")

    __table_args__ = (
        UniqueConstraint("organization_id", "value", name="uq_product_barcode_org_value"),
    )


class ProductPack(TimestampMixin, Base):
    """Purchasing/receiving unit expressed as a multiple of the base unit."""

    __tablename__ = "product_pack"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    pack_name: Mapped[str] = mapped_column(Text, nullable=False)
    pack_barcode: Mapped[Optional[str]] = mapped_column(String(128))
    multiplier_to_base: Mapped[int] = mapped_column(Integer, nullable=False)
    allow_in_purchasing: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    allow_in_receiving: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    product: Mapped["Product"] = relationship(back_populates="packs")

    __table_args__ = (
        UniqueConstraint("product_id", "pack_name", name="uq_product_pack_name"),
        UniqueConstraint("organization_id", "pack_barcode", name="uq_product_pack_org_barcode"),
        CheckConstraint("multiplier_to_base > 0", name="ck_product_pack_multiplier_positive"),
    )


class ProductImage(TimestampMixin, Base):
    """Ordered product image. Positions are contiguous and 0-based."""

    __tablename__ = "product_image"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped["Product"] = relationship(back_populates="images")


class ProductVariant(TimestampMixin, Base):
    """Sub-SKU of a product. Deactivated (is_active=False), never deleted."""

    __tablename__ = "product_variant"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(Text)
    sku: Mapped[Optional[str]] = mapped_column(String(128))
    attributes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    product: Mapped["Product"] = relationship(back_populates="variants")
    attribute_values: Mapped[list["VariantAttributeValue"]] = relationship(
        back_populates="variant"
    )


class VariantAttributeValue(Base):
    """Queryable mirror of one key of ProductVariant.attributes."""

    __tablename__ = "variant_attribute_value"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    variant_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product_variant.id"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)

    variant: Mapped["ProductVariant"] = relationship(back_populates="attribute_values")

    __table_args__ = (
        UniqueConstraint("variant_id", "key", name="uq_variant_attribute_value_key"),
        Index("ix_variant_attribute_value_org_key", "organization_id", "key"),
    )


class ProductBundleComponent(TimestampMixin, Base):
    """Edge from a bundle product to a component product (and optional variant)."""

    __tablename__ = "product_bundle_component"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    bundle_product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    component_product_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("product.id"), nullable=False, index=True
    )
    component_variant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("product_variant.id")
    )
    qty: Mapped[int] = mapped_column(Integer, nullable=False)

    bundle_product: Mapped["Product"] = relationship(
        back_populates="bundle_components", foreign_keys=[bundle_product_id]
    )

    __table_args__ = (
        UniqueConstraint(
            "bundle_product_id",
            "component_product_id",
            "component_variant_id",
            name="uq_bundle_component_key",
        ),
        CheckConstraint("qty > 0", name="ck_bundle_component_qty_positive"),
        CheckConstraint(
            "bundle_product_id <> component_product_id",
            name="ck_bundle_component_not_self",
        ),
    )


class ProductCategory(TimestampMixin, Base):
    """Organization-level registry of normalized category names."""

    __tablename__ = "product_category"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_product_category_org_name"),
    )
