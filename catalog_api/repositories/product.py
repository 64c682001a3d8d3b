"""
Product Repository - Data access for products.
Eager loading of owned rows prevents N+1 queries when rendering products.
"""

from dataclasses import dataclass, field
from typing import ClassVar, Sequence

from sqlalchemy import Select, exists, func, or_, select
from sqlalchemy.orm import selectinload

from catalog_api.models import (
    InventorySnapshot,
    Product,
    ProductBarcode,
    ProductVariant,
)
from catalog_shared.config.constants import ProductTypeFilter
from catalog_shared.config.settings import settings
from catalog_shared.utils.validators import escape_like_pattern

from .base import BaseRepository, RepositoryFilters


@dataclass
class ProductFilters(RepositoryFilters):
    """Filters specific to products (used by bulk barcode generation)."""

    max_limit: ClassVar[int] = settings.bulk_barcode_max_limit

    limit: int = settings.bulk_barcode_default_limit
    product_ids: list[str] = field(default_factory=list)
    category: str | None = None
    product_type: ProductTypeFilter = ProductTypeFilter.ALL
    store_id: str | None = None


class ProductRepository(BaseRepository[Product]):
    """
    Repository for Product entities.

    Guarantees eager loading of barcodes, packs, images, variants (with
    attribute values) and bundle components.
    """

    @property
    def model(self) -> type[Product]:
        return Product

    def _base_query(self, organization_id: str) -> Select:
        return (
            select(Product)
            .where(Product.organization_id == organization_id)
            .options(
                selectinload(Product.barcodes),
                selectinload(Product.packs),
                selectinload(Product.images),
                selectinload(Product.variants).selectinload(ProductVariant.attribute_values),
                selectinload(Product.bundle_components),
            )
            .order_by(Product.name, Product.id)
        )

    def _apply_filters(self, query: Select, filters: RepositoryFilters) -> Select:
        """Apply product-specific filters."""
        if not isinstance(filters, ProductFilters):
            filters = ProductFilters(**filters.__dict__)

        if filters.product_ids:
            query = query.where(Product.id.in_(filters.product_ids))

        if filters.search:
            search_term = f"%{escape_like_pattern(filters.search)}%"
            query = query.where(
                or_(
                    Product.name.ilike(search_term, escape="\\"),
                    Product.sku.ilike(search_term, escape="\\"),
                )
            )

        if filters.category:
            query = query.where(Product.category == filters.category)

        if filters.product_type == ProductTypeFilter.BUNDLE:
            query = query.where(Product.is_bundle.is_(True))
        elif filters.product_type == ProductTypeFilter.PRODUCT:
            query = query.where(Product.is_bundle.is_(False))

        if filters.store_id:
            query = query.where(
                exists().where(
                    InventorySnapshot.product_id == Product.id,
                    InventorySnapshot.store_id == filters.store_id,
                )
            )

        return query

    def find_by_sku(
        self,
        organization_id: str,
        sku: str,
        include_deleted: bool = True,
    ) -> Product | None:
        """Find by SKU. Archived products are included by default since SKUs stay reserved."""
        query = self._base_query(organization_id).where(Product.sku == sku)
        query = self._exclude_deleted(query, include_deleted)
        return self._db.scalar(query)

    def find_by_skus(self, organization_id: str, skus: list[str]) -> dict[str, Product]:
        """Map SKU -> product for the given SKUs (archived included)."""
        if not skus:
            return {}
        query = select(Product).where(
            Product.organization_id == organization_id,
            Product.sku.in_(skus),
        )
        return {product.sku: product for product in self._db.scalars(query)}

    def sku_exists(self, organization_id: str, sku: str) -> bool:
        query = select(func.count()).select_from(Product).where(
            Product.organization_id == organization_id,
            Product.sku == sku,
        )
        return (self._db.scalar(query) or 0) > 0

    def barcode_counts(self, product_ids: list[str]) -> dict[str, int]:
        """Number of product-level barcodes per product id."""
        if not product_ids:
            return {}
        query = (
            select(ProductBarcode.product_id, func.count())
            .where(ProductBarcode.product_id.in_(product_ids))
            .group_by(ProductBarcode.product_id)
        )
        return {product_id: count for product_id, count in self._db.execute(query)}

    def find_for_barcode_generation(
        self,
        organization_id: str,
        filters: ProductFilters,
    ) -> Sequence[Product]:
        """Products matched by a bulk barcode filter, ordered by name, capped at filters.limit."""
        query = (
            select(Product)
            .where(Product.organization_id == organization_id)
            .order_by(Product.name, Product.id)
        )
        query = self._exclude_deleted(query, filters.include_deleted)
        query = self._apply_filters(query, filters)
        return self._db.scalars(query.limit(filters.limit)).all()
