"""
Referential Integrity Guard.

Checks that run inside the caller's transaction before the corresponding
write: foreign references (unit, supplier), barcode namespaces, unit changes
and variant removals against history, and bundle composition. Each failure
is a typed error; nothing here commits.
"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from catalog_api.models import (
    InventorySnapshot,
    Product,
    ProductBarcode,
    ProductBundleComponent,
    ProductPack,
    ProductVariant,
    PurchaseOrderLine,
    StockMovement,
    Supplier,
    Unit,
)
from catalog_shared.config.constants import BundleSyncMode
from catalog_shared.utils.exceptions import (
    ConflictError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)

from .identifiers import NormalizedBundleComponent, NormalizedPack


class IntegrityGuard:
    """Integrity checks scoped to one organization and one open transaction."""

    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id

    # =========================================================================
    # Foreign references
    # =========================================================================

    def ensure_supplier(self, supplier_id: Optional[str]) -> None:
        if not supplier_id:
            return
        supplier = self.db.get(Supplier, supplier_id)
        if supplier is None or supplier.organization_id != self.organization_id:
            raise NotFoundError("Supplier", supplier_id, code="supplierNotFound")

    def ensure_unit(self, unit_id: str) -> Unit:
        unit = self.db.get(Unit, unit_id) if unit_id else None
        if unit is None or unit.organization_id != self.organization_id:
            raise NotFoundError("Unit", unit_id, code="unitNotFound")
        return unit

    # =========================================================================
    # Barcode namespaces
    # =========================================================================

    def _taken_product_barcodes(
        self, values: Sequence[str], exclude_product_id: Optional[str]
    ) -> list[str]:
        query = select(ProductBarcode.value).where(
            ProductBarcode.organization_id == self.organization_id,
            ProductBarcode.value.in_(values),
        )
        if exclude_product_id:
            query = query.where(ProductBarcode.product_id != exclude_product_id)
        return list(self.db.scalars(query).all())

    def _taken_pack_barcodes(
        self, values: Sequence[str], exclude_product_id: Optional[str]
    ) -> list[str]:
        query = select(ProductPack.pack_barcode).where(
            ProductPack.organization_id == self.organization_id,
            ProductPack.pack_barcode.in_(values),
        )
        if exclude_product_id:
            query = query.where(ProductPack.product_id != exclude_product_id)
        return list(self.db.scalars(query).all())

    def ensure_barcodes_available(
        self,
        barcodes: Sequence[str],
        exclude_product_id: Optional[str] = None,
    ) -> None:
        """
        Product barcodes must not be used by another product, as a product
        barcode or as a pack barcode.

        Raises:
            ConflictError(barcodeExists)
        """
        if not barcodes:
            return
        taken = self._taken_product_barcodes(barcodes, exclude_product_id)
        taken += self._taken_pack_barcodes(barcodes, exclude_product_id)
        if taken:
            raise ConflictError(
                "barcodeExists",
                "Barcode is already assigned in this organization",
                values=sorted(set(taken)),
            )

    def ensure_pack_barcodes_available(
        self,
        pack_barcodes: Sequence[str],
        exclude_product_id: Optional[str] = None,
    ) -> None:
        """
        Raises:
            ConflictError(packBarcodeExists): used by another product in either namespace
        """
        if not pack_barcodes:
            return
        taken = self._taken_pack_barcodes(pack_barcodes, exclude_product_id)
        taken += self._taken_product_barcodes(pack_barcodes, exclude_product_id)
        if taken:
            raise ConflictError(
                "packBarcodeExists",
                "Pack barcode is already assigned in this organization",
                values=sorted(set(taken)),
            )

    def ensure_distinct_namespaces(
        self,
        barcodes: Sequence[str],
        pack_barcodes: Sequence[str],
    ) -> None:
        """
        Within one product, a value cannot be both a product and a pack barcode.

        Raises:
            ConflictError(duplicateBarcode)
        """
        overlap = set(barcodes) & set(pack_barcodes)
        if overlap:
            raise ConflictError(
                "duplicateBarcode",
                "The same value is used as product and pack barcode",
                values=sorted(overlap),
            )

    def current_pack_barcodes(self, product_id: str) -> list[str]:
        return list(
            self.db.scalars(
                select(ProductPack.pack_barcode).where(
                    ProductPack.product_id == product_id,
                    ProductPack.pack_barcode.is_not(None),
                )
            ).all()
        )

    # =========================================================================
    # History guards
    # =========================================================================

    def ensure_unit_change_allowed(self, product: Product, next_unit_id: str) -> None:
        """
        Raises:
            ConflictError(unitChangeNotAllowed): unit changes on a product with stock movements
        """
        if product.base_unit_id == next_unit_id:
            return
        movements = self.db.scalar(
            select(func.count())
            .select_from(StockMovement)
            .where(StockMovement.product_id == product.id)
        ) or 0
        if movements > 0:
            raise ConflictError(
                "unitChangeNotAllowed",
                "Base unit cannot change once stock has moved",
                product_id=product.id,
                movements=movements,
            )

    def ensure_variants_removable(self, variant_ids: Sequence[str]) -> None:
        """
        Variants referenced by stock movements, non-zero snapshots or
        purchase-order lines cannot be deactivated.

        Raises:
            ConflictError(variantInUse)
        """
        if not variant_ids:
            return
        movements = self.db.scalar(
            select(func.count())
            .select_from(StockMovement)
            .where(StockMovement.variant_id.in_(variant_ids))
        ) or 0
        snapshots = self.db.scalar(
            select(func.count())
            .select_from(InventorySnapshot)
            .where(
                InventorySnapshot.variant_id.in_(variant_ids),
                or_(InventorySnapshot.on_hand != 0, InventorySnapshot.on_order != 0),
            )
        ) or 0
        lines = self.db.scalar(
            select(func.count())
            .select_from(PurchaseOrderLine)
            .where(PurchaseOrderLine.variant_id.in_(variant_ids))
        ) or 0
        if movements or snapshots or lines:
            raise ConflictError(
                "variantInUse",
                "Variant is referenced by inventory history",
                variant_ids=list(variant_ids),
                movements=movements,
                snapshots=snapshots,
                purchase_order_lines=lines,
            )

    # =========================================================================
    # Bundle composition
    # =========================================================================

    def validate_bundle_components(
        self,
        bundle_product_id: str,
        components: Sequence[NormalizedBundleComponent],
    ) -> None:
        """
        Raises:
            ValidationError(bundleComponentInvalid): component is the bundle itself
            ProductNotFoundError: component missing, archived or in another tenant
            NotFoundError(variantNotFound): variant inactive or of another product
        """
        for component in components:
            if component.component_product_id == bundle_product_id:
                raise ValidationError(
                    "bundleComponentInvalid",
                    "A bundle cannot contain itself",
                    product_id=bundle_product_id,
                )

        product_ids = list({component.component_product_id for component in components})
        found = set(
            self.db.scalars(
                select(Product.id).where(
                    Product.organization_id == self.organization_id,
                    Product.id.in_(product_ids),
                    Product.is_deleted.is_(False),
                )
            ).all()
        )
        for product_id in product_ids:
            if product_id not in found:
                raise ProductNotFoundError(product_id, organization_id=self.organization_id)

        variant_ids = [
            component.component_variant_id
            for component in components
            if component.component_variant_id
        ]
        if not variant_ids:
            return
        variants = {
            variant.id: variant
            for variant in self.db.scalars(
                select(ProductVariant).where(
                    ProductVariant.id.in_(variant_ids),
                    ProductVariant.is_active.is_(True),
                )
            ).all()
        }
        for component in components:
            if not component.component_variant_id:
                continue
            variant = variants.get(component.component_variant_id)
            if variant is None or variant.product_id != component.component_product_id:
                raise NotFoundError(
                    "Variant", component.component_variant_id, code="variantNotFound"
                )

    def sync_bundle_components(
        self,
        bundle_product_id: str,
        components: Sequence[NormalizedBundleComponent],
        mode: BundleSyncMode,
    ) -> None:
        """
        Validate, then write the component set.

        ``replace`` deletes existing edges first; ``create-only`` inserts into a
        bundle that has no edges yet. An empty set writes nothing (and in
        replace mode leaves the bundle without components, so callers reject
        empty bundles before calling).
        """
        if not components:
            return
        self.validate_bundle_components(bundle_product_id, components)

        if mode == BundleSyncMode.REPLACE:
            self.clear_bundle_components(bundle_product_id)

        for component in components:
            self.db.add(
                ProductBundleComponent(
                    organization_id=self.organization_id,
                    bundle_product_id=bundle_product_id,
                    component_product_id=component.component_product_id,
                    component_variant_id=component.component_variant_id,
                    qty=component.qty,
                )
            )
        self.db.flush()

    def clear_bundle_components(self, bundle_product_id: str) -> None:
        self.db.execute(
            delete(ProductBundleComponent).where(
                ProductBundleComponent.bundle_product_id == bundle_product_id
            )
        )

    def count_bundle_components(self, bundle_product_id: str) -> int:
        return self.db.scalar(
            select(func.count())
            .select_from(ProductBundleComponent)
            .where(ProductBundleComponent.bundle_product_id == bundle_product_id)
        ) or 0

    # =========================================================================
    # Packs
    # =========================================================================

    def ensure_packs_available(
        self,
        packs: Sequence[NormalizedPack],
        exclude_product_id: Optional[str] = None,
    ) -> list[str]:
        """Check pack barcodes against the organization; returns them."""
        pack_barcodes = [pack.pack_barcode for pack in packs if pack.pack_barcode]
        self.ensure_pack_barcodes_available(pack_barcodes, exclude_product_id)
        return pack_barcodes
