"""
Product Service - Catalog Mutation Coordinator.

Handles every product mutation as one all-or-nothing transaction:
- create / update / duplicate with packs, barcodes, images, variants and
  bundle components
- archive / restore
- bulk category assignment

Each operation normalizes its input, validates attributes and integrity
rules, and only then writes. Any failure rolls back the whole transaction;
tenant-wide unique constraints catch what a concurrent writer slipped in
between check and write.

Usage:
    from catalog_api.services.domain import ProductService

    service = ProductService(db)
    product = service.create_product(data, actor)
    result = service.duplicate_product(product.id, actor)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Any, Callable, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, sessionmaker

from catalog_api.models import (
    InventorySnapshot,
    Product,
    ProductBarcode,
    ProductCost,
    ProductImage,
    ProductPack,
    ProductVariant,
    Store,
    VariantAttributeValue,
    new_id,
)
from catalog_api.repositories import ProductRepository
from catalog_api.services.audit import serialize_model, write_audit_log
from catalog_api.services.categories import ensure_product_category
from catalog_api.services.image_storage import (
    ImageCache,
    ProductImageResolver,
    get_image_resolver,
)
from catalog_api.services.milestones import record_first_event
from catalog_api.services.plan_limits import assert_within_limits
from catalog_shared.config.constants import (
    AuditAction,
    AuditEntity,
    BundleSyncMode,
    MilestoneType,
    VariantKey,
)
from catalog_shared.config.logging import get_logger
from catalog_shared.config.settings import settings
from catalog_shared.infrastructure.db import atomic
from catalog_shared.schemas import (
    ActorContext,
    BulkCategoryResult,
    BundleComponentOutput,
    DuplicateProductResult,
    ProductCreate,
    ProductImageInput,
    ProductImageOutput,
    ProductOutput,
    ProductPackOutput,
    ProductUpdate,
    ProductVariantOutput,
)
from catalog_shared.utils.exceptions import (
    DuplicateEntityError,
    InternalError,
    NotFoundError,
    ProductNotFoundError,
    ValidationError,
)

from .attributes import AttributeSchema, ValidatedAttributes
from .identifiers import (
    NormalizedBundleComponent,
    NormalizedImage,
    NormalizedPack,
    normalize_barcodes,
    normalize_bundle_components,
    normalize_category_name,
    normalize_images,
    normalize_name,
    normalize_packs,
    normalize_sku,
    resolve_base_cost,
    resolve_optional_price,
)
from .integrity import IntegrityGuard

logger = get_logger(__name__)

MilestoneRecorder = Callable[[str, Optional[str], str, Optional[dict[str, Any]]], Any]


# =============================================================================
# Shared write helpers (also used by the import engine)
# =============================================================================


def ensure_base_snapshots(
    db: Session,
    organization_id: str,
    product_id: str,
    stores: Optional[Sequence[Store]] = None,
) -> int:
    """
    Create the zero BASE snapshot for every store that lacks one.
    Idempotent. Returns the number of snapshots created.
    """
    if stores is None:
        stores = db.scalars(select(Store).where(Store.organization_id == organization_id)).all()
    if not stores:
        return 0

    existing = set(
        db.scalars(
            select(InventorySnapshot.store_id).where(
                InventorySnapshot.product_id == product_id,
                InventorySnapshot.variant_key == VariantKey.BASE,
            )
        ).all()
    )
    created = 0
    for store in stores:
        if store.id in existing:
            continue
        db.add(
            InventorySnapshot(
                store_id=store.id,
                product_id=product_id,
                variant_key=VariantKey.BASE,
                on_hand=0,
                on_order=0,
                allow_negative_stock=store.allow_negative_stock,
            )
        )
        created += 1
    if created:
        db.flush()
    return created


def upsert_base_product_cost(
    db: Session,
    organization_id: str,
    product_id: str,
    avg_cost_kgs: Decimal,
) -> ProductCost:
    """Set the BASE average cost. cost_basis_qty never drops below 1."""
    cost = db.scalar(
        select(ProductCost).where(
            ProductCost.organization_id == organization_id,
            ProductCost.product_id == product_id,
            ProductCost.variant_key == VariantKey.BASE,
        )
    )
    if cost is not None:
        cost.avg_cost_kgs = avg_cost_kgs
        cost.cost_basis_qty = max(cost.cost_basis_qty, 1)
    else:
        cost = ProductCost(
            organization_id=organization_id,
            product_id=product_id,
            variant_key=VariantKey.BASE,
            avg_cost_kgs=avg_cost_kgs,
            cost_basis_qty=1,
        )
        db.add(cost)
    db.flush()
    return cost


def replace_product_images(
    db: Session,
    organization_id: str,
    product_id: str,
    images: Sequence[NormalizedImage],
) -> None:
    db.execute(delete(ProductImage).where(ProductImage.product_id == product_id))
    for image in images:
        db.add(
            ProductImage(
                organization_id=organization_id,
                product_id=product_id,
                url=image.url,
                position=image.position,
            )
        )
    db.flush()


def resolve_duplicate_sku(
    db: Session,
    organization_id: str,
    source_sku: str,
    requested_sku: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """
    SKU for a copy of ``source_sku``.

    A requested SKU must be free. Otherwise probes "<sku>-COPY",
    "<sku>-COPY-2", "<sku>-COPY-3", ... and returns the first free one.

    Raises:
        DuplicateEntityError(uniqueConstraintViolation): requested SKU is taken
        InternalError(unexpectedError): no free candidate within max_attempts
    """
    repo = ProductRepository(db)
    requested = (requested_sku or "").strip()
    if requested:
        if repo.sku_exists(organization_id, requested):
            raise DuplicateEntityError("Product", requested, organization_id=organization_id)
        return requested

    if max_attempts is None:
        max_attempts = settings.duplicate_sku_max_attempts
    base = f"{source_sku}-COPY"
    for suffix in range(1, max_attempts + 1):
        candidate = base if suffix == 1 else f"{base}-{suffix}"
        if not repo.sku_exists(organization_id, candidate):
            return candidate

    raise InternalError(
        "unexpectedError",
        "Could not find a free SKU for the copy",
        organization_id=organization_id,
        source_sku=source_sku,
    )


def build_product_output(product: Product) -> ProductOutput:
    """Read model of a product with its live owned rows."""
    return ProductOutput(
        id=product.id,
        organization_id=product.organization_id,
        sku=product.sku,
        name=product.name,
        category=product.category,
        unit=product.unit,
        base_unit_id=product.base_unit_id,
        base_price_kgs=product.base_price_kgs,
        description=product.description,
        photo_url=product.photo_url,
        supplier_id=product.supplier_id,
        is_bundle=product.is_bundle,
        is_deleted=product.is_deleted,
        barcodes=[barcode.value for barcode in product.barcodes],
        packs=[ProductPackOutput.model_validate(pack) for pack in product.packs],
        images=[ProductImageOutput.model_validate(image) for image in product.images],
        variants=[
            ProductVariantOutput(
                id=variant.id,
                name=variant.name,
                sku=variant.sku,
                attributes=dict(variant.attributes or {}),
                attribute_values={row.key: row.value for row in variant.attribute_values},
            )
            for variant in product.variants
            if variant.is_active
        ],
        bundle_components=[
            BundleComponentOutput.model_validate(component)
            for component in product.bundle_components
        ],
    )


@dataclass
class ResolvedMedia:
    images: list[NormalizedImage]
    photo_url: Optional[str]


# =============================================================================
# Service
# =============================================================================


class ProductService:
    """
    Service for product mutations.

    Business rules:
    - SKU unique per organization; barcodes unique across product and pack barcodes
    - Pack names unique within a product, multipliers positive integers
    - Bundles own at least one valid component and never themselves
    - Variants satisfy the organization's required attributes
    - Base unit is frozen once stock has moved
    - Variants with inventory history are never deactivated
    - Every live product has a zero BASE snapshot per store
    """

    def __init__(
        self,
        db: Session,
        image_resolver: Optional[ProductImageResolver] = None,
        milestone_recorder: Optional[MilestoneRecorder] = None,
    ):
        self.db = db
        self._products = ProductRepository(db)
        self._images = image_resolver or get_image_resolver()
        if milestone_recorder is None:
            milestone_recorder = partial(
                record_first_event, session_factory=sessionmaker(bind=db.get_bind())
            )
        self._record_milestone = milestone_recorder

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_product(
        self,
        product_id: str,
        organization_id: str,
        include_archived: bool = True,
    ) -> ProductOutput:
        """
        Raises:
            ProductNotFoundError: missing or owned by another tenant
        """
        product = self._products.find_by_id(
            product_id, organization_id, include_deleted=include_archived
        )
        if product is None:
            raise ProductNotFoundError(product_id, organization_id=organization_id)
        return build_product_output(product)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve_media(
        self,
        organization_id: str,
        product_id: str,
        images: Optional[Sequence[ProductImageInput]],
        photo_url: Optional[str],
        photo_supplied: bool,
    ) -> ResolvedMedia:
        """
        Resolve images and the photo through the image resolver, sharing one
        cache. An explicit photo wins; otherwise the first image is the photo.
        A photo without images becomes the only image.
        """
        cache: ImageCache = {}
        resolved_images: list[NormalizedImage] = []
        for image in normalize_images(images):
            resolved = self._images.resolve(image.url, organization_id, product_id, cache)
            if resolved.url is None:
                continue
            resolved_images.append(NormalizedImage(url=resolved.url, position=len(resolved_images)))

        explicit_photo = None
        if photo_supplied:
            explicit_photo = self._images.resolve(photo_url, organization_id, product_id, cache).url

        resolved_photo = explicit_photo
        if resolved_photo is None and resolved_images:
            resolved_photo = resolved_images[0].url
        if not resolved_images and resolved_photo:
            resolved_images.append(NormalizedImage(url=resolved_photo, position=0))

        return ResolvedMedia(images=resolved_images, photo_url=resolved_photo)

    def _load_product(self, product_id: str, organization_id: str) -> Product:
        product = self.db.scalar(
            select(Product).where(
                Product.id == product_id,
                Product.organization_id == organization_id,
            )
        )
        if product is None:
            raise ProductNotFoundError(product_id, organization_id=organization_id)
        return product

    def _write_packs(
        self,
        organization_id: str,
        product_id: str,
        packs: Sequence[NormalizedPack],
        copy_barcodes: bool = True,
    ) -> None:
        for pack in packs:
            self.db.add(
                ProductPack(
                    organization_id=organization_id,
                    product_id=product_id,
                    pack_name=pack.pack_name,
                    pack_barcode=pack.pack_barcode if copy_barcodes else None,
                    multiplier_to_base=pack.multiplier_to_base,
                    allow_in_purchasing=pack.allow_in_purchasing,
                    allow_in_receiving=pack.allow_in_receiving,
                )
            )

    def _write_barcodes(self, organization_id: str, product_id: str, barcodes: Sequence[str]) -> None:
        for value in barcodes:
            self.db.add(
                ProductBarcode(organization_id=organization_id, product_id=product_id, value=value)
            )

    def _write_attribute_values(
        self,
        organization_id: str,
        product_id: str,
        variant_id: str,
        rows: Sequence[tuple[str, Any]],
    ) -> None:
        for key, value in rows:
            self.db.add(
                VariantAttributeValue(
                    organization_id=organization_id,
                    product_id=product_id,
                    variant_id=variant_id,
                    key=key,
                    value=value,
                )
            )

    def _create_variant(
        self,
        organization_id: str,
        product_id: str,
        name: Optional[str],
        sku: Optional[str],
        attributes: dict[str, Any],
        rows: Sequence[tuple[str, Any]],
    ) -> ProductVariant:
        variant = ProductVariant(
            id=new_id(),
            product_id=product_id,
            name=name,
            sku=sku,
            attributes=attributes,
            is_active=True,
        )
        self.db.add(variant)
        self._write_attribute_values(organization_id, product_id, variant.id, rows)
        return variant

    def _audit(
        self,
        actor: ActorContext,
        action: str,
        entity_id: str,
        before: Optional[dict],
        after: Optional[dict],
        entity: str = AuditEntity.PRODUCT,
    ) -> None:
        write_audit_log(
            self.db,
            organization_id=actor.organization_id,
            actor_id=actor.actor_id,
            action=action,
            entity=entity,
            entity_id=entity_id,
            before=before,
            after=after,
            request_id=actor.request_id,
        )

    # =========================================================================
    # Create
    # =========================================================================

    def create_product(self, data: ProductCreate, actor: ActorContext) -> ProductOutput:
        """
        Create a product with all owned rows in one transaction.

        Raises:
            ConflictError: planLimitProducts, duplicateBarcode, barcodeExists,
                packBarcodeExists, packBarcodeDuplicate, packNameDuplicate,
                bundleComponentDuplicate, uniqueConstraintViolation
            ValidationError: skuRequired, nameRequired, packMultiplierInvalid,
                bundleEmpty, bundleComponentInvalid, bundleQtyPositive,
                attributeRequired, attributeNumberInvalid, attributeOptionInvalid,
                unitCostInvalid
            NotFoundError: unitNotFound, supplierNotFound, productNotFound
                (bundle component), variantNotFound
        """
        organization_id = actor.organization_id
        product_id = new_id()

        sku = normalize_sku(data.sku)
        name = normalize_name(data.name)
        base_price = resolve_optional_price(data.base_price_kgs)
        base_cost = resolve_base_cost(
            resolve_optional_price(data.avg_cost_kgs),
            resolve_optional_price(data.purchase_price_kgs),
        )
        components = normalize_bundle_components(data.bundle_components) if data.is_bundle else []
        media = self._resolve_media(
            organization_id,
            product_id,
            data.images,
            data.photo_url,
            photo_supplied=data.photo_url is not None,
        )

        with atomic(self.db):
            assert_within_limits(self.db, organization_id, kind="products")
            guard = IntegrityGuard(self.db, organization_id)
            guard.ensure_supplier(data.supplier_id)
            unit = guard.ensure_unit(data.base_unit_id)

            schema = AttributeSchema.load(self.db, organization_id)
            validated = schema.validate_all(variant.attributes for variant in data.variants)

            barcodes = normalize_barcodes(data.barcodes)
            guard.ensure_barcodes_available(barcodes)
            packs = normalize_packs(data.packs)
            pack_barcodes = guard.ensure_packs_available(packs)
            guard.ensure_distinct_namespaces(barcodes, pack_barcodes)

            if self._products.sku_exists(organization_id, sku):
                raise DuplicateEntityError("Product", sku, organization_id=organization_id)

            category = normalize_category_name(data.category)
            ensure_product_category(self.db, organization_id, category)

            if data.is_bundle and not components:
                raise ValidationError("bundleEmpty", "A bundle needs at least one component")

            product = Product(
                id=product_id,
                organization_id=organization_id,
                sku=sku,
                name=name,
                category=category,
                unit=unit.code,
                base_unit_id=unit.id,
                base_price_kgs=base_price,
                description=data.description,
                photo_url=media.photo_url,
                supplier_id=data.supplier_id or None,
                is_bundle=data.is_bundle,
                is_deleted=False,
            )
            self.db.add(product)
            self.db.flush()

            self._write_packs(organization_id, product.id, packs)
            replace_product_images(self.db, organization_id, product.id, media.images)
            self._write_barcodes(organization_id, product.id, barcodes)
            for variant, attributes in zip(data.variants, validated):
                self._create_variant(
                    organization_id,
                    product.id,
                    variant.name,
                    variant.sku,
                    attributes.stored,
                    attributes.rows(),
                )
            self.db.flush()

            if components:
                guard.sync_bundle_components(product.id, components, BundleSyncMode.CREATE_ONLY)
            ensure_base_snapshots(self.db, organization_id, product.id)
            if base_cost is not None:
                upsert_base_product_cost(self.db, organization_id, product.id, base_cost)

            self._audit(actor, AuditAction.PRODUCT_CREATE, product.id, None, serialize_model(product))

        logger.info(
            "Product created",
            organization_id=organization_id,
            product_id=product_id,
            sku=sku,
            barcodes=len(barcodes),
            packs=len(packs),
            variants=len(data.variants),
        )
        self._record_milestone(
            organization_id,
            actor.actor_id,
            MilestoneType.FIRST_PRODUCT_CREATED,
            {"productId": product_id},
        )
        return self.get_product(product_id, organization_id)

    # =========================================================================
    # Update
    # =========================================================================

    def _reconcile_variants(
        self,
        organization_id: str,
        product_id: str,
        data: ProductUpdate,
        validated: list[ValidatedAttributes],
        removed_ids: list[str],
    ) -> None:
        if removed_ids:
            self.db.execute(
                update(ProductVariant)
                .where(ProductVariant.id.in_(removed_ids))
                .values(is_active=False)
            )
            self.db.execute(
                delete(VariantAttributeValue).where(VariantAttributeValue.variant_id.in_(removed_ids))
            )

        for variant, attributes in zip(data.variants or [], validated):
            if variant.id:
                self.db.execute(
                    update(ProductVariant)
                    .where(
                        ProductVariant.id == variant.id,
                        ProductVariant.product_id == product_id,
                    )
                    .values(
                        name=variant.name,
                        sku=variant.sku,
                        attributes=attributes.stored,
                        is_active=True,
                    )
                )
                # Attribute rows are replaced wholesale, never patched
                self.db.execute(
                    delete(VariantAttributeValue).where(VariantAttributeValue.variant_id == variant.id)
                )
                self._write_attribute_values(
                    organization_id, product_id, variant.id, attributes.rows()
                )
            else:
                self._create_variant(
                    organization_id,
                    product_id,
                    variant.name,
                    variant.sku,
                    attributes.stored,
                    attributes.rows(),
                )
        self.db.flush()

    def update_product(
        self,
        product_id: str,
        data: ProductUpdate,
        actor: ActorContext,
    ) -> ProductOutput:
        """
        Update a product and replace its owned rows.

        Barcodes are always replaced; packs, images, variants and bundle
        components only when supplied. Variants missing from a supplied list
        are deactivated unless inventory history references them, in which
        case the whole update fails with variantInUse.

        Raises:
            ProductNotFoundError: missing or owned by another tenant
            ConflictError: unitChangeNotAllowed, variantInUse and the create conflicts
            ValidationError / NotFoundError: as for create_product
        """
        organization_id = actor.organization_id
        photo_supplied = "photo_url" in data.model_fields_set and data.photo_url is not None
        media = self._resolve_media(
            organization_id, product_id, data.images, data.photo_url, photo_supplied
        )
        components = (
            normalize_bundle_components(data.bundle_components)
            if data.bundle_components is not None
            else None
        )
        sku = normalize_sku(data.sku)
        name = normalize_name(data.name)
        base_price = resolve_optional_price(data.base_price_kgs)
        base_cost = resolve_base_cost(
            resolve_optional_price(data.avg_cost_kgs),
            resolve_optional_price(data.purchase_price_kgs),
        )

        with atomic(self.db):
            product = self._load_product(product_id, organization_id)
            before = serialize_model(product)
            guard = IntegrityGuard(self.db, organization_id)

            guard.ensure_supplier(data.supplier_id)
            unit = guard.ensure_unit(data.base_unit_id)

            schema = AttributeSchema.load(self.db, organization_id)
            validated = schema.validate_all(variant.attributes for variant in data.variants or [])

            barcodes = normalize_barcodes(data.barcodes)
            guard.ensure_barcodes_available(barcodes, exclude_product_id=product.id)
            guard.ensure_unit_change_allowed(product, unit.id)

            packs = normalize_packs(data.packs) if data.packs is not None else None
            if packs is not None:
                pack_barcodes = guard.ensure_packs_available(packs, exclude_product_id=product.id)
            else:
                pack_barcodes = guard.current_pack_barcodes(product.id)
            guard.ensure_distinct_namespaces(barcodes, pack_barcodes)

            if sku != product.sku and self._products.sku_exists(organization_id, sku):
                raise DuplicateEntityError("Product", sku, organization_id=organization_id)

            category = normalize_category_name(data.category)
            ensure_product_category(self.db, organization_id, category)

            next_is_bundle = product.is_bundle if data.is_bundle is None else data.is_bundle
            if next_is_bundle:
                if components is not None and not components:
                    raise ValidationError("bundleEmpty", "A bundle needs at least one component")
                if components is None and guard.count_bundle_components(product.id) == 0:
                    raise ValidationError("bundleEmpty", "A bundle needs at least one component")
                if components:
                    guard.validate_bundle_components(product.id, components)

            removed_ids: list[str] = []
            if data.variants is not None:
                known = {
                    variant.id: variant.is_active
                    for variant in self.db.scalars(
                        select(ProductVariant).where(ProductVariant.product_id == product.id)
                    ).all()
                }
                incoming_ids = {variant.id for variant in data.variants if variant.id}
                for variant_id in incoming_ids:
                    if variant_id not in known:
                        raise NotFoundError("Variant", variant_id, code="variantNotFound")
                removed_ids = [
                    variant_id
                    for variant_id, is_active in known.items()
                    if is_active and variant_id not in incoming_ids
                ]
                guard.ensure_variants_removable(removed_ids)

            # All checks passed; write
            product.sku = sku
            product.name = name
            product.category = category
            product.unit = unit.code
            product.base_unit_id = unit.id
            product.base_price_kgs = base_price
            product.description = data.description
            product.supplier_id = data.supplier_id or None
            product.is_bundle = next_is_bundle
            if data.images is not None or photo_supplied:
                product.photo_url = media.photo_url
            self.db.flush()

            self.db.execute(delete(ProductBarcode).where(ProductBarcode.product_id == product.id))
            self._write_barcodes(organization_id, product.id, barcodes)

            if packs is not None:
                self.db.execute(delete(ProductPack).where(ProductPack.product_id == product.id))
                self._write_packs(organization_id, product.id, packs)
            self.db.flush()

            if data.images is not None:
                replace_product_images(self.db, organization_id, product.id, media.images)

            if data.variants is not None:
                self._reconcile_variants(organization_id, product.id, data, validated, removed_ids)

            if not next_is_bundle:
                guard.clear_bundle_components(product.id)
            elif components is not None:
                guard.sync_bundle_components(product.id, components, BundleSyncMode.REPLACE)

            if base_cost is not None:
                upsert_base_product_cost(self.db, organization_id, product.id, base_cost)

            self._audit(
                actor, AuditAction.PRODUCT_UPDATE, product.id, before, serialize_model(product)
            )

        logger.info(
            "Product updated",
            organization_id=organization_id,
            product_id=product_id,
            deactivated_variants=len(removed_ids),
        )
        return self.get_product(product_id, organization_id)

    # =========================================================================
    # Duplicate
    # =========================================================================

    def duplicate_product(
        self,
        product_id: str,
        actor: ActorContext,
        sku: Optional[str] = None,
    ) -> DuplicateProductResult:
        """
        Copy a product under a new SKU.

        Images, packs (without their barcodes), active variants with their
        attribute values and bundle components are copied. Product barcodes
        are never copied.

        Raises:
            ConflictError(planLimitProducts)
            ProductNotFoundError: source missing or owned by another tenant
            DuplicateEntityError(uniqueConstraintViolation): requested SKU taken
            InternalError(unexpectedError): no free "-COPY" SKU
        """
        organization_id = actor.organization_id

        with atomic(self.db):
            assert_within_limits(self.db, organization_id, kind="products")
            source = self._products.find_by_id(product_id, organization_id, include_deleted=True)
            if source is None:
                raise ProductNotFoundError(product_id, organization_id=organization_id)

            next_sku = resolve_duplicate_sku(self.db, organization_id, source.sku, sku)

            components = [
                NormalizedBundleComponent(
                    component_product_id=component.component_product_id,
                    component_variant_id=component.component_variant_id,
                    qty=component.qty,
                )
                for component in source.bundle_components
            ]
            if source.is_bundle and not components:
                raise ValidationError("bundleEmpty", "A bundle needs at least one component")

            duplicate = Product(
                id=new_id(),
                organization_id=organization_id,
                supplier_id=source.supplier_id,
                sku=next_sku,
                name=source.name,
                category=source.category,
                unit=source.unit,
                base_unit_id=source.base_unit_id,
                base_price_kgs=source.base_price_kgs,
                description=source.description,
                photo_url=source.photo_url,
                is_bundle=source.is_bundle,
                is_deleted=False,
            )
            self.db.add(duplicate)
            self.db.flush()

            replace_product_images(
                self.db,
                organization_id,
                duplicate.id,
                [NormalizedImage(url=image.url, position=image.position) for image in source.images],
            )
            self._write_packs(
                organization_id,
                duplicate.id,
                [
                    NormalizedPack(
                        pack_name=pack.pack_name,
                        pack_barcode=None,
                        multiplier_to_base=pack.multiplier_to_base,
                        allow_in_purchasing=pack.allow_in_purchasing,
                        allow_in_receiving=pack.allow_in_receiving,
                    )
                    for pack in source.packs
                ],
                copy_barcodes=False,
            )
            for variant in source.variants:
                if not variant.is_active:
                    continue
                self._create_variant(
                    organization_id,
                    duplicate.id,
                    variant.name,
                    variant.sku,
                    dict(variant.attributes or {}),
                    [(row.key, row.value) for row in variant.attribute_values],
                )
            self.db.flush()

            if source.is_bundle:
                guard = IntegrityGuard(self.db, organization_id)
                guard.sync_bundle_components(duplicate.id, components, BundleSyncMode.CREATE_ONLY)

            ensure_base_snapshots(self.db, organization_id, duplicate.id)
            self._audit(
                actor,
                AuditAction.PRODUCT_CREATE,
                duplicate.id,
                {"sourceProductId": source.id},
                serialize_model(duplicate),
            )
            duplicate_id = duplicate.id

        logger.info(
            "Product duplicated",
            organization_id=organization_id,
            source_product_id=product_id,
            product_id=duplicate_id,
            sku=next_sku,
        )
        return DuplicateProductResult(product_id=duplicate_id, sku=next_sku, copied_barcodes=False)

    # =========================================================================
    # Archive / Restore
    # =========================================================================

    def archive_product(self, product_id: str, actor: ActorContext) -> ProductOutput:
        """Tombstone a product. Its SKU and barcodes stay reserved."""
        organization_id = actor.organization_id
        with atomic(self.db):
            product = self._load_product(product_id, organization_id)
            before = serialize_model(product)
            product.is_deleted = True
            self.db.flush()
            self._audit(actor, AuditAction.PRODUCT_ARCHIVE, product.id, before, serialize_model(product))

        logger.info("Product archived", organization_id=organization_id, product_id=product_id)
        return self.get_product(product_id, organization_id)

    def restore_product(self, product_id: str, actor: ActorContext) -> ProductOutput:
        """Clear the tombstone and re-create any missing base snapshots."""
        organization_id = actor.organization_id
        with atomic(self.db):
            product = self._load_product(product_id, organization_id)
            before = serialize_model(product)
            product.is_deleted = False
            self.db.flush()
            ensure_base_snapshots(self.db, organization_id, product.id)
            self._audit(actor, AuditAction.PRODUCT_RESTORE, product.id, before, serialize_model(product))

        logger.info("Product restored", organization_id=organization_id, product_id=product_id)
        return self.get_product(product_id, organization_id)

    # =========================================================================
    # Bulk category
    # =========================================================================

    def bulk_update_product_category(
        self,
        product_ids: Sequence[str],
        category: Optional[str],
        actor: ActorContext,
    ) -> BulkCategoryResult:
        """Assign one (normalized) category to many products. Unknown ids are ignored."""
        organization_id = actor.organization_id
        ids = list(dict.fromkeys(product_ids))
        if not ids:
            return BulkCategoryResult(updated=0)

        next_category = normalize_category_name(category)
        with atomic(self.db):
            products = self.db.scalars(
                select(Product).where(
                    Product.organization_id == organization_id,
                    Product.id.in_(ids),
                )
            ).all()
            if not products:
                return BulkCategoryResult(updated=0)

            ensure_product_category(self.db, organization_id, next_category)
            for product in products:
                previous = product.category
                product.category = next_category
                self._audit(
                    actor,
                    AuditAction.PRODUCT_UPDATE,
                    product.id,
                    {"id": product.id, "category": previous},
                    {"id": product.id, "category": next_category},
                )
            self.db.flush()
            updated = len(products)

        logger.info(
            "Product category assigned",
            organization_id=organization_id,
            updated=updated,
            category=next_category,
        )
        return BulkCategoryResult(updated=updated)
