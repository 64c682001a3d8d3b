"""
Import Service - Bulk Import Merge Engine.

Merges spreadsheet rows keyed by SKU into the catalog. Rows are processed
sequentially inside one transaction with a wall-clock budget; any malformed
row (or the budget running out) rolls the whole import back.

Modes:
- full: every field is applied, unknown SKUs create products
- update_selected: only fields named in the update mask are applied,
  unknown SKUs are skipped

Every executed import is recorded as an ImportBatch together with the rows
it created (products, barcodes, reorder policies) so it can be rolled back.

Usage:
    from catalog_api.services.domain import ImportService

    service = ImportService(db)
    result = service.run_product_import(request, actor)
    service.rollback_import_batch(result.batch_id, actor)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, sessionmaker

from catalog_api.models import (
    ImportBatch,
    ImportedEntity,
    Product,
    ProductBarcode,
    ReorderPolicy,
    Store,
    Unit,
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
from catalog_api.services.plan_limits import assert_capacity
from catalog_shared.config.constants import (
    AuditAction,
    AuditEntity,
    ImportAction,
    ImportedEntityType,
    ImportField,
    ImportMode,
    Limits,
    MilestoneType,
)
from catalog_shared.config.logging import get_logger
from catalog_shared.config.settings import settings
from catalog_shared.infrastructure.db import atomic, set_local_statement_timeout
from catalog_shared.schemas import (
    ActorContext,
    ImportBatchDetail,
    ImportBatchOutput,
    ImportEntityCount,
    ImportPhotoSummary,
    ImportProductRow,
    ImportProductsRequest,
    ImportRollbackResult,
    ImportRowResult,
    ImportRunResult,
)
from catalog_shared.utils.exceptions import (
    ConflictError,
    ImportTimeoutError,
    NotFoundError,
    ValidationError,
)

from .identifiers import (
    NormalizedImage,
    normalize_barcodes,
    normalize_category_name,
    normalize_name,
    normalize_sku,
    resolve_base_cost,
    resolve_optional_integer,
    resolve_optional_price,
)
from .integrity import IntegrityGuard
from .product_service import (
    MilestoneRecorder,
    ensure_base_snapshots,
    replace_product_images,
    upsert_base_product_cost,
)

logger = get_logger(__name__)


def ensure_unit_by_code(db: Session, organization_id: str, code: str) -> Unit:
    """Find a unit by code or create it with the code as both labels."""
    unit = db.scalar(
        select(Unit).where(Unit.organization_id == organization_id, Unit.code == code)
    )
    if unit is None:
        unit = Unit(organization_id=organization_id, code=code, label_ru=code, label_kg=code)
        db.add(unit)
        db.flush()
    return unit


def _should_apply(mode: ImportMode, update_mask: frozenset[ImportField], import_field: ImportField) -> bool:
    return mode != ImportMode.UPDATE_SELECTED or import_field in update_mask


@dataclass
class ImportContext:
    """State shared by every row of one import run."""

    organization_id: str
    actor: ActorContext
    mode: ImportMode
    update_mask: frozenset[ImportField]
    store: Optional[Store]
    stores: Sequence[Store]
    deadline: float
    timeout_ms: int
    batch_id: Optional[str] = None
    # raw photo value -> resolved URL (None when unusable)
    photos: dict[str, Optional[str]] = field(default_factory=dict)

    def should_apply(self, import_field: ImportField) -> bool:
        return _should_apply(self.mode, self.update_mask, import_field)


class ImportService:
    """
    Service for bulk product imports.

    Business rules:
    - One transaction per import; a malformed row aborts everything
    - Barcodes are reconciled by symmetric difference, unchanged rows stay
    - Minimum stock needs a target store
    - Full imports check plan capacity for net-new SKUs up front
    - A batch can be rolled back once
    """

    def __init__(
        self,
        db: Session,
        image_resolver: Optional[ProductImageResolver] = None,
        milestone_recorder: Optional[MilestoneRecorder] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.db = db
        self._products = ProductRepository(db)
        self._images = image_resolver or get_image_resolver()
        if milestone_recorder is None:
            milestone_recorder = partial(
                record_first_event, session_factory=sessionmaker(bind=db.get_bind())
            )
        self._record_milestone = milestone_recorder
        self._clock = clock

    # =========================================================================
    # Preparation (outside the transaction)
    # =========================================================================

    def _load_store(self, organization_id: str, store_id: Optional[str]) -> Optional[Store]:
        if not store_id:
            return None
        store = self.db.get(Store, store_id)
        if store is None or store.organization_id != organization_id:
            raise NotFoundError("Store", store_id, code="storeNotFound")
        return store

    def _resolve_photos(
        self,
        organization_id: str,
        rows: Sequence[ImportProductRow],
        apply_photos: bool,
    ) -> tuple[dict[str, Optional[str]], ImportPhotoSummary]:
        """Resolve every distinct photo value once; count outcomes per row."""
        photos: dict[str, Optional[str]] = {}
        summary = ImportPhotoSummary()
        if not apply_photos:
            return photos, summary

        cache: ImageCache = {}
        for row in rows:
            raw = (row.photo_url or "").strip()
            if not raw:
                continue
            resolved = self._images.resolve(raw, organization_id, None, cache)
            photos[raw] = resolved.url
            if resolved.url is None:
                summary.missing += 1
            elif resolved.managed:
                summary.downloaded += 1
            else:
                summary.fallback += 1
        return photos, summary

    def _check_store_requirement(
        self,
        rows: Sequence[ImportProductRow],
        mode: ImportMode,
        update_mask: frozenset[ImportField],
        store_id: Optional[str],
    ) -> None:
        if store_id or not _should_apply(mode, update_mask, ImportField.MIN_STOCK):
            return
        if any(row.min_stock is not None for row in rows):
            raise ValidationError(
                "storeRequired", "Minimum stock import needs a target store"
            )

    def _assert_capacity_for_new_skus(
        self,
        organization_id: str,
        rows: Sequence[ImportProductRow],
        mode: ImportMode,
    ) -> None:
        if mode != ImportMode.FULL:
            return
        skus = list(dict.fromkeys(row.sku.strip() for row in rows if row.sku and row.sku.strip()))
        existing = self._products.find_by_skus(organization_id, skus)
        net_new = len([sku for sku in skus if sku not in existing])
        if net_new > 0:
            assert_capacity(self.db, organization_id, kind="products", add=net_new)

    def _build_context(
        self,
        actor: ActorContext,
        mode: ImportMode,
        update_mask: frozenset[ImportField],
        store: Optional[Store],
        photos: dict[str, Optional[str]],
    ) -> ImportContext:
        timeout_ms = settings.resolve_import_timeout_ms()
        stores = self.db.scalars(
            select(Store).where(Store.organization_id == actor.organization_id)
        ).all()
        return ImportContext(
            organization_id=actor.organization_id,
            actor=actor,
            mode=mode,
            update_mask=update_mask,
            store=store,
            stores=stores,
            deadline=self._clock() + timeout_ms / 1000,
            timeout_ms=timeout_ms,
            photos=photos,
        )

    # =========================================================================
    # Row merge (inside the transaction)
    # =========================================================================

    def _record_imported(self, ctx: ImportContext, entity_type: str, entity_id: str) -> None:
        if ctx.batch_id is None:
            return
        self.db.add(ImportedEntity(batch_id=ctx.batch_id, entity_type=entity_type, entity_id=entity_id))

    def _audit(
        self,
        ctx: ImportContext,
        action: str,
        product: Product,
        before: Optional[dict],
    ) -> None:
        write_audit_log(
            self.db,
            organization_id=ctx.organization_id,
            actor_id=ctx.actor.actor_id,
            action=action,
            entity=AuditEntity.PRODUCT,
            entity_id=product.id,
            before=before,
            after=serialize_model(product),
            request_id=ctx.actor.request_id,
        )

    def _insert_barcodes(self, ctx: ImportContext, product_id: str, values: Sequence[str]) -> None:
        for value in values:
            barcode = ProductBarcode(
                id=new_id(),
                organization_id=ctx.organization_id,
                product_id=product_id,
                value=value,
            )
            self.db.add(barcode)
            self._record_imported(ctx, ImportedEntityType.PRODUCT_BARCODE, barcode.id)

    def _reconcile_barcodes(self, ctx: ImportContext, product_id: str, barcodes: list[str]) -> None:
        current = set(
            self.db.scalars(
                select(ProductBarcode.value).where(ProductBarcode.product_id == product_id)
            ).all()
        )
        incoming = set(barcodes)
        removed = current - incoming
        if removed:
            self.db.execute(
                delete(ProductBarcode).where(
                    ProductBarcode.product_id == product_id,
                    ProductBarcode.value.in_(removed),
                )
            )
        self._insert_barcodes(ctx, product_id, [value for value in barcodes if value not in current])
        self.db.flush()

    def _upsert_min_stock(self, ctx: ImportContext, product_id: str, min_stock: int) -> None:
        if ctx.store is None:
            raise ValidationError("storeRequired", "Minimum stock import needs a target store")
        policy = self.db.scalar(
            select(ReorderPolicy).where(
                ReorderPolicy.store_id == ctx.store.id,
                ReorderPolicy.product_id == product_id,
            )
        )
        if policy is not None:
            policy.min_stock = min_stock
        else:
            policy = ReorderPolicy(
                id=new_id(),
                store_id=ctx.store.id,
                product_id=product_id,
                min_stock=min_stock,
                lead_time_days=Limits.REORDER_LEAD_TIME_DAYS,
                review_period_days=Limits.REORDER_REVIEW_PERIOD_DAYS,
                safety_stock_days=Limits.REORDER_SAFETY_STOCK_DAYS,
                min_order_qty=Limits.REORDER_MIN_ORDER_QTY,
            )
            self.db.add(policy)
            self._record_imported(ctx, ImportedEntityType.REORDER_POLICY, policy.id)
        self.db.flush()

    def _merge_row(self, ctx: ImportContext, row: ImportProductRow) -> ImportRowResult:
        apply = ctx.should_apply
        organization_id = ctx.organization_id

        sku = normalize_sku(row.sku)
        barcodes = (
            normalize_barcodes(row.barcodes)
            if apply(ImportField.BARCODES) and row.barcodes is not None
            else None
        )
        photo = None
        if apply(ImportField.PHOTO_URL):
            photo = ctx.photos.get((row.photo_url or "").strip())

        base_price = (
            resolve_optional_price(row.base_price_kgs)
            if apply(ImportField.BASE_PRICE_KGS)
            else None
        )
        purchase_price = (
            resolve_optional_price(row.purchase_price_kgs)
            if apply(ImportField.PURCHASE_PRICE_KGS)
            else None
        )
        avg_cost = (
            resolve_optional_price(row.avg_cost_kgs) if apply(ImportField.AVG_COST_KGS) else None
        )
        min_stock = (
            resolve_optional_integer(row.min_stock) if apply(ImportField.MIN_STOCK) else None
        )
        base_cost = resolve_base_cost(avg_cost, purchase_price)

        unit = None
        unit_code = (row.unit or "").strip()
        if apply(ImportField.UNIT) and unit_code:
            unit = ensure_unit_by_code(self.db, organization_id, unit_code)

        guard = IntegrityGuard(self.db, organization_id)
        existing = self._products.find_by_sku(organization_id, sku)
        if barcodes:
            guard.ensure_barcodes_available(
                barcodes, exclude_product_id=existing.id if existing else None
            )
            if existing is not None:
                guard.ensure_distinct_namespaces(barcodes, guard.current_pack_barcodes(existing.id))

        if existing is not None:
            before = serialize_model(existing)
            if ctx.mode == ImportMode.UPDATE_SELECTED:
                name = (row.name or "").strip()
                if apply(ImportField.NAME) and name:
                    existing.name = name
                if apply(ImportField.CATEGORY):
                    category = normalize_category_name(row.category)
                    ensure_product_category(self.db, organization_id, category)
                    existing.category = category
                if apply(ImportField.DESCRIPTION):
                    existing.description = row.description
                if apply(ImportField.UNIT):
                    if unit is None:
                        raise ValidationError("unitRequired", "Unit is required", sku=sku)
                    guard.ensure_unit_change_allowed(existing, unit.id)
                    existing.unit = unit.code
                    existing.base_unit_id = unit.id
                if apply(ImportField.BASE_PRICE_KGS) and base_price is not None:
                    existing.base_price_kgs = base_price
                if apply(ImportField.PHOTO_URL) and photo:
                    existing.photo_url = photo
            else:
                name = normalize_name(row.name)
                if unit is None:
                    raise ValidationError("unitRequired", "Unit is required", sku=sku)
                guard.ensure_unit_change_allowed(existing, unit.id)
                category = normalize_category_name(row.category)
                ensure_product_category(self.db, organization_id, category)
                existing.name = name
                existing.category = category
                existing.description = row.description
                existing.unit = unit.code
                existing.base_unit_id = unit.id
                if base_price is not None:
                    existing.base_price_kgs = base_price
                existing.photo_url = photo or existing.photo_url
                existing.is_deleted = False
            self.db.flush()

            if photo:
                replace_product_images(
                    self.db, organization_id, existing.id, [NormalizedImage(url=photo, position=0)]
                )
            if barcodes is not None:
                self._reconcile_barcodes(ctx, existing.id, barcodes)
            ensure_base_snapshots(self.db, organization_id, existing.id, ctx.stores)
            if base_cost is not None:
                upsert_base_product_cost(self.db, organization_id, existing.id, base_cost)
            if min_stock is not None:
                self._upsert_min_stock(ctx, existing.id, min_stock)

            self._audit(ctx, AuditAction.PRODUCT_UPDATE, existing, before)
            return ImportRowResult(sku=sku, action=ImportAction.UPDATED)

        if ctx.mode == ImportMode.UPDATE_SELECTED:
            return ImportRowResult(sku=sku, action=ImportAction.SKIPPED)

        name = normalize_name(row.name)
        if unit is None:
            raise ValidationError("unitRequired", "Unit is required", sku=sku)
        category = normalize_category_name(row.category)
        ensure_product_category(self.db, organization_id, category)

        product = Product(
            id=new_id(),
            organization_id=organization_id,
            sku=sku,
            name=name,
            category=category,
            description=row.description,
            photo_url=photo,
            unit=unit.code,
            base_unit_id=unit.id,
            base_price_kgs=base_price,
            is_bundle=False,
            is_deleted=False,
        )
        self.db.add(product)
        self.db.flush()
        self._record_imported(ctx, ImportedEntityType.PRODUCT, product.id)

        if photo:
            replace_product_images(
                self.db, organization_id, product.id, [NormalizedImage(url=photo, position=0)]
            )
        if barcodes:
            self._insert_barcodes(ctx, product.id, barcodes)
            self.db.flush()
        ensure_base_snapshots(self.db, organization_id, product.id, ctx.stores)
        if base_cost is not None:
            upsert_base_product_cost(self.db, organization_id, product.id, base_cost)
        if min_stock is not None:
            self._upsert_min_stock(ctx, product.id, min_stock)

        self._audit(ctx, AuditAction.PRODUCT_CREATE, product, None)
        return ImportRowResult(sku=sku, action=ImportAction.CREATED)

    def _merge_rows(self, ctx: ImportContext, rows: Sequence[ImportProductRow]) -> list[ImportRowResult]:
        set_local_statement_timeout(self.db, ctx.timeout_ms)
        results = []
        for index, row in enumerate(rows):
            if self._clock() > ctx.deadline:
                raise ImportTimeoutError(
                    ctx.timeout_ms, organization_id=ctx.organization_id, row_index=index
                )
            results.append(self._merge_row(ctx, row))
        return results

    # =========================================================================
    # Public operations
    # =========================================================================

    def import_products(
        self,
        rows: Sequence[ImportProductRow],
        actor: ActorContext,
        mode: ImportMode = ImportMode.FULL,
        update_mask: Optional[Sequence[ImportField]] = None,
        store_id: Optional[str] = None,
    ) -> list[ImportRowResult]:
        """
        Merge rows into the catalog in one transaction, without batch tracking.

        Raises:
            ValidationError: skuRequired, nameRequired, unitRequired,
                unitCostInvalid, invalidInput, storeRequired
            ConflictError: duplicateBarcode, barcodeExists, unitChangeNotAllowed,
                planLimitProducts
            NotFoundError(storeNotFound)
            ImportTimeoutError(importTimeout)
        """
        mask = frozenset(update_mask or [])
        self._check_store_requirement(rows, mode, mask, store_id)
        store = self._load_store(actor.organization_id, store_id)
        photos, _ = self._resolve_photos(
            actor.organization_id, rows, _should_apply(mode, mask, ImportField.PHOTO_URL)
        )
        ctx = self._build_context(actor, mode, mask, store, photos)

        with atomic(self.db):
            self._assert_capacity_for_new_skus(actor.organization_id, rows, mode)
            results = self._merge_rows(ctx, rows)

        logger.info(
            "Products imported",
            organization_id=actor.organization_id,
            rows=len(rows),
            mode=mode.value,
        )
        return results

    def run_product_import(
        self,
        request: ImportProductsRequest,
        actor: ActorContext,
    ) -> ImportRunResult:
        """
        Execute an import as a tracked batch.

        Same rules as ``import_products``; additionally records an
        ImportBatch with a summary and every created entity, and the
        organization's first import milestone.
        """
        organization_id = actor.organization_id
        rows = request.rows
        mode = request.mode
        mask = frozenset(request.update_mask)

        self._check_store_requirement(rows, mode, mask, request.store_id)
        store = self._load_store(organization_id, request.store_id)
        photos, photo_summary = self._resolve_photos(
            organization_id, rows, _should_apply(mode, mask, ImportField.PHOTO_URL)
        )
        ctx = self._build_context(actor, mode, mask, store, photos)

        with atomic(self.db):
            self._assert_capacity_for_new_skus(organization_id, rows, mode)

            source = request.source or "csv"
            batch = ImportBatch(
                id=new_id(),
                organization_id=organization_id,
                type="products",
                source=source,
                created_by_id=actor.actor_id,
                summary={
                    "source": source,
                    "mode": mode.value,
                    "updateMask": [item.value for item in request.update_mask],
                    "targetStoreId": store.id if store else None,
                    "targetStoreName": store.name if store else None,
                    "rows": len(rows),
                },
            )
            self.db.add(batch)
            self.db.flush()
            ctx.batch_id = batch.id

            results = self._merge_rows(ctx, rows)

            summary = dict(batch.summary or {})
            summary.update(
                created=sum(1 for result in results if result.action == ImportAction.CREATED),
                updated=sum(1 for result in results if result.action == ImportAction.UPDATED),
                skipped=sum(1 for result in results if result.action == ImportAction.SKIPPED),
                images=photo_summary.model_dump(),
            )
            batch.summary = summary
            batch_id = batch.id

        logger.info(
            "Product import completed",
            organization_id=organization_id,
            batch_id=batch_id,
            created=summary["created"],
            updated=summary["updated"],
            skipped=summary["skipped"],
        )
        self._record_milestone(
            organization_id,
            actor.actor_id,
            MilestoneType.FIRST_IMPORT_COMPLETED,
            {"batchId": batch_id},
        )
        return ImportRunResult(batch_id=batch_id, results=results, summary=summary)

    # =========================================================================
    # Batches
    # =========================================================================

    def _entity_counts(self, batch_ids: Sequence[str]) -> dict[str, int]:
        if not batch_ids:
            return {}
        rows = self.db.execute(
            select(ImportedEntity.batch_id, func.count())
            .where(ImportedEntity.batch_id.in_(batch_ids))
            .group_by(ImportedEntity.batch_id)
        ).all()
        return {batch_id: count for batch_id, count in rows}

    @staticmethod
    def _batch_output(batch: ImportBatch, entity_count: int) -> ImportBatchOutput:
        return ImportBatchOutput(
            id=batch.id,
            type=batch.type,
            created_by_id=batch.created_by_id,
            summary=batch.summary,
            rolled_back_at=batch.rolled_back_at.isoformat() if batch.rolled_back_at else None,
            entity_count=entity_count,
        )

    def _load_batch(self, batch_id: str, organization_id: str) -> ImportBatch:
        batch = self.db.scalar(
            select(ImportBatch).where(
                ImportBatch.id == batch_id,
                ImportBatch.organization_id == organization_id,
            )
        )
        if batch is None:
            raise NotFoundError("ImportBatch", batch_id, code="importBatchNotFound")
        return batch

    def list_import_batches(
        self,
        organization_id: str,
        limit: int = Limits.DEFAULT_PAGE_SIZE,
    ) -> list[ImportBatchOutput]:
        """Most recent batches first."""
        limit = max(1, min(limit, Limits.MAX_PAGE_SIZE))
        batches = self.db.scalars(
            select(ImportBatch)
            .where(ImportBatch.organization_id == organization_id)
            .order_by(ImportBatch.created_at.desc(), ImportBatch.id)
            .limit(limit)
        ).all()
        counts = self._entity_counts([batch.id for batch in batches])
        return [self._batch_output(batch, counts.get(batch.id, 0)) for batch in batches]

    def get_import_batch(self, batch_id: str, organization_id: str) -> ImportBatchDetail:
        """
        Raises:
            NotFoundError(importBatchNotFound)
        """
        batch = self._load_batch(batch_id, organization_id)
        rows = self.db.execute(
            select(ImportedEntity.entity_type, func.count())
            .where(ImportedEntity.batch_id == batch.id)
            .group_by(ImportedEntity.entity_type)
            .order_by(ImportedEntity.entity_type)
        ).all()
        counts = [ImportEntityCount(entity_type=entity_type, count=count) for entity_type, count in rows]
        return ImportBatchDetail(
            batch=self._batch_output(batch, sum(item.count for item in counts)),
            counts=counts,
        )

    def rollback_import_batch(self, batch_id: str, actor: ActorContext) -> ImportRollbackResult:
        """
        Undo what a batch created: archive its products, remove its barcodes
        and reorder policies. Updates made to pre-existing products stay.

        Raises:
            NotFoundError(importBatchNotFound)
            ConflictError(importAlreadyRolledBack)
        """
        organization_id = actor.organization_id
        with atomic(self.db):
            batch = self._load_batch(batch_id, organization_id)
            if batch.rolled_back_at is not None:
                raise ConflictError(
                    "importAlreadyRolledBack",
                    "Import batch was already rolled back",
                    batch_id=batch.id,
                )

            entities = self.db.execute(
                select(ImportedEntity.entity_type, ImportedEntity.entity_id).where(
                    ImportedEntity.batch_id == batch.id
                )
            ).all()
            ids_by_type: dict[str, list[str]] = {}
            for entity_type, entity_id in entities:
                ids_by_type.setdefault(entity_type, []).append(entity_id)

            products = self.db.scalars(
                select(Product).where(
                    Product.organization_id == organization_id,
                    Product.id.in_(ids_by_type.get(ImportedEntityType.PRODUCT, [])),
                    Product.is_deleted.is_(False),
                )
            ).all()
            for product in products:
                product.is_deleted = True

            barcode_ids = list(
                self.db.scalars(
                    select(ProductBarcode.id).where(
                        ProductBarcode.organization_id == organization_id,
                        ProductBarcode.id.in_(ids_by_type.get(ImportedEntityType.PRODUCT_BARCODE, [])),
                    )
                ).all()
            )
            if barcode_ids:
                self.db.execute(delete(ProductBarcode).where(ProductBarcode.id.in_(barcode_ids)))

            store_ids = select(Store.id).where(Store.organization_id == organization_id)
            policy_ids = list(
                self.db.scalars(
                    select(ReorderPolicy.id).where(
                        ReorderPolicy.id.in_(ids_by_type.get(ImportedEntityType.REORDER_POLICY, [])),
                        ReorderPolicy.store_id.in_(store_ids),
                    )
                ).all()
            )
            if policy_ids:
                self.db.execute(delete(ReorderPolicy).where(ReorderPolicy.id.in_(policy_ids)))

            summary = {
                "archivedProducts": len(products),
                "removedBarcodes": len(barcode_ids),
                "removedReorderPolicies": len(policy_ids),
            }
            rolled_back_at = datetime.now(timezone.utc)
            batch.rolled_back_at = rolled_back_at
            batch.rolled_back_by_id = actor.actor_id
            batch.rollback_summary = summary
            self.db.flush()

            write_audit_log(
                self.db,
                organization_id=organization_id,
                actor_id=actor.actor_id,
                action=AuditAction.IMPORT_ROLLBACK,
                entity=AuditEntity.IMPORT_BATCH,
                entity_id=batch.id,
                before={"rolledBackAt": None},
                after={"rolledBackAt": rolled_back_at.isoformat(), **summary},
                request_id=actor.request_id,
            )

        logger.info(
            "Import batch rolled back",
            organization_id=organization_id,
            batch_id=batch_id,
            **summary,
        )
        return ImportRollbackResult(batch_id=batch_id, summary=summary)
