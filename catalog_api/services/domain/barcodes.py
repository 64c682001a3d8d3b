"""
Barcode Uniqueness Resolver.

Generates internal barcode values (EAN-13 in the "29" in-store range, or
CODE128 with a "BZ" prefix) that are unique across both barcode namespaces
of an organization: product barcodes and pack barcodes.

Usage:
    from catalog_api.services.domain import BarcodeService

    service = BarcodeService(db)
    result = service.generate_product_barcode(product_id, BarcodeMode.EAN13, actor)
"""

from __future__ import annotations

import hashlib
import re
import time
from typing import Callable, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from catalog_api.models import ProductBarcode, ProductPack, Store
from catalog_api.repositories import ProductFilters, ProductRepository
from catalog_api.services.audit import write_audit_log
from catalog_shared.config.constants import AuditAction, AuditEntity, BarcodeMode
from catalog_shared.config.logging import get_logger
from catalog_shared.config.settings import settings
from catalog_shared.infrastructure.db import atomic
from catalog_shared.schemas import (
    ActorContext,
    BulkBarcodeFilter,
    BulkBarcodeResult,
    GeneratedBarcodeResult,
)
from catalog_shared.utils.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    ProductNotFoundError,
)

from .identifiers import normalize_category_name

logger = get_logger(__name__)

INTERNAL_EAN_PREFIX = "29"
CODE128_PREFIX = "BZ"
ORG_HASH_LENGTH = 4
EAN_SEQUENCE_LENGTH = 6
CODE128_SEQUENCE_LENGTH = 8

_WHITESPACE = re.compile(r"\s+")
_DIGITS_12 = re.compile(r"^\d{12}$")
_DIGITS_13 = re.compile(r"^\d{13}$")


class BarcodeGenerationExhausted(Exception):
    """No free candidate within the attempt ceiling."""


# =============================================================================
# Symbology
# =============================================================================


def normalize_barcode_value(value: str) -> str:
    return _WHITESPACE.sub("", value).strip()


def compute_ean13_check_digit(digits12: str) -> str:
    if not _DIGITS_12.match(digits12):
        raise ValueError("EAN-13 check digit requires exactly 12 digits")
    total = 0
    for index, char in enumerate(digits12):
        digit = int(char)
        total += digit if index % 2 == 0 else digit * 3
    return str((10 - total % 10) % 10)


def is_valid_ean13(value: str) -> bool:
    normalized = normalize_barcode_value(value)
    if not _DIGITS_13.match(normalized):
        return False
    return compute_ean13_check_digit(normalized[:12]) == normalized[12]


def resolve_barcode_symbology(value: str) -> Optional[BarcodeMode]:
    """EAN13 for valid EAN-13 values, CODE128 for anything else non-empty."""
    normalized = normalize_barcode_value(value)
    if not normalized:
        return None
    if is_valid_ean13(normalized):
        return BarcodeMode.EAN13
    return BarcodeMode.CODE128


def select_primary_barcode_value(values: list[str]) -> str:
    """First valid EAN-13 value, else the first non-empty value, else ''."""
    normalized = [normalize_barcode_value(value) for value in values]
    normalized = [value for value in normalized if value]
    if not normalized:
        return ""
    for value in normalized:
        if resolve_barcode_symbology(value) == BarcodeMode.EAN13:
            return value
    return normalized[0]


def _hash_to_digits(value: str, length: int) -> str:
    digest = hashlib.sha1(value.encode("utf-8")).hexdigest()
    digits = "".join(str(int(char, 16) % 10) for char in digest[:length])
    return digits.ljust(length, "0")


def build_generated_barcode_candidate(
    organization_id: str,
    mode: BarcodeMode,
    sequence: int,
) -> str:
    """
    Deterministic candidate for a sequence number.

    EAN13: "29" + 4-digit organization hash + 6-digit sequence + check digit.
    CODE128: "BZ" + 4-digit organization hash + 8-digit sequence.
    Sequences wrap modulo the width of their field.
    """
    org_hash = _hash_to_digits(organization_id, ORG_HASH_LENGTH)
    if mode == BarcodeMode.EAN13:
        normalized = int(sequence) % 10**EAN_SEQUENCE_LENGTH
        body = f"{INTERNAL_EAN_PREFIX}{org_hash}{normalized:0{EAN_SEQUENCE_LENGTH}d}"
        return f"{body}{compute_ean13_check_digit(body)}"

    normalized = int(sequence) % 10**CODE128_SEQUENCE_LENGTH
    return f"{CODE128_PREFIX}{org_hash}{normalized:0{CODE128_SEQUENCE_LENGTH}d}"


def resolve_unique_generated_barcode(
    organization_id: str,
    mode: BarcodeMode,
    is_taken: Callable[[str], bool],
    max_attempts: Optional[int] = None,
    start_sequence: Optional[int] = None,
) -> str:
    """
    Probe consecutive sequence numbers until ``is_taken`` reports a free value.

    Raises:
        BarcodeGenerationExhausted: every candidate within max_attempts was taken
    """
    if max_attempts is None:
        max_attempts = settings.barcode_generation_max_attempts
    if start_sequence is None:
        start_sequence = int(time.time() * 1000)

    for attempt in range(max_attempts):
        candidate = build_generated_barcode_candidate(organization_id, mode, start_sequence + attempt)
        if not is_taken(candidate):
            return candidate

    raise BarcodeGenerationExhausted(f"No free {mode.value} barcode after {max_attempts} attempts")


# =============================================================================
# Database-backed generation
# =============================================================================


def is_barcode_taken(db: Session, organization_id: str, value: str) -> bool:
    """True if the value is used as a product barcode or a pack barcode."""
    in_barcodes = db.scalar(
        select(ProductBarcode.id).where(
            ProductBarcode.organization_id == organization_id,
            ProductBarcode.value == value,
        )
    )
    if in_barcodes is not None:
        return True
    in_packs = db.scalar(
        select(ProductPack.id).where(
            ProductPack.organization_id == organization_id,
            ProductPack.pack_barcode == value,
        )
    )
    return in_packs is not None


def generate_unique_barcode_value(
    db: Session,
    organization_id: str,
    mode: BarcodeMode,
    start_sequence: Optional[int] = None,
) -> str:
    """
    Unique barcode for the organization. Pending rows must be flushed first.

    Raises:
        InternalError(barcodeGenerationFailed): attempt ceiling exhausted
    """
    try:
        return resolve_unique_generated_barcode(
            organization_id,
            mode,
            lambda value: is_barcode_taken(db, organization_id, value),
            start_sequence=start_sequence,
        )
    except BarcodeGenerationExhausted as exc:
        raise InternalError(
            "barcodeGenerationFailed",
            "Could not allocate a unique barcode",
            organization_id=organization_id,
            mode=mode.value,
        ) from exc


class BarcodeService:
    """
    Barcode generation for existing products.

    Business rules:
    - Generated values are unique across product and pack barcodes
    - A product with barcodes only gets a new one with force (atomic replace)
    - Bulk generation never touches products that already have a barcode
    """

    def __init__(self, db: Session):
        self.db = db
        self._products = ProductRepository(db)

    def _barcode_values(self, product_id: str) -> list[str]:
        return list(
            self.db.scalars(
                select(ProductBarcode.value)
                .where(ProductBarcode.product_id == product_id)
                .order_by(ProductBarcode.created_at, ProductBarcode.id)
            ).all()
        )

    def _insert_generated(self, organization_id: str, product_id: str, mode: BarcodeMode) -> str:
        value = generate_unique_barcode_value(self.db, organization_id, mode)
        self.db.add(
            ProductBarcode(organization_id=organization_id, product_id=product_id, value=value)
        )
        self.db.flush()
        return value

    def generate_product_barcode(
        self,
        product_id: str,
        mode: BarcodeMode,
        actor: ActorContext,
        force: bool = False,
    ) -> GeneratedBarcodeResult:
        """
        Generate a barcode for one product.

        Raises:
            ProductNotFoundError: missing, archived or owned by another tenant
            ConflictError(productBarcodeExists): product has barcodes and force is off
            InternalError(barcodeGenerationFailed): no free value found
        """
        organization_id = actor.organization_id
        with atomic(self.db):
            product = self._products.find_by_id(product_id, organization_id)
            if product is None:
                raise ProductNotFoundError(product_id, organization_id=organization_id)

            before_values = self._barcode_values(product.id)
            if before_values and not force:
                raise ConflictError(
                    "productBarcodeExists",
                    "Product already has a barcode",
                    product_id=product.id,
                )
            if before_values:
                self.db.execute(
                    delete(ProductBarcode).where(
                        ProductBarcode.organization_id == organization_id,
                        ProductBarcode.product_id == product.id,
                    )
                )

            value = self._insert_generated(organization_id, product.id, mode)
            write_audit_log(
                self.db,
                organization_id=organization_id,
                actor_id=actor.actor_id,
                action=AuditAction.PRODUCT_UPDATE,
                entity=AuditEntity.PRODUCT,
                entity_id=product.id,
                before={"barcodes": before_values},
                after={"barcodes": [value], "generated": True, "mode": mode.value},
                request_id=actor.request_id,
            )

        logger.info(
            "Barcode generated",
            organization_id=organization_id,
            product_id=product_id,
            mode=mode.value,
            replaced=len(before_values),
        )
        return GeneratedBarcodeResult(product_id=product_id, value=value, mode=mode, barcodes=[value])

    def bulk_generate_product_barcodes(
        self,
        mode: BarcodeMode,
        actor: ActorContext,
        filter: Optional[BulkBarcodeFilter] = None,
    ) -> BulkBarcodeResult:
        """
        Generate barcodes for every filtered product that has none.

        Products are scanned in name order up to the filter limit (default
        500, clamped to 1..5000). Products that already have a barcode are
        counted as skipped.

        Raises:
            ForbiddenError(storeAccessDenied): store filter names another tenant's store
        """
        organization_id = actor.organization_id
        filter = filter or BulkBarcodeFilter()
        product_ids = list(dict.fromkeys(value.strip() for value in filter.product_ids if value.strip()))
        filters = ProductFilters(
            limit=filter.limit if filter.limit is not None else settings.bulk_barcode_default_limit,
            include_deleted=filter.include_archived,
            search=filter.search,
            product_ids=product_ids,
            category=normalize_category_name(filter.category),
            product_type=filter.type,
            store_id=filter.store_id,
        )

        updated_product_ids: list[str] = []
        with atomic(self.db):
            if filter.store_id:
                store = self.db.get(Store, filter.store_id)
                if store is None or store.organization_id != organization_id:
                    raise ForbiddenError(
                        "storeAccessDenied", "use this store", store_id=filter.store_id
                    )

            products = self._products.find_for_barcode_generation(organization_id, filters)
            counts = self._products.barcode_counts([product.id for product in products])

            for product in products:
                if counts.get(product.id, 0) > 0:
                    continue
                value = self._insert_generated(organization_id, product.id, mode)
                write_audit_log(
                    self.db,
                    organization_id=organization_id,
                    actor_id=actor.actor_id,
                    action=AuditAction.PRODUCT_UPDATE,
                    entity=AuditEntity.PRODUCT,
                    entity_id=product.id,
                    before={"barcodes": []},
                    after={"barcodes": [value], "generated": True, "mode": mode.value},
                    request_id=actor.request_id,
                )
                updated_product_ids.append(product.id)

        result = BulkBarcodeResult(
            scanned_count=len(products),
            generated_count=len(updated_product_ids),
            skipped_count=len(products) - len(updated_product_ids),
            updated_product_ids=updated_product_ids,
        )
        logger.info(
            "Bulk barcode generation finished",
            organization_id=organization_id,
            scanned=result.scanned_count,
            generated=result.generated_count,
        )
        return result
