"""
Identifier normalization for catalog mutations.

Pure functions: trim, drop empties and reject duplicates inside a single
request before anything is looked up in the database. Organization-wide
uniqueness is the integrity guard's job.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from catalog_shared.schemas import (
    BundleComponentInput,
    ProductImageInput,
    ProductPackInput,
)
from catalog_shared.utils.exceptions import ConflictError, ValidationError

_WHITESPACE_RUN = re.compile(r"\s+")
_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class NormalizedPack:
    pack_name: str
    pack_barcode: Optional[str]
    multiplier_to_base: int
    allow_in_purchasing: bool = True
    allow_in_receiving: bool = True


@dataclass(frozen=True)
class NormalizedImage:
    url: str
    position: int


@dataclass(frozen=True)
class NormalizedBundleComponent:
    component_product_id: str
    component_variant_id: Optional[str]
    qty: int

    @property
    def key(self) -> tuple[str, Optional[str]]:
        return (self.component_product_id, self.component_variant_id)


def _trim(value: Optional[str]) -> str:
    return (value or "").strip()


def _truncate(value: float) -> float:
    """Truncate toward zero; non-finite values pass through for the caller to reject."""
    if not math.isfinite(value):
        return value
    return float(math.trunc(value))


def normalize_sku(value: Optional[str]) -> str:
    sku = _trim(value)
    if not sku:
        raise ValidationError("skuRequired", "SKU is required")
    return sku


def normalize_name(value: Optional[str]) -> str:
    name = _trim(value)
    if not name:
        raise ValidationError("nameRequired", "Name is required")
    return name


def normalize_category_name(value: Optional[str]) -> Optional[str]:
    """Trim and collapse inner whitespace. Empty names normalize to None."""
    if value is None:
        return None
    normalized = _WHITESPACE_RUN.sub(" ", value.strip())
    return normalized or None


def normalize_barcodes(values: Optional[Iterable[str]]) -> list[str]:
    """
    Trimmed, non-empty barcode values in input order.

    Raises:
        ConflictError(duplicateBarcode): same value given twice
    """
    if not values:
        return []
    cleaned = [value.strip() for value in values if value and value.strip()]
    if len(set(cleaned)) != len(cleaned):
        raise ConflictError("duplicateBarcode", "The same barcode was given more than once")
    return cleaned


def normalize_packs(packs: Optional[Sequence[ProductPackInput]]) -> list[NormalizedPack]:
    """
    Trim names and barcodes, drop nameless packs, then validate the set.

    Raises:
        ConflictError(packNameDuplicate): two packs share a name
        ConflictError(packBarcodeDuplicate): two packs share a barcode
        ValidationError(packMultiplierInvalid): multiplier not a positive integer
    """
    if not packs:
        return []

    cleaned: list[tuple[str, Optional[str], float, ProductPackInput]] = []
    for pack in packs:
        name = _trim(pack.pack_name)
        if not name:
            continue
        cleaned.append((name, _trim(pack.pack_barcode) or None, _truncate(pack.multiplier_to_base), pack))

    names = [name for name, _, _, _ in cleaned]
    if len(set(names)) != len(names):
        raise ConflictError("packNameDuplicate", "Two packs share the same name")

    barcodes = [barcode for _, barcode, _, _ in cleaned if barcode]
    if len(set(barcodes)) != len(barcodes):
        raise ConflictError("packBarcodeDuplicate", "Two packs share the same barcode")

    normalized = []
    for name, barcode, multiplier, pack in cleaned:
        if not math.isfinite(multiplier) or multiplier <= 0:
            raise ValidationError(
                "packMultiplierInvalid",
                "Pack multiplier must be a positive integer",
                pack_name=name,
            )
        normalized.append(
            NormalizedPack(
                pack_name=name,
                pack_barcode=barcode,
                multiplier_to_base=int(multiplier),
                allow_in_purchasing=True if pack.allow_in_purchasing is None else pack.allow_in_purchasing,
                allow_in_receiving=True if pack.allow_in_receiving is None else pack.allow_in_receiving,
            )
        )
    return normalized


def normalize_bundle_components(
    components: Optional[Sequence[BundleComponentInput]],
) -> list[NormalizedBundleComponent]:
    """
    Trim ids, drop components without a product id, then validate the set.

    Raises:
        ConflictError(bundleComponentDuplicate): same (product, variant) twice
        ValidationError(bundleQtyPositive): qty not a positive integer
    """
    if not components:
        return []

    cleaned = []
    for component in components:
        product_id = _trim(component.component_product_id)
        if not product_id:
            continue
        cleaned.append(
            (product_id, _trim(component.component_variant_id) or None, _truncate(component.qty))
        )

    keys = [(product_id, variant_id) for product_id, variant_id, _ in cleaned]
    if len(set(keys)) != len(keys):
        raise ConflictError(
            "bundleComponentDuplicate", "The same bundle component was given more than once"
        )

    normalized = []
    for product_id, variant_id, qty in cleaned:
        if not math.isfinite(qty) or qty <= 0:
            raise ValidationError(
                "bundleQtyPositive",
                "Bundle component quantity must be positive",
                component_product_id=product_id,
            )
        normalized.append(
            NormalizedBundleComponent(
                component_product_id=product_id,
                component_variant_id=variant_id,
                qty=int(qty),
            )
        )
    return normalized


def normalize_images(images: Optional[Sequence[ProductImageInput]]) -> list[NormalizedImage]:
    """
    Trimmed non-empty images ordered by supplied position (input index when
    absent) and reindexed to 0..n-1. Ties keep input order.
    """
    if not images:
        return []

    cleaned = []
    for index, image in enumerate(images):
        url = _trim(image.url)
        if not url:
            continue
        position = image.position
        if position is None or not math.isfinite(position):
            sort_key = float(index)
        else:
            sort_key = float(math.trunc(position))
        cleaned.append((sort_key, url))

    cleaned.sort(key=lambda item: item[0])
    return [NormalizedImage(url=url, position=index) for index, (_, url) in enumerate(cleaned)]


def resolve_optional_price(
    value: Optional[float],
    code: str = "unitCostInvalid",
) -> Optional[Decimal]:
    """Money amount as Decimal (2 places). None passes through; NaN, inf and negatives fail."""
    if value is None:
        return None
    if not math.isfinite(value) or value < 0:
        raise ValidationError(code, "Price must be a finite, non-negative number", value=str(value))
    return Decimal(str(value)).quantize(_CENTS)


def resolve_optional_integer(value: Optional[float]) -> Optional[int]:
    """Non-negative whole number. None passes through."""
    if value is None:
        return None
    if not math.isfinite(value) or value < 0 or value != math.trunc(value):
        raise ValidationError("invalidInput", "Expected a non-negative whole number", value=str(value))
    return int(value)


def resolve_base_cost(
    avg_cost_kgs: Optional[Decimal],
    purchase_price_kgs: Optional[Decimal],
) -> Optional[Decimal]:
    """Average cost wins over purchase price when both are supplied."""
    if avg_cost_kgs is not None:
        return avg_cost_kgs
    return purchase_price_kgs
