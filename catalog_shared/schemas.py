"""
Shared Pydantic schemas used across the application.

Inputs are validated for shape only; business rules (trimming, duplicate
detection, positivity, tenant ownership) live in the domain services so that
HTTP callers and in-process callers get the same typed errors.
"""

from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from catalog_shared.config.constants import (
    BarcodeMode,
    ImportField,
    ImportMode,
    ProductTypeFilter,
)


# =============================================================================
# Common Types
# =============================================================================

ImportRowAction = Literal["created", "updated", "skipped"]


class ActorContext(BaseModel):
    """Who is calling: tenant, user and request correlation id."""

    organization_id: str
    actor_id: Optional[str] = None
    actor_email: Optional[str] = None
    request_id: Optional[str] = None


# =============================================================================
# Product Inputs
# =============================================================================


class ProductPackInput(BaseModel):
    pack_name: str = ""
    pack_barcode: Optional[str] = None
    multiplier_to_base: float
    allow_in_purchasing: Optional[bool] = None
    allow_in_receiving: Optional[bool] = None


class ProductImageInput(BaseModel):
    url: str
    position: Optional[float] = None


class ProductVariantInput(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    sku: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)


class BundleComponentInput(BaseModel):
    component_product_id: str
    component_variant_id: Optional[str] = None
    qty: float


class ProductCreate(BaseModel):
    """Create request. ``images`` and ``photo_url`` are resolved through the image resolver."""

    sku: str
    name: str
    category: Optional[str] = None
    base_unit_id: str
    base_price_kgs: Optional[float] = None
    purchase_price_kgs: Optional[float] = None
    avg_cost_kgs: Optional[float] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    images: Optional[list[ProductImageInput]] = None
    supplier_id: Optional[str] = None
    barcodes: list[str] = Field(default_factory=list)
    packs: list[ProductPackInput] = Field(default_factory=list)
    variants: list[ProductVariantInput] = Field(default_factory=list)
    is_bundle: bool = False
    bundle_components: list[BundleComponentInput] = Field(default_factory=list)


class ProductUpdate(BaseModel):
    """
    Update request.

    Omitted collections (``None``) are left untouched: packs, images, variants
    and bundle components are only replaced when supplied. Barcodes are always
    replaced. ``is_bundle=None`` keeps the current flag.
    """

    sku: str
    name: str
    category: Optional[str] = None
    base_unit_id: str
    base_price_kgs: Optional[float] = None
    purchase_price_kgs: Optional[float] = None
    avg_cost_kgs: Optional[float] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    images: Optional[list[ProductImageInput]] = None
    supplier_id: Optional[str] = None
    barcodes: list[str] = Field(default_factory=list)
    packs: Optional[list[ProductPackInput]] = None
    variants: Optional[list[ProductVariantInput]] = None
    is_bundle: Optional[bool] = None
    bundle_components: Optional[list[BundleComponentInput]] = None


class DuplicateProductRequest(BaseModel):
    sku: Optional[str] = None


class GenerateBarcodeRequest(BaseModel):
    mode: BarcodeMode = BarcodeMode.EAN13
    force: bool = False


class BulkBarcodeFilter(BaseModel):
    product_ids: list[str] = Field(default_factory=list)
    search: Optional[str] = None
    category: Optional[str] = None
    type: ProductTypeFilter = ProductTypeFilter.ALL
    include_archived: bool = False
    store_id: Optional[str] = None
    limit: Optional[int] = None


class BulkGenerateBarcodesRequest(BaseModel):
    mode: BarcodeMode = BarcodeMode.EAN13
    filter: BulkBarcodeFilter = Field(default_factory=BulkBarcodeFilter)


class BulkCategoryRequest(BaseModel):
    product_ids: list[str]
    category: Optional[str] = None


# =============================================================================
# Product Outputs
# =============================================================================


class ProductPackOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    pack_name: str
    pack_barcode: Optional[str] = None
    multiplier_to_base: int
    allow_in_purchasing: bool
    allow_in_receiving: bool


class ProductImageOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    url: str
    position: int


class ProductVariantOutput(BaseModel):
    id: str
    name: Optional[str] = None
    sku: Optional[str] = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    attribute_values: dict[str, Any] = Field(default_factory=dict)


class BundleComponentOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    component_product_id: str
    component_variant_id: Optional[str] = None
    qty: int


class ProductOutput(BaseModel):
    """Product as read back: owned rows in their normalized, persisted form."""

    id: str
    organization_id: str
    sku: str
    name: str
    category: Optional[str] = None
    unit: str
    base_unit_id: str
    base_price_kgs: Optional[Decimal] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    supplier_id: Optional[str] = None
    is_bundle: bool
    is_deleted: bool
    barcodes: list[str] = Field(default_factory=list)
    packs: list[ProductPackOutput] = Field(default_factory=list)
    images: list[ProductImageOutput] = Field(default_factory=list)
    variants: list[ProductVariantOutput] = Field(default_factory=list)
    bundle_components: list[BundleComponentOutput] = Field(default_factory=list)


class DuplicateProductResult(BaseModel):
    product_id: str
    sku: str
    copied_barcodes: bool = False


class GeneratedBarcodeResult(BaseModel):
    product_id: str
    value: str
    mode: BarcodeMode
    barcodes: list[str]


class BulkBarcodeResult(BaseModel):
    scanned_count: int
    generated_count: int
    skipped_count: int
    updated_product_ids: list[str]


class BulkCategoryResult(BaseModel):
    updated: int


# =============================================================================
# Import Schemas
# =============================================================================


class ImportProductRow(BaseModel):
    """
    One spreadsheet row keyed by SKU.

    Numeric fields stay floats so malformed values (negative, fractional
    quantities, NaN) reach the import engine and fail the batch with a typed
    error instead of a schema error.
    """

    sku: str
    name: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    barcodes: Optional[list[str]] = None
    base_price_kgs: Optional[float] = None
    purchase_price_kgs: Optional[float] = None
    avg_cost_kgs: Optional[float] = None
    min_stock: Optional[float] = None


class ImportProductsRequest(BaseModel):
    rows: list[ImportProductRow]
    mode: ImportMode = ImportMode.FULL
    update_mask: list[ImportField] = Field(default_factory=list)
    store_id: Optional[str] = None
    source: Optional[str] = None


class ImportRowResult(BaseModel):
    sku: str
    action: ImportRowAction


class ImportPhotoSummary(BaseModel):
    downloaded: int = 0
    fallback: int = 0
    missing: int = 0


class ImportRunResult(BaseModel):
    batch_id: str
    results: list[ImportRowResult]
    summary: dict[str, Any]


class ImportBatchOutput(BaseModel):
    id: str
    type: str
    created_by_id: Optional[str] = None
    summary: Optional[dict[str, Any]] = None
    rolled_back_at: Optional[str] = None
    entity_count: int = 0


class ImportEntityCount(BaseModel):
    entity_type: str
    count: int


class ImportBatchDetail(BaseModel):
    batch: ImportBatchOutput
    counts: list[ImportEntityCount]


class ImportRollbackResult(BaseModel):
    batch_id: str
    summary: dict[str, int]
