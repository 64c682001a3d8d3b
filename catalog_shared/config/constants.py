"""
Centralized constants for the catalog backend.
Avoids magic strings repeated across services.

Usage:
    from catalog_shared.config.constants import AuditAction, VariantKey

    write_audit_log(db, action=AuditAction.PRODUCT_CREATE, ...)
"""

from enum import Enum
from typing import Final


# =============================================================================
# Inventory keys
# =============================================================================


class VariantKey:
    """Variant key used by product-level (non-variant) cost and stock rows."""

    BASE: Final[str] = "BASE"


# =============================================================================
# Audit
# =============================================================================


class AuditAction:
    """Audit log action names."""

    PRODUCT_CREATE: Final[str] = "PRODUCT_CREATE"
    PRODUCT_UPDATE: Final[str] = "PRODUCT_UPDATE"
    PRODUCT_ARCHIVE: Final[str] = "PRODUCT_ARCHIVE"
    PRODUCT_RESTORE: Final[str] = "PRODUCT_RESTORE"
    IMPORT_ROLLBACK: Final[str] = "IMPORT_ROLLBACK"


class AuditEntity:
    """Audit log entity names."""

    PRODUCT: Final[str] = "Product"
    IMPORT_BATCH: Final[str] = "ImportBatch"


# =============================================================================
# Milestones
# =============================================================================


class MilestoneType:
    """First-time tenant milestones."""

    FIRST_PRODUCT_CREATED: Final[str] = "first_product_created"
    FIRST_IMPORT_COMPLETED: Final[str] = "first_import_completed"


# =============================================================================
# Enums
# =============================================================================


class BarcodeMode(str, Enum):
    """Symbology used when generating a new barcode value."""

    EAN13 = "EAN13"
    CODE128 = "CODE128"


class AttributeType(str, Enum):
    """Type of an organization-defined variant attribute."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    SELECT = "SELECT"
    MULTI_SELECT = "MULTI_SELECT"


class ImportMode(str, Enum):
    """Bulk import mode."""

    FULL = "full"
    UPDATE_SELECTED = "update_selected"


class ImportField(str, Enum):
    """Row fields that can be named in an update mask."""

    NAME = "name"
    UNIT = "unit"
    CATEGORY = "category"
    DESCRIPTION = "description"
    PHOTO_URL = "photoUrl"
    BARCODES = "barcodes"
    BASE_PRICE_KGS = "basePriceKgs"
    PURCHASE_PRICE_KGS = "purchasePriceKgs"
    AVG_COST_KGS = "avgCostKgs"
    MIN_STOCK = "minStock"


class ImportAction:
    """Per-row import outcome."""

    CREATED: Final[str] = "created"
    UPDATED: Final[str] = "updated"
    SKIPPED: Final[str] = "skipped"


class ImportedEntityType:
    """Entity types tracked per import batch for rollback."""

    PRODUCT: Final[str] = "Product"
    PRODUCT_BARCODE: Final[str] = "ProductBarcode"
    REORDER_POLICY: Final[str] = "ReorderPolicy"


class ProductTypeFilter(str, Enum):
    """Product type filter for bulk operations."""

    ALL = "all"
    PRODUCT = "product"
    BUNDLE = "bundle"


class BundleSyncMode(str, Enum):
    """How bundle components are written."""

    REPLACE = "replace"
    CREATE_ONLY = "create-only"


class PlanTier(str, Enum):
    """Organization plan tiers."""

    STARTER = "STARTER"
    BUSINESS = "BUSINESS"
    ENTERPRISE = "ENTERPRISE"


# =============================================================================
# Limits
# =============================================================================


class Limits:
    """Numeric limits for catalog operations."""

    # Products allowed per plan tier
    PLAN_MAX_PRODUCTS: Final[dict[str, int]] = {
        PlanTier.STARTER.value: 1_000,
        PlanTier.BUSINESS.value: 50_000,
        PlanTier.ENTERPRISE.value: 200_000,
    }

    # Reorder policy defaults for policies created by import
    REORDER_LEAD_TIME_DAYS: Final[int] = 7
    REORDER_REVIEW_PERIOD_DAYS: Final[int] = 7
    REORDER_SAFETY_STOCK_DAYS: Final[int] = 3
    REORDER_MIN_ORDER_QTY: Final[int] = 0

    # Pagination
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 500

    MAX_SEARCH_TERM_LENGTH: Final[int] = 100
