"""
SQLAlchemy ORM Models Package.

All models are organized into domain-specific modules:
- base: Base class, TimestampMixin, new_id
- tenant: Organization, Store, Unit, Supplier
- catalog: Product, ProductBarcode, ProductPack, ProductImage, ProductVariant,
  VariantAttributeValue, ProductBundleComponent, ProductCategory
- attribute: AttributeDefinition
- inventory: InventorySnapshot, StockMovement, PurchaseOrderLine, ProductCost, ReorderPolicy
- audit: AuditLog
- imports: ImportBatch, ImportedEntity
- milestone: OrganizationEvent
"""

# Base classes
from .base import Base, TimestampMixin, new_id

# Tenant and reference data
from .tenant import Organization, Store, Unit, Supplier

# Catalog
from .catalog import (
    Product,
    ProductBarcode,
    ProductPack,
    ProductImage,
    ProductVariant,
    VariantAttributeValue,
    ProductBundleComponent,
    ProductCategory,
)

# Attribute schema
from .attribute import AttributeDefinition

# Inventory (read by guards, base rows written by catalog services)
from .inventory import (
    InventorySnapshot,
    StockMovement,
    PurchaseOrderLine,
    ProductCost,
    ReorderPolicy,
)

# Audit
from .audit import AuditLog

# Imports
from .imports import ImportBatch, ImportedEntity

# Milestones
from .milestone import OrganizationEvent

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "new_id",
    # Tenant
    "Organization",
    "Store",
    "Unit",
    "Supplier",
    # Catalog
    "Product",
    "ProductBarcode",
    "ProductPack",
    "ProductImage",
    "ProductVariant",
    "VariantAttributeValue",
    "ProductBundleComponent",
    "ProductCategory",
    # Attribute
    "AttributeDefinition",
    # Inventory
    "InventorySnapshot",
    "StockMovement",
    "PurchaseOrderLine",
    "ProductCost",
    "ReorderPolicy",
    # Audit
    "AuditLog",
    # Imports
    "ImportBatch",
    "ImportedEntity",
    # Milestones
    "OrganizationEvent",
]
