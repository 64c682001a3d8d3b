"""
Domain Services - catalog business logic.

Structure:
    Router (thin controller)
        ↓
    Service (business logic)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)

Usage:
    from catalog_api.services.domain import ProductService

    # In router
    service = ProductService(db)
    product = service.create_product(data, actor)
"""

from .integrity import IntegrityGuard
from .attributes import AttributeSchema
from .barcodes import BarcodeService, generate_unique_barcode_value
from .product_service import ProductService, resolve_duplicate_sku
from .import_service import ImportService

__all__ = [
    # Guards and validators
    "IntegrityGuard",
    "AttributeSchema",
    # Services
    "BarcodeService",
    "ProductService",
    "ImportService",
    # Helpers
    "generate_unique_barcode_value",
    "resolve_duplicate_sku",
]
