"""
API routers.

- products: product mutations, barcodes, bulk category
- imports: bulk import batches and rollback

All routes are prefixed with /api/catalog
"""

from .products import router as products_router
from .imports import router as imports_router

__all__ = ["products_router", "imports_router"]
