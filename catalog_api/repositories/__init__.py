"""
Repository Pattern implementation.
Centralizes tenant-scoped data access with guaranteed eager loading.

Usage:
    from catalog_api.repositories import ProductFilters, ProductRepository

    repo = ProductRepository(db)
    product = repo.find_by_id(product_id, organization_id)
    products = repo.find_for_barcode_generation(organization_id, ProductFilters(category="Drinks"))
"""

from .base import BaseRepository, RepositoryFilters
from .product import ProductFilters, ProductRepository

__all__ = [
    # Base
    "BaseRepository",
    "RepositoryFilters",
    # Product
    "ProductRepository",
    "ProductFilters",
]
