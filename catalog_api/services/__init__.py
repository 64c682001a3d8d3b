"""
Services module for business logic.

- domain/: catalog consistency services (products, barcodes, imports) - USE THESE
- audit: append-only audit log writer
- categories: category registry
- image_storage: image reference resolution
- plan_limits: tenant product quotas
- milestones: first-time tenant milestones

Usage:
    from catalog_api.services.domain import ProductService

    service = ProductService(db)
    product = service.create_product(data, actor)
"""
