"""
Organization-level product category registry.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from catalog_api.models import ProductCategory


def ensure_product_category(
    db: Session,
    organization_id: str,
    name: Optional[str],
) -> Optional[ProductCategory]:
    """
    Register an already normalized category name if it is not registered yet.

    Idempotent within one transaction (the new row is flushed). A concurrent
    registration of the same name fails the caller's commit on the unique
    constraint. Returns None for empty names.
    """
    if not name:
        return None

    existing = db.scalar(
        select(ProductCategory).where(
            ProductCategory.organization_id == organization_id,
            ProductCategory.name == name,
        )
    )
    if existing is not None:
        return existing

    category = ProductCategory(organization_id=organization_id, name=name)
    db.add(category)
    db.flush()
    return category
