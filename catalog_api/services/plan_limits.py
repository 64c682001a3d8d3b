"""
Plan-limit checks for tenant product quotas.
"""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from catalog_api.models import Organization, Product
from catalog_shared.config.constants import Limits, PlanTier
from catalog_shared.utils.exceptions import ConflictError, NotFoundError


def _product_cap(organization: Organization) -> int:
    if organization.max_products is not None:
        return organization.max_products
    return Limits.PLAN_MAX_PRODUCTS.get(
        organization.plan, Limits.PLAN_MAX_PRODUCTS[PlanTier.STARTER.value]
    )


def _active_product_count(db: Session, organization_id: str) -> int:
    return db.scalar(
        select(func.count())
        .select_from(Product)
        .where(
            Product.organization_id == organization_id,
            Product.is_deleted.is_(False),
        )
    ) or 0


def assert_capacity(
    db: Session,
    organization_id: str,
    kind: str = "products",
    add: int = 1,
) -> None:
    """
    Raise planLimitProducts (409) when adding ``add`` products would exceed the cap.
    """
    if kind != "products":
        raise ValueError(f"Unsupported limit kind: {kind}")
    if add <= 0:
        return

    organization = db.get(Organization, organization_id)
    if organization is None:
        raise NotFoundError("Organization", organization_id, code="organizationNotFound")

    cap = _product_cap(organization)
    current = _active_product_count(db, organization_id)
    if current + add > cap:
        raise ConflictError(
            "planLimitProducts",
            f"Plan allows {cap} products",
            organization_id=organization_id,
            current=current,
            requested=add,
        )


def assert_within_limits(db: Session, organization_id: str, kind: str = "products") -> None:
    """Raise planLimitProducts (409) when the tenant already reached its cap."""
    assert_capacity(db, organization_id, kind=kind, add=1)
