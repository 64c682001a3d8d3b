"""
Product endpoints.

Thin router that delegates to ProductService and BarcodeService.
All business logic is in catalog_api/services/domain/.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from catalog_api.routers._common import current_actor
from catalog_api.services.domain import BarcodeService, ProductService
from catalog_shared.infrastructure.db import get_db
from catalog_shared.schemas import (
    ActorContext,
    BulkBarcodeResult,
    BulkCategoryRequest,
    BulkCategoryResult,
    BulkGenerateBarcodesRequest,
    DuplicateProductRequest,
    DuplicateProductResult,
    GenerateBarcodeRequest,
    GeneratedBarcodeResult,
    ProductCreate,
    ProductOutput,
    ProductUpdate,
)


router = APIRouter(prefix="/api/catalog", tags=["products"])


def _get_service(db: Session) -> ProductService:
    """Get ProductService instance."""
    return ProductService(db)


@router.post("/products", response_model=ProductOutput, status_code=status.HTTP_201_CREATED)
def create_product(
    body: ProductCreate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ProductOutput:
    """Create a product with its packs, barcodes, images, variants and bundle components."""
    return _get_service(db).create_product(body, actor)


@router.get("/products/{product_id}", response_model=ProductOutput)
def get_product(
    product_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ProductOutput:
    return _get_service(db).get_product(product_id, actor.organization_id)


@router.put("/products/{product_id}", response_model=ProductOutput)
def update_product(
    product_id: str,
    body: ProductUpdate,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ProductOutput:
    """
    Update a product.

    Barcodes are always replaced. Packs, images, variants and bundle
    components are replaced only when present in the body.
    """
    return _get_service(db).update_product(product_id, body, actor)


@router.post(
    "/products/{product_id}/duplicate",
    response_model=DuplicateProductResult,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_product(
    product_id: str,
    body: Optional[DuplicateProductRequest] = None,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> DuplicateProductResult:
    """Copy a product. Without a SKU in the body the copy gets "<sku>-COPY[-n]"."""
    return _get_service(db).duplicate_product(
        product_id, actor, sku=body.sku if body else None
    )


@router.post("/products/{product_id}/archive", response_model=ProductOutput)
def archive_product(
    product_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ProductOutput:
    return _get_service(db).archive_product(product_id, actor)


@router.post("/products/{product_id}/restore", response_model=ProductOutput)
def restore_product(
    product_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ProductOutput:
    return _get_service(db).restore_product(product_id, actor)


@router.post("/products/{product_id}/barcode", response_model=GeneratedBarcodeResult)
def generate_product_barcode(
    product_id: str,
    body: GenerateBarcodeRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> GeneratedBarcodeResult:
    """Generate a unique barcode. With force, existing barcodes are replaced."""
    return BarcodeService(db).generate_product_barcode(
        product_id, body.mode, actor, force=body.force
    )


@router.post("/products/barcodes/bulk", response_model=BulkBarcodeResult)
def bulk_generate_product_barcodes(
    body: BulkGenerateBarcodesRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> BulkBarcodeResult:
    """Generate barcodes for filtered products that have none."""
    return BarcodeService(db).bulk_generate_product_barcodes(body.mode, actor, body.filter)


@router.post("/products/category/bulk", response_model=BulkCategoryResult)
def bulk_update_product_category(
    body: BulkCategoryRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> BulkCategoryResult:
    return _get_service(db).bulk_update_product_category(body.product_ids, body.category, actor)
