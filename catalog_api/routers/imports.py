"""
Product import endpoints.

Thin router that delegates to ImportService.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from catalog_api.routers._common import current_actor
from catalog_api.services.domain import ImportService
from catalog_shared.config.constants import Limits
from catalog_shared.infrastructure.db import get_db
from catalog_shared.schemas import (
    ActorContext,
    ImportBatchDetail,
    ImportBatchOutput,
    ImportProductsRequest,
    ImportRollbackResult,
    ImportRunResult,
)


router = APIRouter(prefix="/api/catalog/imports", tags=["imports"])


@router.post("", response_model=ImportRunResult, status_code=status.HTTP_201_CREATED)
def run_product_import(
    body: ImportProductsRequest,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ImportRunResult:
    """
    Import product rows as one batch.

    Any invalid row rejects the whole import; nothing is written.
    """
    return ImportService(db).run_product_import(body, actor)


@router.get("", response_model=list[ImportBatchOutput])
def list_import_batches(
    limit: int = Query(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> list[ImportBatchOutput]:
    return ImportService(db).list_import_batches(actor.organization_id, limit=limit)


@router.get("/{batch_id}", response_model=ImportBatchDetail)
def get_import_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ImportBatchDetail:
    return ImportService(db).get_import_batch(batch_id, actor.organization_id)


@router.post("/{batch_id}/rollback", response_model=ImportRollbackResult)
def rollback_import_batch(
    batch_id: str,
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(current_actor),
) -> ImportRollbackResult:
    """Archive products and remove barcodes and reorder policies the batch created."""
    return ImportService(db).rollback_import_batch(batch_id, actor)
