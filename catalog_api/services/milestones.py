"""
Tenant milestone recorder ("first product created", "first import completed").

Fire-and-forget: runs in its own session after the caller committed, and
failures are logged, never raised to the caller.
"""

from typing import Any, Callable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from catalog_api.models import OrganizationEvent
from catalog_shared.config.logging import get_logger
from catalog_shared.infrastructure.db import SessionLocal

logger = get_logger(__name__)


def record_first_event(
    organization_id: str,
    actor_id: Optional[str],
    type: str,
    metadata: Optional[dict[str, Any]] = None,
    session_factory: Optional[Callable[[], Session]] = None,
) -> bool:
    """
    Record a milestone once per (organization, type).

    Returns True when this call recorded the event.
    """
    db = (session_factory or SessionLocal)()
    try:
        existing = db.scalar(
            select(OrganizationEvent.id).where(
                OrganizationEvent.organization_id == organization_id,
                OrganizationEvent.type == type,
            )
        )
        if existing is not None:
            return False

        db.add(
            OrganizationEvent(
                organization_id=organization_id,
                type=type,
                actor_id=actor_id,
                metadata_json=metadata or {},
            )
        )
        db.commit()
        logger.info("Milestone recorded", organization_id=organization_id, milestone=type)
        return True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Failed to record milestone",
            organization_id=organization_id,
            milestone=type,
            error=str(exc),
        )
        return False
    finally:
        db.close()
