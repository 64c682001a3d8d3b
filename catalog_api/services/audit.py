"""
Audit logging service.
Records every committed catalog mutation with before/after snapshots.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.orm import Session

from catalog_api.models import AuditLog


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def _dumps(value: Optional[dict]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=_json_default, ensure_ascii=False)


def write_audit_log(
    db: Session,
    *,
    organization_id: str,
    actor_id: Optional[str],
    action: str,
    entity: str,
    entity_id: str,
    before: Optional[dict] = None,
    after: Optional[dict] = None,
    request_id: Optional[str] = None,
) -> AuditLog:
    """
    Append an audit entry in the caller's transaction.

    Args:
        db: Database session (not committed here)
        organization_id: Tenant ID
        actor_id: User who made the change
        action: AuditAction value
        entity: AuditEntity value
        entity_id: ID of the entity
        before: Previous state (updates, archive, rollback)
        after: New state
        request_id: Correlation ID of the originating request

    Returns:
        Created AuditLog entry
    """
    changes = None
    if before and after:
        changes = {}
        for key in set(before.keys()) | set(after.keys()):
            old_val = before.get(key)
            new_val = after.get(key)
            if old_val != new_val:
                changes[key] = {"old": old_val, "new": new_val}

    audit_entry = AuditLog(
        organization_id=organization_id,
        actor_id=actor_id,
        request_id=request_id,
        entity=entity,
        entity_id=entity_id,
        action=action,
        before=_dumps(before),
        after=_dumps(after),
        changes=_dumps(changes) if changes else None,
    )

    db.add(audit_entry)
    # Don't commit here - let the caller handle the transaction
    return audit_entry


def serialize_model(obj: Any, exclude: list[str] | None = None) -> dict:
    """
    Serialize a SQLAlchemy model to a dictionary for audit logging.

    Args:
        obj: SQLAlchemy model instance
        exclude: Fields to exclude from serialization

    Returns:
        Dictionary representation of the model
    """
    if exclude is None:
        exclude = []

    result = {}
    for column in obj.__table__.columns:
        if column.name in exclude:
            continue
        value = getattr(obj, column.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = str(value)
        result[column.name] = value

    return result
