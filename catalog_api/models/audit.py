"""
Audit Log Model.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, new_id


class AuditLog(TimestampMixin, Base):
    """
    Append-only record of catalog mutations.
    Stores who did what, when, and the before/after state.
    """

    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )

    # Who made the change
    actor_id: Mapped[Optional[str]] = mapped_column(String(36), index=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(64))

    # What was changed
    entity: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[str] = mapped_column(Text, nullable=False)

    # Change details (JSON)
    before: Mapped[Optional[str]] = mapped_column(Text)
    after: Mapped[Optional[str]] = mapped_column(Text)
    changes: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_audit_log_org_entity", "organization_id", "entity"),
        Index("ix_audit_log_org_entity_id", "organization_id", "entity_id"),
    )
