"""
Organization Event Model: first-time tenant milestones.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, new_id


class OrganizationEvent(TimestampMixin, Base):
    """Recorded once per (organization, type)."""

    __tablename__ = "organization_event"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_id: Mapped[Optional[str]] = mapped_column(String(36))
    metadata_json: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON)

    __table_args__ = (
        UniqueConstraint("organization_id", "type", name="uq_organization_event_type"),
    )
