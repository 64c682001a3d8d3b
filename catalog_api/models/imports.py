"""
Import Models: ImportBatch and the entities each batch created.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, new_id


class ImportBatch(TimestampMixin, Base):
    """One executed product import. Rolled back at most once."""

    __tablename__ = "import_batch"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(String(32), nullable=False, default="products")
    source: Mapped[Optional[str]] = mapped_column(Text)
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    summary: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)
    rolled_back_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    rolled_back_by_id: Mapped[Optional[str]] = mapped_column(String(36))
    rollback_summary: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)


class ImportedEntity(TimestampMixin, Base):
    """A row created by an import batch, undone by its rollback."""

    __tablename__ = "imported_entity"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    batch_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("import_batch.id"), nullable=False, index=True
    )
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(36), nullable=False)

    __table_args__ = (
        Index("ix_imported_entity_batch_type", "batch_id", "entity_type"),
    )
