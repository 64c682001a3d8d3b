"""
Attribute Definition Model.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import JSON, Boolean, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, new_id


class AttributeDefinition(TimestampMixin, Base):
    """
    Organization-defined variant attribute.

    Read-only for the catalog services. ``options_ru``/``options_kg`` hold the
    localized option lists used by SELECT and MULTI_SELECT attributes.
    """

    __tablename__ = "attribute_definition"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    organization_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("organization.id"), nullable=False, index=True
    )
    key: Mapped[str] = mapped_column(String(128), nullable=False)
    label_ru: Mapped[Optional[str]] = mapped_column(Text)
    label_kg: Mapped[Optional[str]] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(32), nullable=False)  # AttributeType
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    options_ru: Mapped[Optional[list[str]]] = mapped_column(JSON)
    options_kg: Mapped[Optional[list[str]]] = mapped_column(JSON)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("organization_id", "key", name="uq_attribute_definition_org_key"),
    )
