from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geartracker.core.db import Base


class EquipmentCategory(Base):
    """Organization-scoped classification, optionally nested under a parent."""

    __tablename__ = "equipment_categories"
    __table_args__ = (
        UniqueConstraint("organization_id", "name", name="uq_equipment_categories_org_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("equipment_categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    parent: Mapped["EquipmentCategory | None"] = relationship(
        "EquipmentCategory", remote_side="EquipmentCategory.id"
    )


__all__ = ["EquipmentCategory"]
