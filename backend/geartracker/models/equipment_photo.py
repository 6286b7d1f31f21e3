"""Equipment photo ORM model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geartracker.core.db import Base

if TYPE_CHECKING:  # pragma: no cover
    from .equipment import Equipment


class EquipmentPhoto(Base):
    """An uploaded image of an equipment item.

    ``position`` grows with every upload for the same equipment and is the
    creation order used when a new primary photo has to be picked.
    """

    __tablename__ = "equipment_photos"
    __table_args__ = (
        Index("ix_equipment_photos_equipment_position", "equipment_id", "position", unique=True),
        # At most one primary photo per equipment.
        Index(
            "ix_equipment_photos_one_primary",
            "equipment_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    equipment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        nullable=False,
    )
    storage_key: Mapped[str] = mapped_column(String(512), unique=True, nullable=False)
    photo_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    equipment: Mapped["Equipment"] = relationship("Equipment", back_populates="photos")


__all__ = ["EquipmentPhoto"]
