from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Date, DateTime, Enum as SQLEnum, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geartracker.core.db import Base
from geartracker.models.category import EquipmentCategory
from geartracker.models.user import User

if TYPE_CHECKING:  # pragma: no cover
    from .equipment_photo import EquipmentPhoto
    from .event import EventEquipment
    from .maintenance import MaintenanceLog, MaintenanceSchedule


class EquipmentCondition(str, Enum):
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class Equipment(Base):
    __tablename__ = "equipment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(100), nullable=False)
    category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("equipment_categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(255), nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    purchase_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    current_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    condition: Mapped[EquipmentCondition | None] = mapped_column(
        SQLEnum(
            EquipmentCondition,
            name="equipment_condition",
            values_callable=lambda members: [member.value for member in members],
            validate_strings=True,
        ),
        nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    assigned_to_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    category: Mapped[EquipmentCategory | None] = relationship(EquipmentCategory)
    assigned_to: Mapped[User | None] = relationship(User)

    # Child rows are removed by ON DELETE CASCADE; the ORM does not load them first.
    photos: Mapped[list["EquipmentPhoto"]] = relationship(
        "EquipmentPhoto",
        back_populates="equipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="EquipmentPhoto.position",
    )
    maintenance_schedules: Mapped[list["MaintenanceSchedule"]] = relationship(
        "MaintenanceSchedule",
        back_populates="equipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    maintenance_logs: Mapped[list["MaintenanceLog"]] = relationship(
        "MaintenanceLog",
        back_populates="equipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    event_usages: Mapped[list["EventEquipment"]] = relationship(
        "EventEquipment",
        back_populates="equipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


Index("ix_equipment_org_name", Equipment.organization_id, Equipment.name)
Index("ix_equipment_org_category", Equipment.organization_id, Equipment.category_id)


__all__ = ["Equipment", "EquipmentCondition"]
