from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import uuid4

from sqlalchemy import Date, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from geartracker.core.db import Base
from geartracker.models.user import User

if TYPE_CHECKING:  # pragma: no cover
    from .equipment import Equipment


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    venue: Mapped[str | None] = mapped_column(String(255), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class EventEquipment(Base):
    """Check-out/check-in record of an equipment item for an event."""

    __tablename__ = "event_equipment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    event_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    equipment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("equipment.id", ondelete="CASCADE"), nullable=False, index=True
    )
    checked_out: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    checked_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    checked_out_by_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    checked_in_by_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    event: Mapped[Event] = relationship(Event)
    equipment: Mapped["Equipment"] = relationship("Equipment", back_populates="event_usages")
    checked_out_by: Mapped[User | None] = relationship(User, foreign_keys=[checked_out_by_id])
    checked_in_by: Mapped[User | None] = relationship(User, foreign_keys=[checked_in_by_id])


__all__ = ["Event", "EventEquipment"]
