from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, ValidationInfo, field_validator

from geartracker.models.equipment import EquipmentCondition
from geartracker.schemas.category import CategoryRead
from geartracker.schemas.common import APIModel


def _strip_optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip()


class EquipmentFields(APIModel):
    category_id: UUID | None = None
    brand: str | None = Field(default=None, max_length=255)
    model: str | None = Field(default=None, max_length=255)
    serial_number: str | None = Field(default=None, max_length=255)
    purchase_date: date | None = None
    purchase_price: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    current_value: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    condition: EquipmentCondition | None = None
    notes: str | None = None
    location: str | None = Field(default=None, max_length=255)
    assigned_to_id: UUID | None = None

    @field_validator("brand", "model", "serial_number", "location")
    @classmethod
    def _trim(cls, value: str | None) -> str | None:
        return _strip_optional(value)


class EquipmentCreate(EquipmentFields):
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=100)

    @field_validator("name", "type")
    @classmethod
    def _require_text(cls, value: str, info: ValidationInfo) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(f"Equipment {info.field_name} is required")
        return cleaned


class EquipmentUpdate(EquipmentFields):
    """Partial update: only fields present in the request body are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    type: str | None = Field(default=None, min_length=1, max_length=100)

    @field_validator("name", "type")
    @classmethod
    def _reject_blank(cls, value: str | None, info: ValidationInfo) -> str:
        if value is None:
            raise ValueError(f"Equipment {info.field_name} cannot be null")
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(f"Equipment {info.field_name} cannot be blank")
        return cleaned


class UserSummary(APIModel):
    id: str
    name: str
    email: str


class PhotoRead(APIModel):
    id: str
    equipment_id: str
    photo_url: str
    is_primary: bool
    position: int
    created_at: datetime


class MaintenanceScheduleRead(APIModel):
    id: str
    title: str
    description: str | None = None
    interval_days: int | None = None
    next_due: date | None = None
    created_at: datetime


class MaintenanceLogRead(APIModel):
    id: str
    description: str
    performed_date: date
    cost: float | None = None
    performed_by: UserSummary | None = None
    created_at: datetime


class EventSummary(APIModel):
    id: str
    name: str
    venue: str | None = None
    start_date: date
    end_date: date | None = None


class EventUsageRead(APIModel):
    id: str
    event: EventSummary
    checked_out: datetime
    checked_in: datetime | None = None
    checked_out_by: UserSummary | None = None
    checked_in_by: UserSummary | None = None
    notes: str | None = None


class EquipmentRead(APIModel):
    id: str
    organization_id: str
    name: str
    type: str
    category_id: str | None = None
    brand: str | None = None
    model: str | None = None
    serial_number: str | None = None
    purchase_date: date | None = None
    purchase_price: float | None = None
    current_value: float | None = None
    condition: EquipmentCondition | None = None
    notes: str | None = None
    location: str | None = None
    assigned_to_id: str | None = None
    created_at: datetime
    updated_at: datetime


class EquipmentListItem(EquipmentRead):
    category: CategoryRead | None = None
    assigned_to: UserSummary | None = None
    primary_photo: PhotoRead | None = None
    next_maintenance: MaintenanceScheduleRead | None = None


class EquipmentDetail(EquipmentRead):
    category: CategoryRead | None = None
    assigned_to: UserSummary | None = None
    photos: list[PhotoRead] = []
    maintenance_schedules: list[MaintenanceScheduleRead] = []
    maintenance_logs: list[MaintenanceLogRead] = []
    event_equipment: list[EventUsageRead] = []


class EquipmentPage(APIModel):
    items: list[EquipmentListItem]
    total: int
    page: int
    limit: int
    total_pages: int


class QrReference(APIModel):
    qr_code: str
    equipment_id: str
    equipment_name: str
    url: str


__all__ = [
    "EquipmentCreate",
    "EquipmentDetail",
    "EquipmentListItem",
    "EquipmentPage",
    "EquipmentRead",
    "EquipmentUpdate",
    "EventSummary",
    "EventUsageRead",
    "MaintenanceLogRead",
    "MaintenanceScheduleRead",
    "PhotoRead",
    "QrReference",
    "UserSummary",
]
