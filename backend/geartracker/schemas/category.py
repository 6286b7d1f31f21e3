from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from geartracker.schemas.common import APIModel


class CategoryCreate(APIModel):
    name: str = Field(min_length=1, max_length=255)
    parent_category_id: UUID | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Category name is required")
        return cleaned


class CategoryRead(APIModel):
    id: str
    organization_id: str
    name: str
    parent_category_id: str | None = None
    created_at: datetime


__all__ = ["CategoryCreate", "CategoryRead"]
