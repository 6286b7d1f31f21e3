from __future__ import annotations

from geartracker.schemas.common import APIModel

UNKNOWN_CONDITION = "UNKNOWN"
UNCATEGORIZED = "Uncategorized"


class ConditionCount(APIModel):
    condition: str
    count: int


class CategoryCount(APIModel):
    category_id: str | None
    category_name: str
    count: int


class EquipmentStatistics(APIModel):
    total_equipment: int = 0
    total_value: float = 0
    total_purchase_price: float = 0
    by_condition: list[ConditionCount] = []
    by_category: list[CategoryCount] = []


__all__ = [
    "CategoryCount",
    "ConditionCount",
    "EquipmentStatistics",
    "UNCATEGORIZED",
    "UNKNOWN_CONDITION",
]
