"""Inventory statistics for an organization."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from geartracker.models import Equipment, EquipmentCategory
from geartracker.schemas.statistics import (
    UNCATEGORIZED,
    UNKNOWN_CONDITION,
    CategoryCount,
    ConditionCount,
    EquipmentStatistics,
)


def summarize(db: Session, organization_id: str) -> EquipmentStatistics:
    """Count and value totals plus breakdowns by condition and category.

    Null amounts count as zero. Equipment without a condition lands in the
    ``UNKNOWN`` bucket; a missing or unresolvable category is reported as
    ``Uncategorized``.
    """

    scoped = Equipment.organization_id == organization_id

    total, total_value, total_purchase_price = db.execute(
        select(
            func.count(Equipment.id),
            func.coalesce(func.sum(Equipment.current_value), 0),
            func.coalesce(func.sum(Equipment.purchase_price), 0),
        ).where(scoped)
    ).one()

    condition_rows = db.execute(
        select(Equipment.condition, func.count(Equipment.id))
        .where(scoped)
        .group_by(Equipment.condition)
        .order_by(func.count(Equipment.id).desc())
    ).all()

    category_rows = db.execute(
        select(Equipment.category_id, func.count(Equipment.id))
        .where(scoped)
        .group_by(Equipment.category_id)
        .order_by(func.count(Equipment.id).desc())
    ).all()

    category_ids = [category_id for category_id, _ in category_rows if category_id is not None]
    names: dict[str, str] = {}
    if category_ids:
        names = dict(
            db.execute(
                select(EquipmentCategory.id, EquipmentCategory.name).where(
                    EquipmentCategory.id.in_(category_ids),
                    EquipmentCategory.organization_id == organization_id,
                )
            ).all()
        )

    return EquipmentStatistics(
        total_equipment=total,
        total_value=float(total_value),
        total_purchase_price=float(total_purchase_price),
        by_condition=[
            ConditionCount(
                condition=condition.value if condition is not None else UNKNOWN_CONDITION,
                count=count,
            )
            for condition, count in condition_rows
        ],
        by_category=[
            CategoryCount(
                category_id=category_id,
                category_name=names.get(category_id, UNCATEGORIZED) if category_id else UNCATEGORIZED,
                count=count,
            )
            for category_id, count in category_rows
        ],
    )


__all__ = ["summarize"]
