from __future__ import annotations

import logging

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geartracker.core.errors import ConflictError, InvalidInputError
from geartracker.models import EquipmentCategory, User
from geartracker.schemas import CategoryRead
from geartracker.services.audit import record_audit

logger = logging.getLogger("geartracker.categories")

DUPLICATE_CATEGORY_MESSAGE = "A category with this name already exists"


def _find_category(db: Session, organization_id: str, category_id: str) -> EquipmentCategory | None:
    return (
        db.execute(
            select(EquipmentCategory).where(
                EquipmentCategory.id == category_id,
                EquipmentCategory.organization_id == organization_id,
            )
        )
        .scalars()
        .first()
    )


def list_categories(db: Session, organization_id: str) -> list[CategoryRead]:
    rows = db.execute(
        select(EquipmentCategory)
        .where(EquipmentCategory.organization_id == organization_id)
        .order_by(EquipmentCategory.name.asc(), EquipmentCategory.id)
    ).scalars()
    return [CategoryRead.model_validate(category) for category in rows]


def create_category(
    db: Session,
    organization_id: str,
    name: str,
    parent_category_id: str | None = None,
    *,
    actor: User | None = None,
    request: Request | None = None,
) -> CategoryRead:
    existing = (
        db.execute(
            select(EquipmentCategory.id).where(
                EquipmentCategory.organization_id == organization_id,
                EquipmentCategory.name == name,
            )
        )
        .scalars()
        .first()
    )
    if existing is not None:
        raise ConflictError(DUPLICATE_CATEGORY_MESSAGE)

    if parent_category_id is not None and _find_category(db, organization_id, parent_category_id) is None:
        raise InvalidInputError("Parent category not found")

    category = EquipmentCategory(
        organization_id=organization_id,
        name=name,
        parent_category_id=parent_category_id,
    )
    db.add(category)
    try:
        db.flush()
    except IntegrityError as exc:
        # A concurrent request inserted the same name after our lookup.
        db.rollback()
        raise ConflictError(DUPLICATE_CATEGORY_MESSAGE) from exc

    record_audit(
        db,
        organization_id=organization_id,
        actor=actor,
        action="category.create",
        entity_type="equipment_category",
        entity_id=category.id,
        details={"after": {"name": name, "parent_category_id": parent_category_id}},
        request=request,
    )
    db.commit()
    db.refresh(category)
    logger.info("Category created", extra={"category_id": category.id})
    return CategoryRead.model_validate(category)


__all__ = [
    "DUPLICATE_CATEGORY_MESSAGE",
    "create_category",
    "list_categories",
]
