"""Organization-scoped equipment operations.

Every lookup filters by organization in the same query that checks
existence, so an id owned by another tenant and an id that does not exist
both surface as ``NotFoundError``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from geartracker.core.config import get_settings
from geartracker.core.errors import InvalidInputError, NotFoundError, UpstreamFailureError
from geartracker.models import (
    Equipment,
    EquipmentCategory,
    EquipmentCondition,
    EquipmentPhoto,
    EventEquipment,
    MaintenanceLog,
    MaintenanceSchedule,
    User,
)
from geartracker.schemas import (
    CategoryRead,
    EquipmentCreate,
    EquipmentDetail,
    EquipmentListItem,
    EquipmentPage,
    EquipmentRead,
    EquipmentUpdate,
    PhotoRead,
    QrReference,
)
from geartracker.schemas.equipment import (
    EventUsageRead,
    MaintenanceLogRead,
    MaintenanceScheduleRead,
    UserSummary,
)
from geartracker.services import qr, storage
from geartracker.services.audit import record_audit

logger = logging.getLogger("geartracker.equipment")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
RECENT_EVENT_USAGE_LIMIT = 5
PHOTO_SLOT_ATTEMPTS = 3
VALID_SORT_ORDERS = {"asc", "desc"}

_SORT_COLUMNS: dict[str, Any] = {
    "name": Equipment.name,
    "type": Equipment.type,
    "brand": Equipment.brand,
    "model": Equipment.model,
    "serialNumber": Equipment.serial_number,
    "purchaseDate": Equipment.purchase_date,
    "purchasePrice": Equipment.purchase_price,
    "currentValue": Equipment.current_value,
    "condition": Equipment.condition,
    "location": Equipment.location,
    "createdAt": Equipment.created_at,
    "updatedAt": Equipment.updated_at,
}
SORT_FIELDS: dict[str, Any] = {
    **_SORT_COLUMNS,
    "serial_number": Equipment.serial_number,
    "purchase_date": Equipment.purchase_date,
    "purchase_price": Equipment.purchase_price,
    "current_value": Equipment.current_value,
    "created_at": Equipment.created_at,
    "updated_at": Equipment.updated_at,
}


@dataclass(slots=True)
class EquipmentFilters:
    category: str | None = None
    condition: EquipmentCondition | None = None
    location: str | None = None
    search: str | None = None


@dataclass(slots=True)
class PhotoFile:
    filename: str
    content_type: str
    body: bytes


def _get_equipment_or_404(
    db: Session,
    organization_id: str,
    equipment_id: str,
    *,
    with_relations: bool = False,
) -> Equipment:
    query = select(Equipment).where(
        Equipment.id == equipment_id,
        Equipment.organization_id == organization_id,
    )
    if with_relations:
        query = query.options(
            selectinload(Equipment.category),
            selectinload(Equipment.assigned_to),
        )
    equipment = db.execute(query).scalars().first()
    if equipment is None:
        raise NotFoundError("Equipment not found")
    return equipment


def _ensure_storage_ready() -> tuple[str, storage.S3Client]:
    try:
        bucket = storage.ensure_bucket()
    except storage.StorageUnavailableError as exc:
        logger.error("Photo storage is not configured")
        raise UpstreamFailureError("Photo storage is not available") from exc
    return bucket, storage.get_s3_client()


def _filter_conditions(organization_id: str, filters: EquipmentFilters) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [Equipment.organization_id == organization_id]

    if filters.category:
        conditions.append(Equipment.category_id == filters.category)
    if filters.condition is not None:
        conditions.append(Equipment.condition == filters.condition)
    if filters.location:
        conditions.append(Equipment.location == filters.location)
    if filters.search:
        term = filters.search.lower()
        searched = (Equipment.name, Equipment.brand, Equipment.model, Equipment.serial_number)
        # autoescape makes % and _ in the term match literally.
        conditions.append(
            or_(
                *(
                    func.lower(func.coalesce(column, "")).contains(term, autoescape=True)
                    for column in searched
                )
            )
        )
    return conditions


def _validate_listing(sort_by: str, sort_order: str, page: int, limit: int) -> tuple[Any, str]:
    column = SORT_FIELDS.get(sort_by)
    if column is None:
        raise InvalidInputError(
            "Invalid sort field",
            details={"allowed": sorted(_SORT_COLUMNS)},
        )
    order = sort_order.lower()
    if order not in VALID_SORT_ORDERS:
        raise InvalidInputError("Invalid sort order")
    if page < 1:
        raise InvalidInputError("Page must be greater than or equal to 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise InvalidInputError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
    return column, order


def _primary_photos(db: Session, equipment_ids: Sequence[str]) -> dict[str, EquipmentPhoto]:
    if not equipment_ids:
        return {}
    rows = db.execute(
        select(EquipmentPhoto)
        .where(
            EquipmentPhoto.equipment_id.in_(equipment_ids),
            EquipmentPhoto.is_primary.is_(True),
        )
        .order_by(EquipmentPhoto.position)
    ).scalars()
    primary: dict[str, EquipmentPhoto] = {}
    for photo in rows:
        primary.setdefault(photo.equipment_id, photo)
    return primary


def _next_maintenance(db: Session, equipment_ids: Sequence[str]) -> dict[str, MaintenanceSchedule]:
    if not equipment_ids:
        return {}
    rows = db.execute(
        select(MaintenanceSchedule)
        .where(
            MaintenanceSchedule.equipment_id.in_(equipment_ids),
            MaintenanceSchedule.next_due.is_not(None),
        )
        .order_by(MaintenanceSchedule.next_due.asc(), MaintenanceSchedule.id)
    ).scalars()
    upcoming: dict[str, MaintenanceSchedule] = {}
    for schedule in rows:
        upcoming.setdefault(schedule.equipment_id, schedule)
    return upcoming


def list_equipment(
    db: Session,
    organization_id: str,
    filters: EquipmentFilters | None = None,
    *,
    sort_by: str = "name",
    sort_order: str = "asc",
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> EquipmentPage:
    column, order = _validate_listing(sort_by, sort_order, page, limit)
    conditions = _filter_conditions(organization_id, filters or EquipmentFilters())

    total = db.execute(
        select(func.count()).select_from(Equipment).where(*conditions)
    ).scalar_one()

    ordering = column.asc() if order == "asc" else column.desc()
    equipment = list(
        db.execute(
            select(Equipment)
            .options(
                selectinload(Equipment.category),
                selectinload(Equipment.assigned_to),
            )
            .where(*conditions)
            .order_by(ordering, Equipment.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars()
    )

    ids = [item.id for item in equipment]
    primary = _primary_photos(db, ids)
    upcoming = _next_maintenance(db, ids)

    items: list[EquipmentListItem] = []
    for item in equipment:
        photo = primary.get(item.id)
        schedule = upcoming.get(item.id)
        items.append(
            EquipmentListItem.model_validate(item).model_copy(
                update={
                    "primary_photo": PhotoRead.model_validate(photo) if photo else None,
                    "next_maintenance": (
                        MaintenanceScheduleRead.model_validate(schedule) if schedule else None
                    ),
                }
            )
        )

    return EquipmentPage(
        items=items,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


def get_equipment(db: Session, organization_id: str, equipment_id: str) -> EquipmentDetail:
    equipment = _get_equipment_or_404(db, organization_id, equipment_id, with_relations=True)

    photos = db.execute(
        select(EquipmentPhoto)
        .where(EquipmentPhoto.equipment_id == equipment.id)
        .order_by(EquipmentPhoto.created_at.desc(), EquipmentPhoto.position.desc())
    ).scalars()
    schedules = db.execute(
        select(MaintenanceSchedule)
        .where(MaintenanceSchedule.equipment_id == equipment.id)
        .order_by(MaintenanceSchedule.created_at.desc(), MaintenanceSchedule.id)
    ).scalars()
    logs = db.execute(
        select(MaintenanceLog)
        .options(selectinload(MaintenanceLog.performed_by))
        .where(MaintenanceLog.equipment_id == equipment.id)
        .order_by(MaintenanceLog.performed_date.desc(), MaintenanceLog.created_at.desc())
    ).scalars()
    usages = db.execute(
        select(EventEquipment)
        .options(
            selectinload(EventEquipment.event),
            selectinload(EventEquipment.checked_out_by),
            selectinload(EventEquipment.checked_in_by),
        )
        .where(EventEquipment.equipment_id == equipment.id)
        .order_by(EventEquipment.checked_out.desc())
        .limit(RECENT_EVENT_USAGE_LIMIT)
    ).scalars()

    base = EquipmentRead.model_validate(equipment).model_dump()
    return EquipmentDetail(
        **base,
        category=CategoryRead.model_validate(equipment.category) if equipment.category else None,
        assigned_to=(
            UserSummary.model_validate(equipment.assigned_to) if equipment.assigned_to else None
        ),
        photos=[PhotoRead.model_validate(photo) for photo in photos],
        maintenance_schedules=[MaintenanceScheduleRead.model_validate(s) for s in schedules],
        maintenance_logs=[MaintenanceLogRead.model_validate(log) for log in logs],
        event_equipment=[EventUsageRead.model_validate(usage) for usage in usages],
    )


def _normalize_payload(data: dict[str, Any]) -> dict[str, Any]:
    for key in ("category_id", "assigned_to_id"):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return data


def _check_references(db: Session, organization_id: str, data: dict[str, Any]) -> None:
    category_id = data.get("category_id")
    if category_id is not None:
        found = db.execute(
            select(EquipmentCategory.id).where(
                EquipmentCategory.id == category_id,
                EquipmentCategory.organization_id == organization_id,
            )
        ).first()
        if found is None:
            raise InvalidInputError("Category not found")

    assignee_id = data.get("assigned_to_id")
    if assignee_id is not None:
        found = db.execute(
            select(User.id).where(User.id == assignee_id, User.organization_id == organization_id)
        ).first()
        if found is None:
            raise InvalidInputError("Assigned user not found")


def create_equipment(
    db: Session,
    organization_id: str,
    payload: EquipmentCreate,
    *,
    actor: User | None = None,
    request: Request | None = None,
) -> EquipmentRead:
    data = _normalize_payload(payload.model_dump())
    _check_references(db, organization_id, data)

    equipment = Equipment(**data, organization_id=organization_id)
    db.add(equipment)
    db.flush()

    record_audit(
        db,
        organization_id=organization_id,
        actor=actor,
        action="equipment.create",
        entity_type="equipment",
        entity_id=equipment.id,
        details={"after": data},
        request=request,
    )
    db.commit()
    db.refresh(equipment)
    return EquipmentRead.model_validate(equipment)


def update_equipment(
    db: Session,
    organization_id: str,
    equipment_id: str,
    payload: EquipmentUpdate,
    *,
    actor: User | None = None,
    request: Request | None = None,
) -> EquipmentRead:
    equipment = _get_equipment_or_404(db, organization_id, equipment_id)

    changes = _normalize_payload(payload.model_dump(exclude_unset=True))
    _check_references(db, organization_id, changes)

    before = EquipmentRead.model_validate(equipment).model_dump()
    for key, value in changes.items():
        setattr(equipment, key, value)
    db.flush()

    record_audit(
        db,
        organization_id=organization_id,
        actor=actor,
        action="equipment.update",
        entity_type="equipment",
        entity_id=equipment.id,
        details={"before": before, "changes": changes},
        request=request,
    )
    db.commit()
    db.refresh(equipment)
    return EquipmentRead.model_validate(equipment)


def delete_equipment(
    db: Session,
    organization_id: str,
    equipment_id: str,
    *,
    actor: User | None = None,
    request: Request | None = None,
) -> None:
    equipment = _get_equipment_or_404(db, organization_id, equipment_id)

    keys = list(
        db.execute(
            select(EquipmentPhoto.storage_key).where(EquipmentPhoto.equipment_id == equipment.id)
        ).scalars()
    )
    if keys:
        bucket, client = _ensure_storage_ready()
        result = storage.delete_objects(client, bucket, keys)
        if not result.ok:
            logger.error(
                "Aborting equipment deletion: photo blobs could not be removed",
                extra={
                    "equipment_id": equipment.id,
                    "failed_keys": [failure.key for failure in result.failures],
                },
            )
            raise UpstreamFailureError("Failed to delete equipment photos")

    snapshot = EquipmentRead.model_validate(equipment).model_dump()
    record_audit(
        db,
        organization_id=organization_id,
        actor=actor,
        action="equipment.delete",
        entity_type="equipment",
        entity_id=equipment.id,
        details={"before": snapshot, "photo_keys": keys},
        request=request,
    )
    db.delete(equipment)
    db.commit()
    logger.info(
        "Equipment deleted",
        extra={"equipment_id": equipment_id, "photos_removed": len(keys)},
    )


def _validate_photo_batch(files: Sequence[PhotoFile]) -> None:
    settings = get_settings()
    if not files:
        raise InvalidInputError("No photos uploaded")
    if len(files) > settings.photo_upload_max_files:
        raise InvalidInputError(
            f"At most {settings.photo_upload_max_files} photos can be uploaded at once"
        )
    for file in files:
        if not file.content_type.lower().startswith("image/"):
            raise InvalidInputError(f"{file.filename} is not an image")
        if not file.body:
            raise InvalidInputError(f"{file.filename} is empty")
        if len(file.body) > settings.photo_max_size:
            raise InvalidInputError(f"{file.filename} exceeds the size limit")


def _discard_blobs(client: storage.S3Client, bucket: str, keys: Iterable[str]) -> None:
    """Best-effort removal of blobs written by a batch that is being rolled back."""

    result = storage.delete_objects(client, bucket, keys)
    if not result.ok:
        logger.error(
            "Orphaned photo blobs left in storage",
            extra={"keys": [failure.key for failure in result.failures]},
        )


def _has_primary(db: Session, equipment_id: str) -> bool:
    return (
        db.execute(
            select(EquipmentPhoto.id)
            .where(
                EquipmentPhoto.equipment_id == equipment_id,
                EquipmentPhoto.is_primary.is_(True),
            )
            .limit(1)
        ).first()
        is not None
    )


def _lock_photo_slots(db: Session, equipment_id: str) -> tuple[bool, int]:
    """Lock the equipment row; return whether it has a primary photo and the next position."""

    locked = db.execute(
        select(Equipment.id).where(Equipment.id == equipment_id).with_for_update()
    ).scalar_one_or_none()
    if locked is None:
        raise NotFoundError("Equipment not found")

    max_position = db.execute(
        select(func.max(EquipmentPhoto.position)).where(
            EquipmentPhoto.equipment_id == equipment_id
        )
    ).scalar()
    return _has_primary(db, equipment_id), 0 if max_position is None else max_position + 1


def _insert_photos(
    db: Session, equipment_id: str, uploads: Sequence[storage.BlobUpload]
) -> list[EquipmentPhoto]:
    """Commit one row per uploaded blob, in submission order.

    Where the backend has no row locks (SQLite) a concurrent batch can claim
    the primary flag or a position first; the unique indexes reject the
    loser, which re-reads the slots and tries again.
    """

    attempts = 0
    while True:
        attempts += 1
        has_primary, next_position = _lock_photo_slots(db, equipment_id)
        photos = [
            EquipmentPhoto(
                equipment_id=equipment_id,
                storage_key=upload.key,
                photo_url=storage.build_photo_url(upload.key),
                is_primary=index == 0 and not has_primary,
                position=next_position + index,
            )
            for index, upload in enumerate(uploads)
        ]
        db.add_all(photos)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if attempts >= PHOTO_SLOT_ATTEMPTS:
                raise
            logger.warning(
                "Photo slots taken by a concurrent upload, retrying",
                extra={"equipment_id": equipment_id, "attempt": attempts},
            )
            continue
        return photos


def upload_photos(
    db: Session,
    organization_id: str,
    equipment_id: str,
    files: Sequence[PhotoFile],
) -> list[PhotoRead]:
    """Store a batch of photos, all or nothing.

    Blobs are uploaded concurrently. If any upload or the database write
    fails, every blob written for the batch is removed again and the error is
    raised. The first file becomes primary only when no primary exists yet.
    """

    equipment = _get_equipment_or_404(db, organization_id, equipment_id)
    _validate_photo_batch(files)
    equipment_id = equipment.id

    bucket, client = _ensure_storage_ready()
    uploads = [
        storage.BlobUpload(
            key=storage.build_photo_key(file.filename),
            body=file.body,
            content_type=file.content_type,
        )
        for file in files
    ]
    result = storage.put_objects(client, bucket, uploads)
    if not result.ok:
        _discard_blobs(client, bucket, result.succeeded)
        raise UpstreamFailureError("Failed to upload equipment photos")

    try:
        photos = _insert_photos(db, equipment_id, uploads)
    except NotFoundError:
        db.rollback()
        _discard_blobs(client, bucket, [upload.key for upload in uploads])
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Unable to record uploaded photos", extra={"equipment_id": equipment_id})
        _discard_blobs(client, bucket, [upload.key for upload in uploads])
        raise UpstreamFailureError("Failed to save equipment photos") from exc

    for photo in photos:
        db.refresh(photo)
    logger.info(
        "Equipment photos uploaded",
        extra={"equipment_id": equipment_id, "count": len(photos)},
    )
    return [PhotoRead.model_validate(photo) for photo in photos]


def delete_photo(db: Session, organization_id: str, equipment_id: str, photo_id: str) -> None:
    """Delete one photo; if it was primary, the oldest remaining photo takes over."""

    equipment = _get_equipment_or_404(db, organization_id, equipment_id)
    photo = (
        db.execute(
            select(EquipmentPhoto).where(
                EquipmentPhoto.id == photo_id,
                EquipmentPhoto.equipment_id == equipment.id,
            )
        )
        .scalars()
        .first()
    )
    if photo is None:
        raise NotFoundError("Photo not found")

    bucket, client = _ensure_storage_ready()
    try:
        storage.delete_object(client, bucket, photo.storage_key)
    except storage.BlobStoreError as exc:
        raise UpstreamFailureError("Failed to delete equipment photo") from exc

    equipment_id = equipment.id
    _lock_photo_slots(db, equipment_id)
    removed = db.execute(
        delete(EquipmentPhoto)
        .where(EquipmentPhoto.id == photo.id)
        .execution_options(synchronize_session=False)
    ).rowcount
    if not removed:
        db.rollback()
        raise NotFoundError("Photo not found")

    if not _has_primary(db, equipment_id):
        successor_id = db.execute(
            select(EquipmentPhoto.id)
            .where(EquipmentPhoto.equipment_id == equipment_id)
            .order_by(
                EquipmentPhoto.position.asc(),
                EquipmentPhoto.created_at.asc(),
                EquipmentPhoto.id,
            )
            .limit(1)
        ).scalar()
        if successor_id is not None:
            db.execute(
                update(EquipmentPhoto)
                .where(EquipmentPhoto.id == successor_id)
                .values(is_primary=True)
            )
    db.commit()


def generate_qr_reference(db: Session, organization_id: str, equipment_id: str) -> QrReference:
    equipment = _get_equipment_or_404(db, organization_id, equipment_id)
    url = qr.equipment_detail_url(get_settings().app_url, equipment.id)
    return QrReference(
        qr_code=qr.qr_data_url(url),
        equipment_id=equipment.id,
        equipment_name=equipment.name,
        url=url,
    )


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "EquipmentFilters",
    "MAX_PAGE_SIZE",
    "PhotoFile",
    "SORT_FIELDS",
    "create_equipment",
    "delete_equipment",
    "delete_photo",
    "generate_qr_reference",
    "get_equipment",
    "list_equipment",
    "update_equipment",
    "upload_photos",
]
