from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, File, Query, Request, UploadFile, status

from geartracker.core.config import get_settings
from geartracker.core.limiter import limiter
from geartracker.deps import CurrentUser, DbSession, OrganizationId
from geartracker.models import EquipmentCondition
from geartracker.schemas import (
    CategoryCreate,
    CategoryRead,
    EquipmentCreate,
    EquipmentDetail,
    EquipmentListItem,
    EquipmentRead,
    EquipmentStatistics,
    EquipmentUpdate,
    ListResponse,
    MessageResponse,
    PaginatedResponse,
    Pagination,
    PhotoRead,
    QrReference,
    SuccessResponse,
)
from geartracker.services import categories as category_service
from geartracker.services import equipment as equipment_service
from geartracker.services import statistics as statistics_service

router = APIRouter()


def _photo_upload_limit() -> str:
    return get_settings().photo_upload_rate_limit


@router.get("/stats/summary", response_model=SuccessResponse[EquipmentStatistics])
def equipment_summary(db: DbSession, organization_id: OrganizationId) -> SuccessResponse[EquipmentStatistics]:
    return SuccessResponse[EquipmentStatistics](
        data=statistics_service.summarize(db, organization_id)
    )


@router.get("/categories/all", response_model=ListResponse[CategoryRead])
def list_categories(db: DbSession, organization_id: OrganizationId) -> ListResponse[CategoryRead]:
    categories = category_service.list_categories(db, organization_id)
    return ListResponse[CategoryRead](results=len(categories), data=categories)


@router.post(
    "/categories",
    response_model=SuccessResponse[CategoryRead],
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: DbSession,
    organization_id: OrganizationId,
    user: CurrentUser,
) -> SuccessResponse[CategoryRead]:
    category = category_service.create_category(
        db,
        organization_id,
        payload.name,
        str(payload.parent_category_id) if payload.parent_category_id else None,
        actor=user,
        request=request,
    )
    return SuccessResponse[CategoryRead](data=category)


@router.get("", response_model=PaginatedResponse[EquipmentListItem])
def list_equipment(
    db: DbSession,
    organization_id: OrganizationId,
    category: Annotated[UUID | None, Query()] = None,
    condition: Annotated[EquipmentCondition | None, Query()] = None,
    location: Annotated[str | None, Query(min_length=1)] = None,
    search: Annotated[str | None, Query(min_length=1)] = None,
    sort_by: Annotated[str, Query(alias="sortBy")] = "name",
    sort_order: Annotated[str, Query(alias="sortOrder")] = "asc",
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=equipment_service.MAX_PAGE_SIZE)] = (
        equipment_service.DEFAULT_PAGE_SIZE
    ),
) -> PaginatedResponse[EquipmentListItem]:
    filters = equipment_service.EquipmentFilters(
        category=str(category) if category else None,
        condition=condition,
        location=location,
        search=search,
    )
    result = equipment_service.list_equipment(
        db,
        organization_id,
        filters,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    return PaginatedResponse[EquipmentListItem](
        results=len(result.items),
        data=result.items,
        pagination=Pagination(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.post(
    "",
    response_model=SuccessResponse[EquipmentRead],
    status_code=status.HTTP_201_CREATED,
)
def create_equipment(
    payload: EquipmentCreate,
    request: Request,
    db: DbSession,
    organization_id: OrganizationId,
    user: CurrentUser,
) -> SuccessResponse[EquipmentRead]:
    equipment = equipment_service.create_equipment(
        db, organization_id, payload, actor=user, request=request
    )
    return SuccessResponse[EquipmentRead](data=equipment)


@router.get("/{equipment_id}", response_model=SuccessResponse[EquipmentDetail])
def get_equipment(
    equipment_id: UUID,
    db: DbSession,
    organization_id: OrganizationId,
) -> SuccessResponse[EquipmentDetail]:
    return SuccessResponse[EquipmentDetail](
        data=equipment_service.get_equipment(db, organization_id, str(equipment_id))
    )


@router.put("/{equipment_id}", response_model=SuccessResponse[EquipmentRead])
def update_equipment(
    equipment_id: UUID,
    payload: EquipmentUpdate,
    request: Request,
    db: DbSession,
    organization_id: OrganizationId,
    user: CurrentUser,
) -> SuccessResponse[EquipmentRead]:
    equipment = equipment_service.update_equipment(
        db, organization_id, str(equipment_id), payload, actor=user, request=request
    )
    return SuccessResponse[EquipmentRead](data=equipment)


@router.delete("/{equipment_id}", response_model=MessageResponse)
def delete_equipment(
    equipment_id: UUID,
    request: Request,
    db: DbSession,
    organization_id: OrganizationId,
    user: CurrentUser,
) -> MessageResponse:
    equipment_service.delete_equipment(
        db, organization_id, str(equipment_id), actor=user, request=request
    )
    return MessageResponse(message="Equipment deleted successfully")


@router.post(
    "/{equipment_id}/photos",
    response_model=ListResponse[PhotoRead],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(_photo_upload_limit)
def upload_photos(
    equipment_id: UUID,
    request: Request,
    db: DbSession,
    organization_id: OrganizationId,
    photos: Annotated[list[UploadFile] | None, File()] = None,
) -> ListResponse[PhotoRead]:
    max_size = get_settings().photo_max_size
    files = [
        equipment_service.PhotoFile(
            filename=upload.filename or "photo",
            content_type=upload.content_type or "application/octet-stream",
            # One byte past the limit is enough to reject oversized files.
            body=upload.file.read(max_size + 1),
        )
        for upload in photos or []
    ]
    created = equipment_service.upload_photos(db, organization_id, str(equipment_id), files)
    return ListResponse[PhotoRead](results=len(created), data=created)


@router.delete("/{equipment_id}/photos/{photo_id}", response_model=MessageResponse)
def delete_photo(
    equipment_id: UUID,
    photo_id: UUID,
    db: DbSession,
    organization_id: OrganizationId,
) -> MessageResponse:
    equipment_service.delete_photo(db, organization_id, str(equipment_id), str(photo_id))
    return MessageResponse(message="Photo deleted successfully")


@router.post("/{equipment_id}/qrcode", response_model=SuccessResponse[QrReference])
@limiter.limit("30/minute")
def generate_qr_reference(
    equipment_id: UUID,
    request: Request,
    db: DbSession,
    organization_id: OrganizationId,
) -> SuccessResponse[QrReference]:
    reference = equipment_service.generate_qr_reference(db, organization_id, str(equipment_id))
    return SuccessResponse[QrReference](data=reference)


__all__ = ["router"]
