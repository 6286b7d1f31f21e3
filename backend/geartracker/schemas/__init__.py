from .category import CategoryCreate, CategoryRead
from .common import (
    ErrorResponse,
    ListResponse,
    MessageResponse,
    PaginatedResponse,
    Pagination,
    SuccessResponse,
)
from .equipment import (
    EquipmentCreate,
    EquipmentDetail,
    EquipmentListItem,
    EquipmentPage,
    EquipmentRead,
    EquipmentUpdate,
    PhotoRead,
    QrReference,
)
from .statistics import CategoryCount, ConditionCount, EquipmentStatistics

__all__ = [
    "CategoryCount",
    "CategoryCreate",
    "CategoryRead",
    "ConditionCount",
    "EquipmentCreate",
    "EquipmentDetail",
    "EquipmentListItem",
    "EquipmentPage",
    "EquipmentRead",
    "EquipmentStatistics",
    "EquipmentUpdate",
    "ErrorResponse",
    "ListResponse",
    "MessageResponse",
    "PaginatedResponse",
    "Pagination",
    "PhotoRead",
    "QrReference",
    "SuccessResponse",
]
