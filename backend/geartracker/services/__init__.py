from .audit import record_audit
from .categories import create_category, list_categories
from .equipment import (
    EquipmentFilters,
    PhotoFile,
    create_equipment,
    delete_equipment,
    delete_photo,
    generate_qr_reference,
    get_equipment,
    list_equipment,
    update_equipment,
    upload_photos,
)
from .statistics import summarize

__all__ = [
    "EquipmentFilters",
    "PhotoFile",
    "create_category",
    "create_equipment",
    "delete_equipment",
    "delete_photo",
    "generate_qr_reference",
    "get_equipment",
    "list_categories",
    "list_equipment",
    "record_audit",
    "summarize",
    "update_equipment",
    "upload_photos",
]
