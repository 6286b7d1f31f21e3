from .audit_event import AuditEvent
from .category import EquipmentCategory
from .equipment import Equipment, EquipmentCondition
from .equipment_photo import EquipmentPhoto
from .event import Event, EventEquipment
from .maintenance import MaintenanceLog, MaintenanceSchedule
from .organization import Organization
from .user import User

__all__ = [
    "AuditEvent",
    "Equipment",
    "EquipmentCategory",
    "EquipmentCondition",
    "EquipmentPhoto",
    "Event",
    "EventEquipment",
    "MaintenanceLog",
    "MaintenanceSchedule",
    "Organization",
    "User",
]
