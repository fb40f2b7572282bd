# cmms_app/enums.py
from enum import Enum


class TaskStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PARTIAL = "partial"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EquipmentStatus(str, Enum):
    OPERATIONAL = "operational"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out-of-service"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    TECHNICIAN = "technician"
    USER = "user"


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    SUCCESS = "success"
    ERROR = "error"


class MaterialRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELED = "canceled"


class MaintenanceFrequency(str, Enum):
    CUSTOM = "custom"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class MaintenanceType(str, Enum):
    PREDICTIVE = "predictive"
    CORRECTIVE = "corrective"
    CONDITIONAL = "conditional"


TERMINAL_TASK_STATUSES = {TaskStatus.COMPLETED, TaskStatus.CANCELLED}


# --- Display metadata (label / colour / icon) for everything the UI badges ---
TASK_STATUS_BADGES = {
    TaskStatus.SCHEDULED: {"label": "Scheduled", "color": "blue", "icon": "calendar"},
    TaskStatus.IN_PROGRESS: {"label": "In Progress", "color": "amber", "icon": "wrench"},
    TaskStatus.COMPLETED: {"label": "Completed", "color": "green", "icon": "check-circle"},
    TaskStatus.CANCELLED: {"label": "Cancelled", "color": "gray", "icon": "x-circle"},
    TaskStatus.PARTIAL: {"label": "Partial", "color": "purple", "icon": "clock"},
}

TASK_PRIORITY_BADGES = {
    TaskPriority.LOW: {"label": "Low", "color": "slate", "icon": "arrow-down"},
    TaskPriority.MEDIUM: {"label": "Medium", "color": "blue", "icon": "minus"},
    TaskPriority.HIGH: {"label": "High", "color": "orange", "icon": "arrow-up"},
    TaskPriority.CRITICAL: {"label": "Critical", "color": "red", "icon": "alert-triangle"},
}

EQUIPMENT_STATUS_BADGES = {
    EquipmentStatus.OPERATIONAL: {"label": "Operational", "color": "green", "icon": "check-circle"},
    EquipmentStatus.MAINTENANCE: {"label": "Maintenance", "color": "amber", "icon": "wrench"},
    EquipmentStatus.OUT_OF_SERVICE: {"label": "Out of Service", "color": "red", "icon": "power-off"},
}

NOTIFICATION_BADGES = {
    NotificationType.INFO: {"label": "Info", "color": "blue", "icon": "wrench"},
    NotificationType.WARNING: {"label": "Warning", "color": "amber", "icon": "calendar"},
    NotificationType.SUCCESS: {"label": "Success", "color": "green", "icon": "check-circle"},
    NotificationType.ERROR: {"label": "Error", "color": "red", "icon": "alert-triangle"},
}

MATERIAL_REQUEST_BADGES = {
    MaterialRequestStatus.PENDING: {"label": "Pending", "color": "amber", "icon": "clock"},
    MaterialRequestStatus.APPROVED: {"label": "Approved", "color": "green", "icon": "check-circle"},
    MaterialRequestStatus.REJECTED: {"label": "Rejected", "color": "red", "icon": "x-circle"},
}

PAYMENT_STATUS_BADGES = {
    PaymentStatus.PENDING: {"label": "Pending", "color": "amber", "icon": "clock"},
    PaymentStatus.PAID: {"label": "Paid", "color": "green", "icon": "check-circle"},
    PaymentStatus.CANCELED: {"label": "Canceled", "color": "gray", "icon": "x-circle"},
}

MAINTENANCE_TYPE_BADGES = {
    MaintenanceType.PREDICTIVE: {"label": "Predictive", "color": "blue", "icon": "calendar"},
    MaintenanceType.CORRECTIVE: {"label": "Corrective", "color": "red", "icon": "wrench"},
    MaintenanceType.CONDITIONAL: {"label": "Conditional", "color": "purple", "icon": "activity"},
}

BADGE_TABLES = {
    TaskStatus: TASK_STATUS_BADGES,
    TaskPriority: TASK_PRIORITY_BADGES,
    EquipmentStatus: EQUIPMENT_STATUS_BADGES,
    NotificationType: NOTIFICATION_BADGES,
    MaterialRequestStatus: MATERIAL_REQUEST_BADGES,
    PaymentStatus: PAYMENT_STATUS_BADGES,
    MaintenanceType: MAINTENANCE_TYPE_BADGES,
}

for _enum, _table in BADGE_TABLES.items():
    _missing = set(_enum) - set(_table)
    if _missing:
        raise RuntimeError(f"No display metadata for {sorted(m.value for m in _missing)}")


def badge_for(member):
    """Return the display metadata for an enum member."""
    return BADGE_TABLES[type(member)][member]


def display_metadata():
    return {
        "task_status": {m.value: badge for m, badge in TASK_STATUS_BADGES.items()},
        "task_priority": {m.value: badge for m, badge in TASK_PRIORITY_BADGES.items()},
        "equipment_status": {m.value: badge for m, badge in EQUIPMENT_STATUS_BADGES.items()},
        "notification_type": {m.value: badge for m, badge in NOTIFICATION_BADGES.items()},
        "material_request_status": {m.value: badge for m, badge in MATERIAL_REQUEST_BADGES.items()},
        "payment_status": {m.value: badge for m, badge in PAYMENT_STATUS_BADGES.items()},
        "maintenance_type": {m.value: badge for m, badge in MAINTENANCE_TYPE_BADGES.items()},
    }
