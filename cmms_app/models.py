# cmms_app/models.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from cmms_app.enums import (
    EquipmentStatus,
    MaintenanceFrequency,
    MaintenanceType,
    MaterialRequestStatus,
    NotificationType,
    PaymentStatus,
    TaskPriority,
    TaskStatus,
    UserRole,
)
from cmms_app.utils import naive_utc


# --- Categories / Departments ---
class CategoryIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


class DepartmentIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None


class DepartmentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    location: Optional[str] = None


# --- Equipment ---
class EquipmentIn(BaseModel):
    name: str = Field(min_length=1)
    serial_number: str = Field(min_length=1)
    category_id: str
    department_id: str
    status: EquipmentStatus = EquipmentStatus.OPERATIONAL
    purchase_date: Optional[str] = None
    last_maintenance: Optional[str] = None
    next_maintenance: Optional[str] = None
    notes: Optional[str] = None


class EquipmentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    serial_number: Optional[str] = None
    category_id: Optional[str] = None
    department_id: Optional[str] = None
    status: Optional[EquipmentStatus] = None
    purchase_date: Optional[str] = None
    last_maintenance: Optional[str] = None
    next_maintenance: Optional[str] = None
    notes: Optional[str] = None


# --- Maintenance tasks ---
class MaintenanceTaskIn(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    equipment_id: str
    category_id: Optional[str] = None
    scheduled_date: datetime
    completed_date: Optional[datetime] = None
    estimated_duration: Optional[float] = Field(default=None, ge=0)
    actual_duration: Optional[float] = Field(default=None, ge=0)
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.SCHEDULED
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

    # stored as naive UTC
    @field_validator("scheduled_date", "completed_date", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return naive_utc(value)


class MaintenanceTaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    equipment_id: Optional[str] = None
    category_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    estimated_duration: Optional[float] = Field(default=None, ge=0)
    actual_duration: Optional[float] = Field(default=None, ge=0)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("scheduled_date", "completed_date", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return naive_utc(value)


class TaskCompletion(BaseModel):
    actual_duration: float = Field(ge=0)
    notes: str = ""


class StatusHistoryIn(BaseModel):
    status: TaskStatus
    status_date: Optional[str] = None
    notes: Optional[str] = None


# --- Task catalog ---
class TaskDefinitionIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class TaskDefinitionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


# --- Task-based maintenance (recurring / corrective / conditional work) ---
class TaskMaintenanceIn(BaseModel):
    task_id: Optional[str] = None
    equipment_id: str
    category_id: Optional[str] = None  # production line
    department_id: Optional[str] = None  # area
    scheduled_date: datetime
    frequency: Optional[MaintenanceFrequency] = None
    custom_days: Optional[int] = Field(default=None, gt=0)
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.SCHEDULED
    type: MaintenanceType = MaintenanceType.PREDICTIVE
    assigned_to: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return naive_utc(value)

    @model_validator(mode="after")
    def custom_frequency_needs_days(self):
        if self.frequency == MaintenanceFrequency.CUSTOM and not self.custom_days:
            raise ValueError("custom_days is required when frequency is 'custom'")
        return self


class TaskMaintenanceUpdate(BaseModel):
    task_id: Optional[str] = None
    equipment_id: Optional[str] = None
    category_id: Optional[str] = None
    department_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    frequency: Optional[MaintenanceFrequency] = None
    custom_days: Optional[int] = Field(default=None, gt=0)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    type: Optional[MaintenanceType] = None
    assigned_to: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("scheduled_date", mode="before")
    @classmethod
    def normalize_dates(cls, value):
        return naive_utc(value)


class CompletionNotes(BaseModel):
    notes: str = ""


# --- Users ---
class UserIn(BaseModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    role: UserRole = UserRole.USER
    department: Optional[str] = None
    phone: Optional[str] = None
    password: Optional[str] = None  # plain password; falls back to the default


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    role: Optional[UserRole] = None
    department: Optional[str] = None
    phone: Optional[str] = None


# --- Settings ---
class SettingsUpdate(BaseModel):
    company_name: Optional[str] = None
    system_name: Optional[str] = None
    date_format: Optional[str] = None
    time_format: Optional[str] = None
    default_language: Optional[str] = None
    timezone: Optional[str] = None
    email_notifications: Optional[bool] = None
    maintenance_due_reminders: Optional[bool] = None
    equipment_status_changes: Optional[bool] = None
    system_updates: Optional[bool] = None
    daily_digest: Optional[bool] = None
    reminder_days: Optional[int] = Field(default=None, ge=0)


# --- Role permissions ---
class PermissionIn(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    module: str = Field(min_length=1)


class RolePermissionIn(BaseModel):
    role: UserRole
    permission_id: str


# --- Notifications ---
class Notification(BaseModel):
    id: str
    title: str
    message: str
    type: NotificationType
    timestamp: datetime
    read: bool = False
    related_id: Optional[str] = None


# --- Supply chain ---
class MaterialRequestItemIn(BaseModel):
    item_name: str = Field(min_length=1)
    quantity: float = Field(gt=0)
    unit: str = Field(min_length=1)
    description: Optional[str] = None


class MaterialRequestItemUpdate(BaseModel):
    item_name: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[float] = Field(default=None, gt=0)
    unit: Optional[str] = None
    description: Optional[str] = None


class MaterialRequestIn(BaseModel):
    requester_name: str = Field(min_length=1)
    department: str = Field(min_length=1)
    request_date: str
    status: MaterialRequestStatus = MaterialRequestStatus.PENDING
    notes: Optional[str] = None
    items: List[MaterialRequestItemIn] = Field(default_factory=list)


class MaterialRequestUpdate(BaseModel):
    requester_name: Optional[str] = None
    department: Optional[str] = None
    request_date: Optional[str] = None
    status: Optional[MaterialRequestStatus] = None
    notes: Optional[str] = None


class ReviewNotes(BaseModel):
    notes: Optional[str] = None


class ProformaInvoiceIn(BaseModel):
    supplier_name: str = Field(min_length=1)
    invoice_number: str = Field(min_length=1)
    total_amount: float = Field(ge=0)
    currency: str = Field(min_length=1)
    issue_date: str
    expiry_date: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    document_url: Optional[str] = None
    notes: Optional[str] = None


class ProformaInvoiceUpdate(BaseModel):
    supplier_name: Optional[str] = None
    invoice_number: Optional[str] = None
    total_amount: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    issue_date: Optional[str] = None
    expiry_date: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    document_url: Optional[str] = None
    notes: Optional[str] = None
