from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, Field, ValidationInfo, field_validator, model_validator


class MaintenanceType(str, Enum):
    PREVENTIVE = 'preventive'
    CORRECTIVE = 'corrective'


class WorkOrderStatus(str, Enum):
    OPEN = 'open'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


TERMINAL_STATUSES = {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}


class SubscriptionPlan(str, Enum):
    BASIC = 'basic'
    PROFESSIONAL = 'professional'
    ENTERPRISE = 'enterprise'


def _as_utc(value: datetime) -> datetime:
    """Naive timestamps are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


# --- Stored records (read back leniently, lifecycle owned by the store) ---

class Company(BaseModel):
    id: str
    name: str
    manager_email: str
    plan: SubscriptionPlan = SubscriptionPlan.BASIC
    created_at: Optional[UtcDatetime] = None


class Equipment(BaseModel):
    id: str
    tenant_id: str
    name: str
    location: str = ""
    maintenance_type: MaintenanceType
    installed_at: UtcDatetime
    created_at: Optional[UtcDatetime] = None


class WorkOrder(BaseModel):
    id: str
    tenant_id: str
    equipment_id: str
    equipment_name: str = ""
    technician_name: str
    technician_tax_id: str = ""
    opened_at: UtcDatetime
    completed_at: Optional[UtcDatetime] = None
    maintenance_type: MaintenanceType
    downtime_hours: float = 0.0
    status: WorkOrderStatus = WorkOrderStatus.OPEN
    notes: Optional[str] = None
    created_at: Optional[UtcDatetime] = None


# --- Write payloads (carry the record invariants) ---

class CompanyRegistration(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    manager_email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1)
    plan: SubscriptionPlan = SubscriptionPlan.BASIC

    @field_validator('manager_email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class EquipmentInput(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    location: str = Field(default="", max_length=200)
    maintenance_type: MaintenanceType
    installed_at: UtcDatetime

    @field_validator('installed_at')
    @classmethod
    def not_in_future(cls, value: datetime, info: ValidationInfo) -> datetime:
        now = (info.context or {}).get('now') or datetime.now(timezone.utc)
        if value > now:
            raise ValueError('installation date cannot be in the future')
        return value


class WorkOrderInput(BaseModel):
    equipment_id: str = Field(min_length=1)
    technician_name: str = Field(min_length=1, max_length=200)
    technician_tax_id: str = Field(default="", max_length=20)
    opened_at: UtcDatetime
    completed_at: Optional[UtcDatetime] = None
    maintenance_type: MaintenanceType
    downtime_hours: float = Field(default=0.0, ge=0)
    status: WorkOrderStatus = WorkOrderStatus.OPEN
    notes: Optional[str] = Field(default=None, max_length=5000)

    @model_validator(mode='after')
    def completion_consistent(self):
        if self.status == WorkOrderStatus.COMPLETED:
            if self.completed_at is None:
                raise ValueError('completed work orders require a completion date')
            if self.completed_at < self.opened_at:
                raise ValueError('completion date cannot be before the opening date')
        return self
