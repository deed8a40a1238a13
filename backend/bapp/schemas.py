"""API request/response structures - Pydantic"""
from datetime import datetime
from typing import Optional, List, Dict, Literal
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from bapp.models import INVOICE_TYPES
from bapp.services.periods import PERIOD_VALUES

YearlyStatus = Literal["completed", "in_progress", "not_started"]
HalfMonthMode = Literal["duplicate", "empty"]
ProfileRole = Literal["admin", "viewer"]


def validate_invoice_type(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if v not in INVOICE_TYPES:
        raise ValueError(f"invoice_type harus salah satu dari: {', '.join(INVOICE_TYPES)}")
    return v


def validate_period_value(v: float) -> float:
    if v not in PERIOD_VALUES:
        raise ValueError(f"Periode harus salah satu dari: {list(PERIOD_VALUES)}")
    return v


# ---------- customers / areas ----------
class CustomerCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Nama customer")


class CustomerRead(BaseModel):
    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class AreaCreate(BaseModel):
    customer_id: int
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(None, description="Kosong = dibuat otomatis dari nama")


class AreaRead(BaseModel):
    id: int
    customer_id: int
    name: str
    code: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ---------- signatures ----------
class SignatureIn(BaseModel):
    name: str = Field(..., min_length=1)
    role: str = ""


class SignatureRead(BaseModel):
    id: int
    contract_id: int
    name: str
    role: str
    order: int
    model_config = ConfigDict(from_attributes=True)


# ---------- contracts ----------
class ContractBase(BaseModel):
    name: str = Field(..., min_length=1, description="Nama kontrak / paket")
    period: str = Field("Per 1 Bulan", description='Label periode, mis. "Per 3 Bulan" / "Per 1/2 Bulan"')
    invoice_type: str = Field(..., description="Pusat / Regional 2 / Regional 3")
    notes: Optional[str] = None
    year: int = Field(..., ge=2000, le=2100)

    @field_validator("invoice_type")
    @classmethod
    def check_invoice_type(cls, v: str) -> str:
        return validate_invoice_type(v)


class ContractCreate(ContractBase):
    """Either ids or names for customer/area; names are resolved with get-or-create."""
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    area_id: Optional[int] = None
    area_name: Optional[str] = None
    signatures: List[SignatureIn] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_customer_and_area(self):
        if self.customer_id is None and not (self.customer_name or "").strip():
            raise ValueError("customer_id atau customer_name wajib diisi")
        if self.area_id is None and not (self.area_name or "").strip():
            raise ValueError("area_id atau area_name wajib diisi")
        return self


class ContractUpdate(BaseModel):
    name: Optional[str] = None
    invoice_type: Optional[str] = None
    notes: Optional[str] = None
    area_id: Optional[int] = None

    @field_validator("invoice_type")
    @classmethod
    def check_invoice_type(cls, v: Optional[str]) -> Optional[str]:
        return validate_invoice_type(v)


class ContractRead(ContractBase):
    id: int
    customer_id: int
    area_id: int
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ContractSummary(BaseModel):
    """Row of the year-import picker"""
    id: int
    customer_name: str
    area_name: Optional[str] = None
    name: str
    invoice_type: str
    period: str
    signature_count: int
    year: int


# ---------- monthly progress ----------
class SignatureStatus(BaseModel):
    signature_id: int
    is_completed: bool


class MonthlyProgressUpdate(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    sub_period: int = Field(1, ge=1, le=2)
    upload_link: Optional[str] = None
    is_upload_completed: bool = False
    notes: Optional[str] = None
    signatures: List[SignatureStatus] = Field(default_factory=list)


class BatchPeriod(BaseModel):
    month: int = Field(..., ge=1, le=12)
    sub_period: int = Field(1, ge=1, le=2)


class BatchCompleteRequest(BaseModel):
    """complete-signatures (include_upload=False) or complete-all (include_upload=True)"""
    year: int
    periods: List[BatchPeriod] = Field(..., min_length=1)
    include_upload: bool = False


class BatchCompleteResult(BaseModel):
    success: int = 0
    failed: int = 0
    errors: List[str] = Field(default_factory=list)


# ---------- read models (dashboard) ----------
class SignatureDetail(BaseModel):
    id: int
    name: str
    role: str
    order: int
    is_completed: bool = False
    completed_at: Optional[datetime] = None


class MonthlyProgressDetail(BaseModel):
    id: Optional[int] = None
    month: int
    year: int
    sub_period: int = 1
    signatures: List[SignatureDetail] = Field(default_factory=list)
    is_upload_completed: bool = False
    upload_link: Optional[str] = None
    notes: Optional[str] = None
    notes_updated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    percentage: int = 0
    total_items: int = 1
    completed_items: int = 0


class ContractWithProgress(BaseModel):
    id: int
    customer_id: int
    area_id: int
    name: str
    period: str
    invoice_type: str
    notes: Optional[str] = None
    year: int
    total_signatures: int
    signatures: List[SignatureRead]
    monthly_progress: List[MonthlyProgressDetail]
    yearly_status: YearlyStatus


class AreaWithContracts(BaseModel):
    id: int
    name: str
    code: str
    contracts: List[ContractWithProgress] = Field(default_factory=list)


class CustomerWithAreas(BaseModel):
    id: int
    name: str
    areas: List[AreaWithContracts] = Field(default_factory=list)


class DashboardFilters(BaseModel):
    year: int
    search: str = ""
    customer_id: Optional[int] = None
    area_name: Optional[str] = None
    period: Optional[float] = None
    invoice_type: Optional[str] = None
    status: Literal["all", "completed", "in_progress", "not_started"] = "all"


# ---------- period migration ----------
class MergeDirective(BaseModel):
    target_month: int = Field(..., ge=1, le=12, description="End month of the new period")
    source_month: int = Field(..., ge=1, le=12, description="Month whose data is promoted")
    notes: List[str] = Field(default_factory=list, description="Notes of the folded months")


class SplitTarget(BaseModel):
    month: int = Field(..., ge=1, le=12)
    percentage: int = Field(..., ge=0, le=100)


class SplitDirective(BaseModel):
    source_month: int = Field(..., ge=1, le=12)
    target_months: List[SplitTarget] = Field(default_factory=list)


class PeriodMigrationRequest(BaseModel):
    year: int
    new_period: float
    merge_config: Optional[List[MergeDirective]] = None
    split_config: Optional[List[SplitDirective]] = None
    half_month_mode: HalfMonthMode = "duplicate"

    @field_validator("new_period")
    @classmethod
    def check_new_period(cls, v: float) -> float:
        return validate_period_value(v)


class PeriodMigrationConfig(PeriodMigrationRequest):
    contract_id: int


class PeriodMigrationPlanRequest(BaseModel):
    year: int
    new_period: float
    merge_mode: Literal["highest", "last", "manual"] = "highest"
    manual_merge_value: int = 0
    selected_note_months: List[int] = Field(default_factory=list)
    split_mode: Literal["duplicate", "last", "manual"] = "duplicate"
    manual_split_values: Dict[int, int] = Field(default_factory=dict, description="target month -> percentage")
    half_month_mode: HalfMonthMode = "duplicate"

    @field_validator("new_period")
    @classmethod
    def check_new_period(cls, v: float) -> float:
        return validate_period_value(v)


class PeriodRange(BaseModel):
    start: int
    end: int
    label: str


class PeriodMigrationPlan(BaseModel):
    current_period: float
    new_period: float
    direction: Literal["none", "up", "down", "to_half_month"]
    active_ranges: List[PeriodRange]
    affected_periods: int = 0
    config: PeriodMigrationRequest


class PeriodMigrationResult(BaseModel):
    contract_id: int
    period: str
    contract: ContractWithProgress


# ---------- year import ----------
class ImportRequest(BaseModel):
    source_year: int
    target_year: int
    contract_ids: List[int] = Field(..., min_length=1)


class ImportResult(BaseModel):
    success: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    skipped_names: List[str] = Field(default_factory=list)


# ---------- notifications / auth ----------
class DeadlineWarning(BaseModel):
    type: str = "deadline_warning"
    priority: Literal["high", "urgent"]
    title: str
    message: str
    contract_id: int
    contract_name: str
    customer_name: str
    month: int
    progress: int
    days_remaining: int


class ProfileRead(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    role: ProfileRole
    model_config = ConfigDict(from_attributes=True)
