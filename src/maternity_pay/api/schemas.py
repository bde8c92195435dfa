"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error responses."""

    detail: str
    code: str
    messages: list[str] | None = None


# ============================================================================
# Case commands
# ============================================================================


class CaseCreate(BaseModel):
    """Schema for opening a maternity case.

    Fields are optional here so the validation layer can report every
    missing item at once.
    """

    employee_id: str | None = None
    baby_due_date: date | None = None
    maternity_start_date: date | None = None
    smp_start_date: date | None = None
    expected_return_date: date | None = None
    actual_return_date: date | None = None
    total_smp: Decimal | None = None
    average_weekly_earnings: Decimal | None = None
    cmp_weeks_entitlement: int | None = None
    monthly_smp_breakdown: dict[str, Decimal] = Field(default_factory=dict)


class CaseUpdate(BaseModel):
    """Schema for a partial case update; only fields sent are applied."""

    baby_due_date: date | None = None
    maternity_start_date: date | None = None
    smp_start_date: date | None = None
    expected_return_date: date | None = None
    actual_return_date: date | None = None
    total_smp: Decimal | None = None
    average_weekly_earnings: Decimal | None = None
    cmp_weeks_entitlement: int | None = None
    monthly_smp_breakdown: dict[str, Decimal] | None = None


class ActualReturnRequest(BaseModel):
    actual_return_date: date | None


class ArchiveRequest(BaseModel):
    reason: str = ""


class PeriodAmountsUpdate(BaseModel):
    """Schema for entering amounts on a period; only fields sent are applied."""

    smp_amount: Decimal | None = None
    company_amount: Decimal | None = None
    holiday_accrued: Decimal | None = None
    smp_notes: str | None = None
    company_notes: str | None = None
    holiday_notes: str | None = None


class PeriodStatusRequest(BaseModel):
    status: str


# ============================================================================
# Case responses
# ============================================================================


class PeriodResponse(BaseModel):
    """Schema for a ledger period."""

    model_config = ConfigDict(from_attributes=True)

    period_id: str
    period_number: int
    period_name: str
    period_start: date
    period_end: date
    pay_date: date
    is_synthetic: bool
    smp_amount: Decimal
    company_amount: Decimal
    holiday_accrued: Decimal
    cmp_weeks: int
    cmp_note: str | None = None
    smp_notes: str | None = None
    company_notes: str | None = None
    holiday_notes: str | None = None
    entered_by: str | None = None
    entered_at: datetime | None = None
    data_complete: bool
    status: str


class CaseResponse(BaseModel):
    """Schema for a maternity case with its ledger."""

    model_config = ConfigDict(from_attributes=True)

    case_id: str
    employee_id: str
    employee_name: str
    employee_location: str
    staff_class: str
    baby_due_date: date
    maternity_start_date: date
    smp_start_date: date
    expected_return_date: date
    actual_return_date: date | None = None
    total_smp: Decimal
    monthly_smp_breakdown: dict[str, Decimal]
    average_weekly_earnings: Decimal
    contracted_weekly_earnings: Decimal
    target_weekly_amount: Decimal
    cmp_weeks_entitlement: int
    total_cmp: Decimal
    calculation_status: str
    calculation_warning: str | None = None
    status: str
    created_by: str
    created_at: datetime
    last_updated_at: datetime
    last_updated_by: str | None = None
    archived_at: datetime | None = None
    archived_by: str | None = None
    archived_reason: str | None = None
    version: int
    periods: list[PeriodResponse]


class CaseListResponse(BaseModel):
    items: list[CaseResponse]
    total: int


class WarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    code: str
    message: str


class CaseCreateResponse(BaseModel):
    case: CaseResponse
    warnings: list[WarningResponse]
    needs_attention: bool


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_number: int
    weeks_in_period: int
    weeks_applied: int
    company_amount: Decimal
    note: str


class RecalculationResponse(BaseModel):
    case_id: str
    target_weekly_amount: Decimal
    entitlement_weeks: int
    weeks_consumed: int
    remaining_weeks: int
    total_cmp: Decimal
    allocations: list[AllocationResponse]


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_event_id: int
    action: str
    actor: str
    details: dict | None = None
    created_at: datetime


# ============================================================================
# Projections
# ============================================================================


class MonthGroupResponse(BaseModel):
    month: str
    smp_total: Decimal
    cmp_total: Decimal
    holiday_total: Decimal
    periods: list[PeriodResponse]


class PeriodDetailResponse(BaseModel):
    case_id: str
    months: list[MonthGroupResponse]


class CaseSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    case_id: str
    employee_id: str
    employee_name: str
    staff_class: str
    bucket: str
    maternity_start_date: date
    expected_return_date: date
    actual_return_date: date | None = None
    total_smp: Decimal
    total_cmp: Decimal
    remaining_smp: Decimal
    remaining_cmp: Decimal
    calculation_status: str
    periods_pending: int


class DashboardResponse(BaseModel):
    as_of: date
    bucket_counts: dict[str, int]
    remaining_smp: Decimal
    remaining_cmp: Decimal
    remaining_total: Decimal
    cases: list[CaseSummaryResponse]


# ============================================================================
# Calendar
# ============================================================================


class CalendarPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    staff_class: str
    period_name: str
    period_start: date
    period_end: date
    pay_date: date
    cutoff_date: date | None = None


class SmpStartCheckResponse(BaseModel):
    smp_start_date: date
    staff_class: str
    valid: bool
    message: str
    period: CalendarPeriodResponse | None = None


class StaffClassCoverageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    staff_class: str
    period_count: int
    first_start: date | None = None
    last_end: date | None = None
    missing_cutoff: list[str]


class CalendarHealthResponse(BaseModel):
    ok: bool
    as_of: date
    horizon: date
    coverage: list[StaffClassCoverageResponse]
    issues: list[str]
