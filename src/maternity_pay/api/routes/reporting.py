"""Dashboard, calendar and system check endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from maternity_pay.api.dependencies import CaseService
from maternity_pay.api.schemas import (
    CalendarHealthResponse,
    CalendarPeriodResponse,
    CaseSummaryResponse,
    DashboardResponse,
    SmpStartCheckResponse,
    StaffClassCoverageResponse,
)
from maternity_pay.calculators.types import CalendarPeriod, StaffClass
from maternity_pay.services.projections import dashboard
from maternity_pay.services.system_check import check_calendar

router = APIRouter(tags=["reporting"])


def _calendar_period(period: CalendarPeriod) -> CalendarPeriodResponse:
    return CalendarPeriodResponse(
        staff_class=period.staff_class.value,
        period_name=period.period_name,
        period_start=period.period_start,
        period_end=period.period_end,
        pay_date=period.pay_date,
        cutoff_date=period.cutoff_date,
    )


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    service: CaseService,
    as_of: Annotated[date | None, Query()] = None,
) -> DashboardResponse:
    """Status buckets and remaining pay across active cases."""
    today = as_of or date.today()
    cases = await service.list_cases()
    view = dashboard(cases, today, service.settings.returning_window_days)
    return DashboardResponse(
        as_of=view.as_of,
        bucket_counts=view.bucket_counts,
        remaining_smp=view.remaining_smp,
        remaining_cmp=view.remaining_cmp,
        remaining_total=view.remaining_total,
        cases=[
            CaseSummaryResponse(
                case_id=s.case_id,
                employee_id=s.employee_id,
                employee_name=s.employee_name,
                staff_class=s.staff_class,
                bucket=s.bucket.value,
                maternity_start_date=s.maternity_start_date,
                expected_return_date=s.expected_return_date,
                actual_return_date=s.actual_return_date,
                total_smp=s.total_smp,
                total_cmp=s.total_cmp,
                remaining_smp=s.remaining_smp,
                remaining_cmp=s.remaining_cmp,
                calculation_status=s.calculation_status,
                periods_pending=s.periods_pending,
            )
            for s in view.cases
        ],
    )


@router.get("/calendar/validate-smp-start", response_model=SmpStartCheckResponse)
async def validate_smp_start(
    service: CaseService,
    smp_start_date: Annotated[date, Query()],
    staff_class: Annotated[StaffClass, Query()],
) -> SmpStartCheckResponse:
    """Check whether the payroll calendar can place an SMP start date."""
    check = await service.validate_smp_start_date(smp_start_date, staff_class)
    return SmpStartCheckResponse(
        smp_start_date=check.smp_start_date,
        staff_class=check.staff_class.value,
        valid=check.valid,
        message=check.message,
        period=_calendar_period(check.period) if check.period else None,
    )


@router.get("/system/check", response_model=CalendarHealthResponse)
async def system_check(
    service: CaseService,
    as_of: Annotated[date | None, Query()] = None,
) -> CalendarHealthResponse:
    """Report calendar completeness: periods, hourly cutoffs, forward horizon."""
    periods = await service.calendar_source.load_calendar()
    report = check_calendar(
        periods, as_of or date.today(), service.settings.calendar_horizon_days
    )
    return CalendarHealthResponse(
        ok=report.ok,
        as_of=report.as_of,
        horizon=report.horizon,
        coverage=[
            StaffClassCoverageResponse(
                staff_class=cov.staff_class.value,
                period_count=cov.period_count,
                first_start=cov.first_start,
                last_end=cov.last_end,
                missing_cutoff=cov.missing_cutoff,
            )
            for cov in report.coverage.values()
        ],
        issues=report.issues,
    )
