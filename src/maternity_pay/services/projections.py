"""Read-only projections of cases for dashboards and period detail views."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum

from maternity_pay.calculators.types import ZERO, round_money
from maternity_pay.models import MaternityCase, MaternityPeriod


class LeaveBucket(str, Enum):
    """Where a case stands relative to today."""

    UPCOMING = "upcoming"
    ON_LEAVE = "on_leave"
    RETURNING = "returning"
    OVERDUE = "overdue"
    RETURNED = "returned"


@dataclass(frozen=True)
class CaseSummary:
    case_id: str
    employee_id: str
    employee_name: str
    staff_class: str
    bucket: LeaveBucket
    maternity_start_date: date
    expected_return_date: date
    actual_return_date: date | None
    total_smp: Decimal
    total_cmp: Decimal
    remaining_smp: Decimal
    remaining_cmp: Decimal
    calculation_status: str
    periods_pending: int


@dataclass
class Dashboard:
    as_of: date
    cases: list[CaseSummary] = field(default_factory=list)
    bucket_counts: dict[str, int] = field(default_factory=dict)
    remaining_smp: Decimal = ZERO
    remaining_cmp: Decimal = ZERO

    @property
    def remaining_total(self) -> Decimal:
        return round_money(self.remaining_smp + self.remaining_cmp)


@dataclass(frozen=True)
class MonthGroup:
    month: str
    periods: list[MaternityPeriod]
    smp_total: Decimal
    cmp_total: Decimal
    holiday_total: Decimal


def classify(case: MaternityCase, today: date, returning_window_days: int) -> LeaveBucket:
    """Place a case in a dashboard bucket."""
    if case.actual_return_date is not None and case.actual_return_date <= today:
        return LeaveBucket.RETURNED
    if today < case.maternity_start_date:
        return LeaveBucket.UPCOMING
    if today >= case.expected_return_date:
        return LeaveBucket.OVERDUE
    if case.expected_return_date - today <= timedelta(days=returning_window_days):
        return LeaveBucket.RETURNING
    return LeaveBucket.ON_LEAVE


def dashboard(
    cases: Iterable[MaternityCase], today: date, returning_window_days: int
) -> Dashboard:
    """Summarise active cases; remaining pay is what falls due after today."""
    view = Dashboard(as_of=today, bucket_counts={b.value: 0 for b in LeaveBucket})
    remaining_smp = ZERO
    remaining_cmp = ZERO

    for case in cases:
        if case.is_archived:
            continue
        future = [p for p in case.periods if p.pay_date > today]
        case_smp = round_money(sum((p.smp_amount for p in future), ZERO))
        case_cmp = round_money(sum((p.company_amount for p in future), ZERO))
        bucket = classify(case, today, returning_window_days)

        view.cases.append(
            CaseSummary(
                case_id=case.case_id,
                employee_id=case.employee_id,
                employee_name=case.employee_name,
                staff_class=case.staff_class,
                bucket=bucket,
                maternity_start_date=case.maternity_start_date,
                expected_return_date=case.expected_return_date,
                actual_return_date=case.actual_return_date,
                total_smp=case.total_smp,
                total_cmp=case.total_cmp,
                remaining_smp=case_smp,
                remaining_cmp=case_cmp,
                calculation_status=case.calculation_status,
                periods_pending=sum(1 for p in case.periods if p.status == "pending"),
            )
        )
        view.bucket_counts[bucket.value] += 1
        remaining_smp += case_smp
        remaining_cmp += case_cmp

    view.remaining_smp = round_money(remaining_smp)
    view.remaining_cmp = round_money(remaining_cmp)
    return view


def period_detail(case: MaternityCase) -> list[MonthGroup]:
    """Group a case's periods by the calendar month they start in."""
    groups: dict[str, list[MaternityPeriod]] = {}
    for period in sorted(case.periods, key=lambda p: p.period_number):
        groups.setdefault(period.month_key, []).append(period)

    return [
        MonthGroup(
            month=month,
            periods=periods,
            smp_total=round_money(sum((p.smp_amount for p in periods), ZERO)),
            cmp_total=round_money(sum((p.company_amount for p in periods), ZERO)),
            holiday_total=round_money(sum((p.holiday_accrued for p in periods), ZERO)),
        )
        for month, periods in groups.items()
    ]
