"""Maternity period generation against the payroll calendar."""

from __future__ import annotations

import calendar
import logging
from collections.abc import Mapping
from datetime import date, datetime, timedelta
from decimal import Decimal

from maternity_pay.calculators.calendar_resolver import (
    PayrollCalendarResolver,
    PeriodResolutionError,
)
from maternity_pay.calculators.types import (
    ZERO,
    CalendarPeriod,
    CaseDates,
    PeriodSkeleton,
    StaffClass,
)

logger = logging.getLogger(__name__)

DEFAULT_SYNTHETIC_PERIOD_LIMIT = 15
DEFAULT_SYNTHETIC_PAY_DAY = 28


def period_id_for(case_id: str, period_number: int) -> str:
    """Deterministic period identifier within a case."""
    return f"{case_id}_P{period_number}"


def month_key(value: date) -> str:
    """Year-month key used by the monthly SMP breakdown."""
    return f"{value.year:04d}-{value.month:02d}"


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping to the end of short months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def generate_periods(
    case_id: str,
    dates: CaseDates,
    staff_class: StaffClass,
    resolver: PayrollCalendarResolver,
    synthetic_period_limit: int = DEFAULT_SYNTHETIC_PERIOD_LIMIT,
    synthetic_pay_day: int = DEFAULT_SYNTHETIC_PAY_DAY,
) -> list[PeriodSkeleton]:
    """Produce the ordered ledger periods spanned by a leave.

    Alignment is driven by the SMP start date. When the calendar cannot
    place that date, synthetic monthly periods are generated from the
    maternity start date instead.
    """
    effective_end = dates.effective_end_date

    try:
        first = resolver.resolve(dates.smp_start_date, staff_class)
    except PeriodResolutionError as e:
        logger.warning(
            "Case %s: %s; falling back to synthetic monthly periods", case_id, e
        )
        return _synthetic_periods(
            case_id,
            dates.maternity_start_date,
            effective_end,
            synthetic_period_limit,
            synthetic_pay_day,
        )

    selected: list[CalendarPeriod] = []
    for period in resolver.following(first):
        if period.period_start > effective_end:
            break
        selected.append(period)

    # The resolved period always belongs to the leave, even when an hourly
    # cutoff places the SMP start ahead of its period_start.
    if not selected:
        selected.append(first)

    return [
        PeriodSkeleton(
            period_id=period_id_for(case_id, number),
            period_number=number,
            period_name=period.period_name,
            period_start=period.period_start,
            period_end=period.period_end,
            pay_date=period.pay_date,
        )
        for number, period in enumerate(selected, start=1)
    ]


def _synthetic_periods(
    case_id: str,
    start: date,
    effective_end: date,
    limit: int,
    pay_day: int,
) -> list[PeriodSkeleton]:
    periods: list[PeriodSkeleton] = []
    period_start = start
    while period_start <= effective_end:
        if len(periods) >= limit:
            logger.warning(
                "Case %s: synthetic period limit of %d reached before %s",
                case_id,
                limit,
                effective_end,
            )
            break
        number = len(periods) + 1
        next_start = add_months(start, number)
        periods.append(
            PeriodSkeleton(
                period_id=period_id_for(case_id, number),
                period_number=number,
                period_name=f"{period_start:%B %Y}",
                period_start=period_start,
                period_end=next_start - timedelta(days=1),
                pay_date=date(period_start.year, period_start.month, pay_day),
                is_synthetic=True,
            )
        )
        period_start = next_start
    return periods


def apply_monthly_breakdown(
    periods: list,
    breakdown: Mapping[str, Decimal],
    entered_by: str,
    entered_at: datetime,
) -> int:
    """Seed SMP amounts from a year-month breakdown.

    Works on PeriodSkeleton or ledger rows alike. Periods whose month has
    no breakdown entry are left untouched. Returns the number of periods
    seeded.
    """
    seeded = 0
    for period in periods:
        amount = breakdown.get(month_key(period.period_start))
        if amount is None:
            continue
        amount = Decimal(amount)
        period.smp_amount = amount
        period.data_complete = amount > ZERO
        period.status = "amounts_entered" if period.data_complete else "pending"
        period.entered_by = entered_by
        period.entered_at = entered_at
        seeded += 1
    return seeded
