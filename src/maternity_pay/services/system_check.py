"""Payroll calendar completeness self-check."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from maternity_pay.calculators.types import CalendarPeriod, StaffClass


@dataclass
class StaffClassCoverage:
    staff_class: StaffClass
    period_count: int = 0
    first_start: date | None = None
    last_end: date | None = None
    missing_cutoff: list[str] = field(default_factory=list)


@dataclass
class CalendarHealthReport:
    as_of: date
    horizon: date
    coverage: dict[str, StaffClassCoverage] = field(default_factory=dict)
    issues: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues


def check_calendar(
    periods: Iterable[CalendarPeriod], today: date, horizon_days: int
) -> CalendarHealthReport:
    """Report whether the calendar can serve maternity cases.

    Flags a staff class with no periods, hourly periods without a cutoff
    date, and calendars that end before today + horizon_days.
    """
    horizon = today + timedelta(days=horizon_days)
    report = CalendarHealthReport(
        as_of=today,
        horizon=horizon,
        coverage={sc.value: StaffClassCoverage(staff_class=sc) for sc in StaffClass},
    )

    for period in periods:
        cov = report.coverage[StaffClass(period.staff_class).value]
        cov.period_count += 1
        if cov.first_start is None or period.period_start < cov.first_start:
            cov.first_start = period.period_start
        if cov.last_end is None or period.period_end > cov.last_end:
            cov.last_end = period.period_end
        if period.staff_class == StaffClass.HOURLY and period.cutoff_date is None:
            cov.missing_cutoff.append(period.period_name)

    for key, cov in report.coverage.items():
        if cov.period_count == 0:
            report.issues.append(f"No {key} payroll periods loaded")
            continue
        if cov.missing_cutoff:
            report.issues.append(
                f"{len(cov.missing_cutoff)} hourly period(s) missing a cutoff date: "
                + ", ".join(cov.missing_cutoff)
            )
        if cov.last_end is not None and cov.last_end < horizon:
            report.issues.append(
                f"{key} calendar ends {cov.last_end.isoformat()}, "
                f"before the required horizon {horizon.isoformat()}"
            )

    return report
