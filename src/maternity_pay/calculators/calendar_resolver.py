"""Payroll calendar resolution by staff class."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from maternity_pay.calculators.types import CalendarPeriod, StaffClass

logger = logging.getLogger(__name__)


class PeriodResolutionError(Exception):
    """Raised when no payroll period matches a date."""

    def __init__(self, as_of_date: date, staff_class: StaffClass):
        self.as_of_date = as_of_date
        self.staff_class = staff_class
        super().__init__(
            f"No {staff_class.value} payroll period covers {as_of_date.isoformat()}"
        )


class PayrollCalendarResolver:
    """Resolves the payroll period a date falls into.

    Matching rules differ by staff class:
    - Salaried: period_start <= date <= period_end
    - Hourly: cutoff_date < date <= period_end

    A date equal to an hourly cutoff belongs to the previous pay run, and
    an hourly period without a cutoff date can never match.
    """

    def __init__(self, periods: Iterable[CalendarPeriod]):
        self._by_class: dict[StaffClass, list[CalendarPeriod]] = {
            staff_class: [] for staff_class in StaffClass
        }
        for period in periods:
            self._by_class[StaffClass(period.staff_class)].append(period)

        for class_periods in self._by_class.values():
            class_periods.sort(key=lambda p: p.period_start)

        for period in self._by_class[StaffClass.HOURLY]:
            if period.cutoff_date is None:
                logger.warning(
                    "Hourly payroll period %s (%s to %s) has no cutoff date and will never match",
                    period.period_name,
                    period.period_start,
                    period.period_end,
                )

    def periods_for(self, staff_class: StaffClass) -> list[CalendarPeriod]:
        """All periods for a staff class, ordered by period_start."""
        return list(self._by_class[StaffClass(staff_class)])

    @staticmethod
    def matches(period: CalendarPeriod, as_of_date: date) -> bool:
        """Check whether a date belongs to a period under its class rule."""
        if period.staff_class == StaffClass.HOURLY:
            return (
                period.cutoff_date is not None
                and period.cutoff_date < as_of_date <= period.period_end
            )
        return period.period_start <= as_of_date <= period.period_end

    def find(self, as_of_date: date, staff_class: StaffClass) -> CalendarPeriod | None:
        """Return the period containing a date, or None if none matches."""
        candidates = [
            p for p in self._by_class[StaffClass(staff_class)] if self.matches(p, as_of_date)
        ]
        if not candidates:
            return None
        if len(candidates) > 1:
            logger.warning(
                "%d %s payroll periods overlap on %s; using %s",
                len(candidates),
                StaffClass(staff_class).value,
                as_of_date,
                candidates[0].period_name,
            )
        return candidates[0]

    def resolve(self, as_of_date: date, staff_class: StaffClass) -> CalendarPeriod:
        """Return the period containing a date.

        Raises:
            PeriodResolutionError: If no period matches
        """
        period = self.find(as_of_date, staff_class)
        if period is None:
            raise PeriodResolutionError(as_of_date, StaffClass(staff_class))
        return period

    def following(self, period: CalendarPeriod) -> list[CalendarPeriod]:
        """The given period and every later period of the same class."""
        class_periods = self._by_class[StaffClass(period.staff_class)]
        index = class_periods.index(period)
        return class_periods[index:]
