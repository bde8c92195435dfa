"""Company maternity pay (CMP) entitlement engine."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import date
from decimal import Decimal, InvalidOperation

from maternity_pay.calculators.types import (
    ZERO,
    AllocationInput,
    AllocationNote,
    CMPAllocationResult,
    EmployeeSnapshot,
    PeriodAllocation,
    StaffClass,
    round_money,
)

WEEKS_PER_YEAR = Decimal("52")


class CalculationError(Exception):
    """Raised when CMP cannot be calculated from the inputs given."""

    def __init__(self, message: str, case_id: str | None = None):
        self.case_id = case_id
        super().__init__(message)


def contracted_weekly_earnings(snapshot: EmployeeSnapshot) -> Decimal:
    """Weekly earnings implied by the employee's contract.

    Salaried staff earn annual_salary / 52. Hourly staff earn
    hourly_rate * contracted_hours; a zero-hours contract earns zero.
    """
    if snapshot.staff_class == StaffClass.SALARIED:
        if snapshot.annual_salary is None:
            raise CalculationError(
                f"Employee {snapshot.employee_id} is salaried but has no annual salary"
            )
        return round_money(Decimal(snapshot.annual_salary) / WEEKS_PER_YEAR)

    hours = Decimal(snapshot.contracted_hours or 0)
    if hours == ZERO:
        return round_money(ZERO)
    if snapshot.hourly_rate is None:
        raise CalculationError(
            f"Employee {snapshot.employee_id} is hourly but has no hourly rate"
        )
    return round_money(Decimal(snapshot.hourly_rate) * hours)


def target_weekly_amount(
    average_weekly_earnings: Decimal, contracted_weekly: Decimal
) -> Decimal:
    """The weekly pay CMP tops SMP up to."""
    return round_money(max(Decimal(average_weekly_earnings), Decimal(contracted_weekly)))


def weeks_in_period(smp_start_date: date, period_start: date, period_end: date) -> int:
    """Number of (part) weeks of SMP inside a period.

    Counts from the later of the SMP start and the period start to the
    period end inclusive, rounding part weeks up.
    """
    effective_start = max(smp_start_date, period_start)
    days = (period_end - effective_start).days + 1
    if days <= 0:
        return 0
    return math.ceil(days / 7)


class CMPEngine:
    """Allocates the capped CMP entitlement across a case's periods.

    Periods are processed in period_number order. Each SMP-bearing period
    draws min(weeks_in_period, remaining entitlement) weeks and is paid
    target_weekly * weeks - SMP, floored at zero. Periods with no SMP
    entered, periods before the SMP start, and periods after the
    entitlement is exhausted pay nothing and draw nothing.

    The engine is pure: identical inputs always give identical output.
    """

    def allocate(
        self,
        periods: Sequence[AllocationInput],
        smp_start_date: date,
        target_weekly: Decimal,
        entitlement_weeks: int,
    ) -> CMPAllocationResult:
        """Allocate CMP across periods.

        Raises:
            CalculationError: If the inputs are inconsistent
        """
        if entitlement_weeks < 0:
            raise CalculationError(f"Entitlement cannot be negative: {entitlement_weeks}")

        try:
            target = Decimal(target_weekly)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise CalculationError(f"Invalid target weekly amount: {target_weekly!r}") from e
        if target < ZERO:
            raise CalculationError(f"Target weekly amount cannot be negative: {target}")

        ordered = self._validate_order(periods)

        result = CMPAllocationResult(
            target_weekly_amount=target,
            entitlement_weeks=entitlement_weeks,
        )
        total = ZERO

        for period in ordered:
            smp = Decimal(period.smp_amount or 0)
            if smp < ZERO:
                raise CalculationError(
                    f"Period {period.period_number} has negative SMP amount {smp}"
                )

            weeks = weeks_in_period(smp_start_date, period.period_start, period.period_end)
            remaining = entitlement_weeks - result.weeks_consumed

            if weeks == 0:
                allocation = self._nil(period, weeks, AllocationNote.BEFORE_SMP_START)
            elif remaining <= 0:
                allocation = self._nil(period, weeks, AllocationNote.BEYOND_ENTITLEMENT)
            elif smp == ZERO:
                allocation = self._nil(period, weeks, AllocationNote.NO_SMP_FOR_PERIOD)
            else:
                available = min(weeks, remaining)
                amount = round_money(max(ZERO, target * available - smp))
                result.weeks_consumed += available
                allocation = PeriodAllocation(
                    period_number=period.period_number,
                    weeks_in_period=weeks,
                    weeks_applied=available,
                    company_amount=amount,
                    note=AllocationNote.ENTITLED,
                )

            result.allocations.append(allocation)
            total += allocation.company_amount

        result.total_cmp = round_money(total)
        return result

    @staticmethod
    def _nil(period: AllocationInput, weeks: int, note: AllocationNote) -> PeriodAllocation:
        return PeriodAllocation(
            period_number=period.period_number,
            weeks_in_period=weeks,
            weeks_applied=0,
            company_amount=round_money(ZERO),
            note=note,
        )

    @staticmethod
    def _validate_order(periods: Sequence[AllocationInput]) -> list[AllocationInput]:
        """Sort by period_number and confirm that order is chronological."""
        ordered = sorted(periods, key=lambda p: p.period_number)
        for previous, current in zip(ordered, ordered[1:]):
            if current.period_number == previous.period_number:
                raise CalculationError(
                    f"Duplicate period number {current.period_number}"
                )
            if current.period_start <= previous.period_start:
                raise CalculationError(
                    f"Period {current.period_number} starts {current.period_start}, "
                    f"not after period {previous.period_number} ({previous.period_start})"
                )
        return ordered
