"""Type definitions for the maternity pay calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

ZERO = Decimal("0")
CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """Round to pennies, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class StaffClass(str, Enum):
    """Staff classification; selects the payroll calendar and matching rule."""

    SALARIED = "salaried"
    HOURLY = "hourly"


class PayType(str, Enum):
    """Pay type as recorded in the employee directory."""

    SALARY = "salary"
    HOURLY = "hourly"

    @property
    def staff_class(self) -> StaffClass:
        return StaffClass.SALARIED if self is PayType.SALARY else StaffClass.HOURLY


class AllocationNote(str, Enum):
    """Why a period received (or did not receive) company maternity pay."""

    ENTITLED = "entitled"
    BEYOND_ENTITLEMENT = "beyond_entitlement"
    NO_SMP_FOR_PERIOD = "no_smp_for_period"
    BEFORE_SMP_START = "before_smp_start"


@dataclass(frozen=True)
class CalendarPeriod:
    """A payroll calendar period (read-only input)."""

    staff_class: StaffClass
    period_name: str
    period_start: date
    period_end: date
    pay_date: date
    cutoff_date: date | None = None


@dataclass(frozen=True)
class EmployeeSnapshot:
    """Employee details frozen onto a case when it is opened."""

    employee_id: str
    full_name: str
    location: str
    staff_class: StaffClass
    annual_salary: Decimal | None = None
    hourly_rate: Decimal | None = None
    contracted_hours: Decimal | None = None


@dataclass(frozen=True)
class CaseDates:
    """The dates that drive period generation."""

    baby_due_date: date
    maternity_start_date: date
    smp_start_date: date
    expected_return_date: date
    actual_return_date: date | None = None

    @property
    def effective_end_date(self) -> date:
        """Last day of leave: actual return if known, else expected return."""
        return self.actual_return_date or self.expected_return_date


@dataclass
class PeriodSkeleton:
    """A generated ledger period before any amounts are entered."""

    period_id: str
    period_number: int
    period_name: str
    period_start: date
    period_end: date
    pay_date: date
    is_synthetic: bool = False
    smp_amount: Decimal = ZERO
    company_amount: Decimal = ZERO
    holiday_accrued: Decimal = ZERO
    data_complete: bool = False
    status: str = "pending"
    entered_by: str | None = None
    entered_at: datetime | None = None

@dataclass(frozen=True)
class AllocationInput:
    """The slice of a ledger period the CMP engine reads."""

    period_number: int
    period_start: date
    period_end: date
    smp_amount: Decimal


@dataclass(frozen=True)
class PeriodAllocation:
    """CMP outcome for one period."""

    period_number: int
    weeks_in_period: int
    weeks_applied: int
    company_amount: Decimal
    note: AllocationNote


@dataclass
class CMPAllocationResult:
    """Outcome of allocating the CMP entitlement across a case."""

    target_weekly_amount: Decimal
    entitlement_weeks: int
    allocations: list[PeriodAllocation] = field(default_factory=list)
    weeks_consumed: int = 0
    total_cmp: Decimal = ZERO

    def for_period(self, period_number: int) -> PeriodAllocation | None:
        for allocation in self.allocations:
            if allocation.period_number == period_number:
                return allocation
        return None

    @property
    def remaining_weeks(self) -> int:
        return self.entitlement_weeks - self.weeks_consumed
