"""Maternity pay calculation pipeline."""

from maternity_pay.calculators.calendar_resolver import (
    PayrollCalendarResolver,
    PeriodResolutionError,
)
from maternity_pay.calculators.cmp_engine import (
    CalculationError,
    CMPEngine,
    contracted_weekly_earnings,
    target_weekly_amount,
    weeks_in_period,
)
from maternity_pay.calculators.period_generator import (
    apply_monthly_breakdown,
    generate_periods,
    month_key,
)

__all__ = [
    "PayrollCalendarResolver",
    "PeriodResolutionError",
    "CalculationError",
    "CMPEngine",
    "contracted_weekly_earnings",
    "target_weekly_amount",
    "weeks_in_period",
    "apply_monthly_breakdown",
    "generate_periods",
    "month_key",
]
