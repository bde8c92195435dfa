"""Input validation for case and period edits."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

BREAKDOWN_TOLERANCE = Decimal("0.01")
MONTH_KEY = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

DATE_FIELDS = (
    "baby_due_date",
    "maternity_start_date",
    "smp_start_date",
    "expected_return_date",
)
KEY_DATE_FIELDS = frozenset(DATE_FIELDS)

UPDATABLE_CASE_FIELDS = frozenset(
    {
        *DATE_FIELDS,
        "actual_return_date",
        "total_smp",
        "monthly_smp_breakdown",
        "average_weekly_earnings",
        "cmp_weeks_entitlement",
    }
)
AMOUNT_FIELDS = frozenset({"smp_amount", "company_amount", "holiday_accrued"})
NOTE_FIELDS = frozenset({"smp_notes", "company_notes", "holiday_notes"})
PERIOD_FIELDS = AMOUNT_FIELDS | NOTE_FIELDS


class ValidationError(Exception):
    """Raised when input is missing or inconsistent.

    Carries every problem found so the caller can fix them in one pass.
    """

    def __init__(self, messages: list[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


@dataclass
class CaseDetails:
    """Form input for opening a case."""

    employee_id: str | None = None
    baby_due_date: date | None = None
    maternity_start_date: date | None = None
    smp_start_date: date | None = None
    expected_return_date: date | None = None
    actual_return_date: date | None = None
    total_smp: Decimal | None = None
    average_weekly_earnings: Decimal | None = None
    cmp_weeks_entitlement: int | None = None
    monthly_smp_breakdown: dict[str, Decimal] = field(default_factory=dict)


def validate_case_details(details: CaseDetails, max_cmp_weeks: int) -> None:
    """Check a new case before anything is generated or persisted."""
    errors: list[str] = []

    if not (details.employee_id and details.employee_id.strip()):
        errors.append("Employee ID is required")
    for name in DATE_FIELDS:
        if getattr(details, name) is None:
            errors.append(f"{_label(name)} is required")
    if details.total_smp is None:
        errors.append("Total SMP is required")
    if details.average_weekly_earnings is None:
        errors.append("Average weekly earnings is required")

    _check_dates(
        details.maternity_start_date,
        details.smp_start_date,
        details.expected_return_date,
        details.actual_return_date,
        errors,
    )
    _check_non_negative("Total SMP", details.total_smp, errors)
    _check_non_negative("Average weekly earnings", details.average_weekly_earnings, errors)
    if details.cmp_weeks_entitlement is not None:
        _check_entitlement(details.cmp_weeks_entitlement, max_cmp_weeks, errors)
    errors.extend(validate_monthly_breakdown(details.monthly_smp_breakdown, details.total_smp))

    if errors:
        raise ValidationError(errors)


def validate_case_updates(
    current: Mapping[str, Any], updates: Mapping[str, Any], max_cmp_weeks: int
) -> None:
    """Check a partial update against the case it will be merged into."""
    errors: list[str] = []

    unknown = sorted(set(updates) - UPDATABLE_CASE_FIELDS)
    if unknown:
        errors.append(f"Fields cannot be updated: {', '.join(unknown)}")

    for name in DATE_FIELDS:
        if name in updates and updates[name] is None:
            errors.append(f"{_label(name)} cannot be cleared")
    for name in ("total_smp", "average_weekly_earnings"):
        if name in updates:
            if updates[name] is None:
                errors.append(f"{_label(name)} cannot be cleared")
            else:
                _check_non_negative(_label(name), updates[name], errors)
    if "cmp_weeks_entitlement" in updates:
        _check_entitlement(updates["cmp_weeks_entitlement"], max_cmp_weeks, errors)

    merged = {**current, **{k: v for k, v in updates.items() if k in UPDATABLE_CASE_FIELDS}}
    _check_dates(
        merged.get("maternity_start_date"),
        merged.get("smp_start_date"),
        merged.get("expected_return_date"),
        merged.get("actual_return_date"),
        errors,
    )
    if "monthly_smp_breakdown" in updates or "total_smp" in updates:
        errors.extend(
            validate_monthly_breakdown(
                merged.get("monthly_smp_breakdown") or {}, merged.get("total_smp")
            )
        )

    if errors:
        raise ValidationError(errors)


def validate_monthly_breakdown(
    breakdown: Mapping[str, Any] | None, total_smp: Decimal | None
) -> list[str]:
    """Check the year-month SMP breakdown; returns error messages."""
    if not breakdown:
        return []

    errors: list[str] = []
    total = Decimal("0")
    for key, raw in breakdown.items():
        if not MONTH_KEY.match(str(key)):
            errors.append(f"Breakdown month '{key}' must be in YYYY-MM format")
        amount = _to_decimal(raw)
        if amount is None:
            errors.append(f"Breakdown amount for {key} is not a number")
            continue
        if amount < 0:
            errors.append(f"Breakdown amount for {key} cannot be negative")
        total += amount

    if total_smp is not None and abs(total - Decimal(total_smp)) > BREAKDOWN_TOLERANCE:
        errors.append(
            f"Monthly breakdown totals {total:.2f} but total SMP is {Decimal(total_smp):.2f}"
        )
    return errors


def validate_period_amounts(amounts: Mapping[str, Any]) -> None:
    """Check a per-period amount edit."""
    errors: list[str] = []

    unknown = sorted(set(amounts) - PERIOD_FIELDS)
    if unknown:
        errors.append(f"Fields cannot be updated on a period: {', '.join(unknown)}")
    if not amounts:
        errors.append("No period fields supplied")

    for name in sorted(AMOUNT_FIELDS & set(amounts)):
        value = amounts[name]
        if value is None:
            errors.append(f"{_label(name)} cannot be cleared")
        else:
            _check_non_negative(_label(name), value, errors)

    if errors:
        raise ValidationError(errors)


def validate_archive_reason(reason: str | None) -> None:
    if not (reason and reason.strip()):
        raise ValidationError(["A reason is required to archive a case"])


def _check_dates(
    maternity_start: date | None,
    smp_start: date | None,
    expected_return: date | None,
    actual_return: date | None,
    errors: list[str],
) -> None:
    if maternity_start and expected_return and maternity_start >= expected_return:
        errors.append("Maternity start date must be before the expected return date")
    if smp_start and expected_return and smp_start >= expected_return:
        errors.append("SMP start date must be before the expected return date")
    if maternity_start and actual_return and actual_return <= maternity_start:
        errors.append("Actual return date must be after the maternity start date")


def _check_non_negative(label: str, value: Any, errors: list[str]) -> None:
    if value is None:
        return
    amount = _to_decimal(value)
    if amount is None:
        errors.append(f"{label} is not a number")
    elif amount < 0:
        errors.append(f"{label} cannot be negative")


def _check_entitlement(value: Any, max_weeks: int, errors: list[str]) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        errors.append("CMP weeks entitlement must be a whole number of weeks")
    elif not 0 <= value <= max_weeks:
        errors.append(f"CMP weeks entitlement must be between 0 and {max_weeks}")


def _to_decimal(value: Any) -> Decimal | None:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _label(name: str) -> str:
    label = name.replace("_", " ").replace("smp", "SMP").replace("cmp", "CMP")
    return label[0].upper() + label[1:]
