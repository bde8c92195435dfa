"""Payroll calendar loading."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from maternity_pay.calculators.calendar_resolver import PayrollCalendarResolver
from maternity_pay.calculators.types import CalendarPeriod, StaffClass
from maternity_pay.models import PayrollPeriod


def to_calendar_period(row: PayrollPeriod) -> CalendarPeriod:
    """Convert a calendar row, keeping the cutoff date verbatim."""
    return CalendarPeriod(
        staff_class=StaffClass(row.staff_class),
        period_name=row.period_name,
        period_start=row.period_start,
        period_end=row.period_end,
        pay_date=row.pay_date,
        cutoff_date=row.cutoff_date,
    )


def period_from_record(record: Mapping[str, Any]) -> PayrollPeriod:
    """Build a calendar row from a plain mapping (ISO date strings allowed)."""

    def _date(value: Any) -> date | None:
        if value is None or value == "":
            return None
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value))

    return PayrollPeriod(
        staff_class=StaffClass(str(record["staff_class"]).lower()).value,
        period_name=record["period_name"],
        period_start=_date(record["period_start"]),
        period_end=_date(record["period_end"]),
        pay_date=_date(record["pay_date"]),
        cutoff_date=_date(record.get("cutoff_date")),
    )


class PayrollCalendarSource:
    """Loads the payroll calendar from the database."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_calendar(self) -> list[CalendarPeriod]:
        result = await self.session.execute(
            select(PayrollPeriod).order_by(PayrollPeriod.staff_class, PayrollPeriod.period_start)
        )
        return [to_calendar_period(row) for row in result.scalars().all()]

    async def load_resolver(self) -> PayrollCalendarResolver:
        return PayrollCalendarResolver(await self.load_calendar())

    async def add_periods(self, records: Iterable[Mapping[str, Any]]) -> int:
        """Insert calendar periods; returns the number added."""
        rows = [period_from_record(record) for record in records]
        self.session.add_all(rows)
        await self.session.flush()
        return len(rows)
