"""Employee directory lookups used to snapshot employees onto cases."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from maternity_pay.calculators.types import EmployeeSnapshot, PayType
from maternity_pay.models import Employee
from maternity_pay.services.case_store import NotFoundError


class EmployeeNotFoundError(NotFoundError):
    """Raised when an employee number is not in the directory."""

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found in directory")


@dataclass(frozen=True)
class EmployeeRecord:
    """Directory view of an employee."""

    employee_number: str
    full_name: str
    location: str
    pay_type: PayType
    annual_salary: Decimal | None = None
    hourly_rate: Decimal | None = None
    contracted_hours: Decimal | None = None

    def snapshot(self) -> EmployeeSnapshot:
        """Freeze the fields a maternity case depends on."""
        return EmployeeSnapshot(
            employee_id=self.employee_number,
            full_name=self.full_name,
            location=self.location,
            staff_class=self.pay_type.staff_class,
            annual_salary=self.annual_salary,
            hourly_rate=self.hourly_rate,
            contracted_hours=self.contracted_hours,
        )


class EmployeeDirectory(Protocol):
    """Source of employee master data."""

    async def lookup_by_number(self, employee_number: str) -> EmployeeRecord | None: ...


class SqlEmployeeDirectory:
    """Directory backed by the employee table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def lookup_by_number(self, employee_number: str) -> EmployeeRecord | None:
        result = await self.session.execute(
            select(Employee).where(Employee.employee_number == employee_number)
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            return None
        return EmployeeRecord(
            employee_number=employee.employee_number,
            full_name=employee.full_name,
            location=employee.location,
            pay_type=PayType(employee.pay_type),
            annual_salary=employee.annual_salary,
            hourly_rate=employee.hourly_rate,
            contracted_hours=employee.contracted_hours,
        )


class InMemoryEmployeeDirectory:
    """Directory over a fixed set of records."""

    def __init__(self, records: Iterable[EmployeeRecord] = ()):
        self._records = {r.employee_number: r for r in records}

    def add(self, record: EmployeeRecord) -> None:
        self._records[record.employee_number] = record

    async def lookup_by_number(self, employee_number: str) -> EmployeeRecord | None:
        return self._records.get(employee_number)
