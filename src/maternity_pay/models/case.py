"""Maternity case, pay period ledger, and audit models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from maternity_pay.calculators.types import CaseDates, EmployeeSnapshot, StaffClass
from maternity_pay.models.base import Base, TimestampMixin, utcnow

ZERO = Decimal("0")


class MaternityCase(Base, TimestampMixin):
    """A single employee's maternity leave and the pay owed across it.

    The employee fields are a snapshot frozen at creation time; later
    changes in the directory never reach existing cases.
    """

    __tablename__ = "maternity_case"

    case_id: Mapped[str] = mapped_column(String, primary_key=True)
    employee_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    # Employee snapshot
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    employee_location: Mapped[str] = mapped_column(String, nullable=False, default="")
    staff_class: Mapped[str] = mapped_column(String, nullable=False)
    snapshot_annual_salary: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    snapshot_hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    snapshot_contracted_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)

    # Key dates
    baby_due_date: Mapped[date] = mapped_column(Date, nullable=False)
    maternity_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    smp_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_return_date: Mapped[date] = mapped_column(Date, nullable=False)
    actual_return_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Pay inputs and derived figures
    total_smp: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=ZERO)
    monthly_smp_breakdown: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    average_weekly_earnings: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=ZERO
    )
    contracted_weekly_earnings: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=ZERO
    )
    target_weekly_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=ZERO
    )
    cmp_weeks_entitlement: Mapped[int] = mapped_column(Integer, nullable=False, default=8)
    total_cmp: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=ZERO)
    calculation_status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    calculation_warning: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Lifecycle and audit
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    created_by: Mapped[str] = mapped_column(String, nullable=False)
    last_updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_updated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    archived_by: Mapped[str | None] = mapped_column(String, nullable=True)
    archived_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "staff_class IN ('salaried', 'hourly')",
            name="maternity_case_staff_class_check",
        ),
        CheckConstraint(
            "status IN ('active', 'archived')",
            name="maternity_case_status_check",
        ),
        CheckConstraint(
            "calculation_status IN ('pending', 'calculated', 'failed')",
            name="maternity_case_calculation_status_check",
        ),
        CheckConstraint(
            "maternity_start_date < expected_return_date",
            name="maternity_case_dates_check",
        ),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    periods: Mapped[list[MaternityPeriod]] = relationship(
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="MaternityPeriod.period_number",
        lazy="selectin",
    )

    @property
    def snapshot(self) -> EmployeeSnapshot:
        """The employee details captured when the case was opened."""
        return EmployeeSnapshot(
            employee_id=self.employee_id,
            full_name=self.employee_name,
            location=self.employee_location,
            staff_class=StaffClass(self.staff_class),
            annual_salary=self.snapshot_annual_salary,
            hourly_rate=self.snapshot_hourly_rate,
            contracted_hours=self.snapshot_contracted_hours,
        )

    @property
    def dates(self) -> CaseDates:
        return CaseDates(
            baby_due_date=self.baby_due_date,
            maternity_start_date=self.maternity_start_date,
            smp_start_date=self.smp_start_date,
            expected_return_date=self.expected_return_date,
            actual_return_date=self.actual_return_date,
        )

    @property
    def is_archived(self) -> bool:
        return self.status == "archived"

    def breakdown(self) -> dict[str, Decimal]:
        """Monthly SMP breakdown with amounts as Decimals."""
        return {key: Decimal(value) for key, value in (self.monthly_smp_breakdown or {}).items()}

    def find_period(self, period_id: str) -> MaternityPeriod | None:
        for period in self.periods:
            if period.period_id == period_id:
                return period
        return None


class MaternityPeriod(Base):
    """One payroll period of a maternity case's pay ledger."""

    __tablename__ = "maternity_period"

    period_id: Mapped[str] = mapped_column(String, primary_key=True)
    case_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("maternity_case.case_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    period_name: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_synthetic: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    smp_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=ZERO)
    company_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=ZERO)
    holiday_accrued: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=ZERO)
    cmp_weeks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cmp_note: Mapped[str | None] = mapped_column(String, nullable=True)

    smp_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    holiday_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    entered_by: Mapped[str | None] = mapped_column(String, nullable=True)
    entered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    data_complete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        UniqueConstraint("case_id", "period_number", name="maternity_period_case_number_unique"),
        CheckConstraint(
            "status IN ('pending', 'amounts_entered')",
            name="maternity_period_status_check",
        ),
        CheckConstraint("smp_amount >= 0", name="maternity_period_smp_nonneg"),
        CheckConstraint("company_amount >= 0", name="maternity_period_cmp_nonneg"),
    )

    # Relationships
    case: Mapped[MaternityCase] = relationship(back_populates="periods")

    @property
    def month_key(self) -> str:
        return f"{self.period_start.year:04d}-{self.period_start.month:02d}"

    def refresh_completeness(self) -> None:
        """Recompute data_complete and the derived workflow status."""
        self.data_complete = any(
            (amount or ZERO) > 0
            for amount in (self.smp_amount, self.company_amount, self.holiday_accrued)
        )
        self.status = "amounts_entered" if self.data_complete else "pending"


class CaseAuditEvent(Base, TimestampMixin):
    """Audit trail entry for a maternity case."""

    __tablename__ = "case_audit_event"

    audit_event_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    case_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    actor: Mapped[str] = mapped_column(String, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
