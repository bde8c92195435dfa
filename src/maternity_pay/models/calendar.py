"""Payroll calendar model."""

from __future__ import annotations

from datetime import date

from sqlalchemy import CheckConstraint, Date, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from maternity_pay.models.base import Base, TimestampMixin


class PayrollPeriod(Base, TimestampMixin):
    """One pay run of the employer's payroll calendar.

    Hourly periods carry a cutoff date: pay events after the cutoff are
    deferred to this period's run.
    """

    __tablename__ = "payroll_period"

    payroll_period_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    staff_class: Mapped[str] = mapped_column(String, nullable=False)
    period_name: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    cutoff_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "staff_class",
            "period_start",
            name="payroll_period_class_start_unique",
        ),
        CheckConstraint(
            "staff_class IN ('salaried', 'hourly')",
            name="payroll_period_staff_class_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_period_dates_check"),
    )
