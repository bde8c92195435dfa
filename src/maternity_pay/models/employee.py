"""Employee directory model."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from maternity_pay.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee master record as exposed by the HR directory."""

    __tablename__ = "employee"

    employee_number: Mapped[str] = mapped_column(String, primary_key=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False, default="")
    pay_type: Mapped[str] = mapped_column(String, nullable=False)
    annual_salary: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    contracted_hours: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)

    __table_args__ = (
        CheckConstraint("pay_type IN ('salary', 'hourly')", name="employee_pay_type_check"),
    )
