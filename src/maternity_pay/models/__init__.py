"""ORM models."""

from maternity_pay.models.base import Base, TimestampMixin
from maternity_pay.models.calendar import PayrollPeriod
from maternity_pay.models.case import CaseAuditEvent, MaternityCase, MaternityPeriod
from maternity_pay.models.employee import Employee

__all__ = [
    "Base",
    "TimestampMixin",
    "PayrollPeriod",
    "Employee",
    "MaternityCase",
    "MaternityPeriod",
    "CaseAuditEvent",
]
