"""Case and period status state machines with transition validation."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from maternity_pay.models import MaternityCase


class CaseStatus(str, Enum):
    """Maternity case status values."""

    ACTIVE = "active"
    ARCHIVED = "archived"


class PeriodStatus(str, Enum):
    """Ledger period workflow status values."""

    PENDING = "pending"
    AMOUNTS_ENTERED = "amounts_entered"


class CalculationStatus(str, Enum):
    """Whether a case's CMP figures can be relied on."""

    PENDING = "pending"
    CALCULATED = "calculated"
    FAILED = "failed"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CaseStateMachine:
    """State machine for maternity case status transitions.

    Allowed transitions:
    - active → archived (terminal, requires a reason)
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        CaseStatus.ACTIVE: [CaseStatus.ARCHIVED],
        CaseStatus.ARCHIVED: [],  # Terminal state
    }

    # Statuses where the case and its periods may be edited
    MUTABLE = {CaseStatus.ACTIVE}

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_modify(cls, status: str) -> bool:
        """Check if case fields and period amounts can be modified."""
        return status in cls.MUTABLE

    @classmethod
    def ensure_mutable(cls, case: MaternityCase, action: str) -> None:
        """Raise if the case can no longer be edited."""
        if not cls.can_modify(case.status):
            raise InvalidTransitionError(
                case.status, case.status, f"cannot {action} an archived case"
            )

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])


class PeriodStateMachine:
    """Workflow status of a ledger period.

    Either status may move to the other; payroll staff can reopen a
    period whose amounts need correcting.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        PeriodStatus.PENDING: [PeriodStatus.AMOUNTS_ENTERED],
        PeriodStatus.AMOUNTS_ENTERED: [PeriodStatus.PENDING],
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        if from_status == to_status:
            return to_status in cls.VALID_TRANSITIONS
        return to_status in cls.VALID_TRANSITIONS.get(from_status, [])

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)
