"""Maternity pay services."""

from maternity_pay.services.case_service import (
    CaseResult,
    CaseWarning,
    MaternityCaseService,
    SmpStartCheck,
)
from maternity_pay.services.case_store import (
    CaseNotFoundError,
    CaseStore,
    NotFoundError,
    PeriodNotFoundError,
    PersistenceError,
    StaleCaseError,
)
from maternity_pay.services.state_machine import (
    CalculationStatus,
    CaseStateMachine,
    CaseStatus,
    InvalidTransitionError,
    PeriodStatus,
)
from maternity_pay.services.validation import CaseDetails, ValidationError

__all__ = [
    "CaseResult",
    "CaseWarning",
    "MaternityCaseService",
    "SmpStartCheck",
    "CaseNotFoundError",
    "CaseStore",
    "NotFoundError",
    "PeriodNotFoundError",
    "PersistenceError",
    "StaleCaseError",
    "CalculationStatus",
    "CaseStateMachine",
    "CaseStatus",
    "InvalidTransitionError",
    "PeriodStatus",
    "CaseDetails",
    "ValidationError",
]
