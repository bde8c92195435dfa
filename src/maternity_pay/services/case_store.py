"""Per-case persistence with optimistic concurrency."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from maternity_pay.models import CaseAuditEvent, MaternityCase

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Base for unknown case, period, or employee lookups."""


class CaseNotFoundError(NotFoundError):
    """Raised when a case id does not exist."""

    def __init__(self, case_id: str):
        self.case_id = case_id
        super().__init__(f"Maternity case {case_id} not found")


class PeriodNotFoundError(NotFoundError):
    """Raised when a period id does not belong to a case."""

    def __init__(self, case_id: str, period_id: str):
        self.case_id = case_id
        self.period_id = period_id
        super().__init__(f"Period {period_id} not found on case {case_id}")


class PersistenceError(Exception):
    """Raised when a write to the case store fails."""

    def __init__(self, message: str, case_id: str | None = None):
        self.case_id = case_id
        super().__init__(message)


class StaleCaseError(PersistenceError):
    """Raised when a case was changed by someone else since it was read."""

    def __init__(
        self,
        case_id: str,
        expected_version: int | None,
        actual_version: int | None = None,
    ):
        self.expected_version = expected_version
        self.actual_version = actual_version
        if actual_version is None:
            detail = f"version {expected_version} is no longer current"
        else:
            detail = f"expected version {expected_version}, found {actual_version}"
        super().__init__(
            f"Case {case_id} was modified concurrently ({detail})",
            case_id=case_id,
        )


class CaseStore:
    """Keyed store of maternity cases.

    Each case row carries a version number that SQLAlchemy checks on every
    UPDATE, so two writers can never silently overwrite each other. A
    caller that read the case earlier (for example an HTTP client holding
    an ETag) can also pass the version it saw to save().

    Failed writes roll back the session; the caller must re-read the case
    before trying again.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_all(self, include_archived: bool = False) -> list[MaternityCase]:
        """Load cases ordered by maternity start date."""
        query = select(MaternityCase)
        if not include_archived:
            query = query.where(MaternityCase.status == "active")
        query = query.order_by(MaternityCase.maternity_start_date, MaternityCase.case_id)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get(self, case_id: str) -> MaternityCase:
        """Load one case with its periods.

        Raises:
            CaseNotFoundError: If the case does not exist
        """
        result = await self.session.execute(
            select(MaternityCase).where(MaternityCase.case_id == case_id)
        )
        case = result.scalar_one_or_none()
        if case is None:
            raise CaseNotFoundError(case_id)
        return case

    def check_version(self, case: MaternityCase, expected_version: int | None) -> None:
        """Fail fast if the caller's view of the case is out of date."""
        if expected_version is not None and case.version != expected_version:
            raise StaleCaseError(case.case_id, expected_version, case.version)

    async def add(self, case: MaternityCase) -> MaternityCase:
        """Persist a new case."""
        self.session.add(case)
        await self._flush(case.case_id, case.version)
        return case

    async def save(
        self, case: MaternityCase, expected_version: int | None = None
    ) -> MaternityCase:
        """Persist changes to an existing case.

        Raises:
            StaleCaseError: If the stored version differs from the expected one
            PersistenceError: If the write fails
        """
        self.check_version(case, expected_version)
        await self._flush(case.case_id, case.version)
        return case

    async def record_audit(
        self,
        case_id: str,
        action: str,
        actor: str,
        details: dict[str, Any] | None = None,
    ) -> CaseAuditEvent:
        """Record an audit event for a case."""
        event = CaseAuditEvent(
            case_id=case_id,
            action=action,
            actor=actor,
            details=details,
        )
        self.session.add(event)
        return event

    async def audit_trail(self, case_id: str) -> list[CaseAuditEvent]:
        await self._flush(case_id, None)
        result = await self.session.execute(
            select(CaseAuditEvent)
            .where(CaseAuditEvent.case_id == case_id)
            .order_by(CaseAuditEvent.audit_event_id)
        )
        return list(result.scalars().all())

    async def commit(self) -> None:
        """Commit the unit of work."""
        pending = [
            (obj.case_id, obj.version)
            for obj in self.session.dirty
            if isinstance(obj, MaternityCase)
        ]
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            if len(pending) == 1:
                raise StaleCaseError(*pending[0]) from e
            raise PersistenceError(f"A case was modified concurrently: {e}") from e
        except SQLAlchemyError as e:
            logger.exception("Commit to case store failed")
            await self.session.rollback()
            raise PersistenceError(f"Failed to commit case changes: {e}") from e

    async def _flush(self, case_id: str, read_version: int | None) -> None:
        """Flush pending writes; read_version is the version the write was based on."""
        try:
            await self.session.flush()
        except StaleDataError as e:
            await self.session.rollback()
            raise StaleCaseError(case_id, read_version) from e
        except SQLAlchemyError as e:
            logger.exception("Write of case %s failed", case_id)
            await self.session.rollback()
            raise PersistenceError(f"Failed to save case {case_id}: {e}", case_id=case_id) from e
