"""Maternity case service - lifecycle orchestrator for cases and their ledgers."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from maternity_pay.calculators.calendar_resolver import PayrollCalendarResolver
from maternity_pay.calculators.cmp_engine import (
    CalculationError,
    CMPEngine,
    contracted_weekly_earnings,
    target_weekly_amount,
)
from maternity_pay.calculators.period_generator import apply_monthly_breakdown, generate_periods
from maternity_pay.calculators.types import (
    ZERO,
    AllocationInput,
    CalendarPeriod,
    CMPAllocationResult,
    StaffClass,
    round_money,
)
from maternity_pay.config import Settings, get_settings
from maternity_pay.models import CaseAuditEvent, MaternityCase, MaternityPeriod
from maternity_pay.models.base import utcnow
from maternity_pay.services.calendar_source import PayrollCalendarSource
from maternity_pay.services.case_store import CaseStore, PeriodNotFoundError
from maternity_pay.services.employee_directory import (
    EmployeeDirectory,
    EmployeeNotFoundError,
    SqlEmployeeDirectory,
)
from maternity_pay.services.state_machine import (
    CalculationStatus,
    CaseStateMachine,
    CaseStatus,
    PeriodStateMachine,
    PeriodStatus,
)
from maternity_pay.services.validation import (
    AMOUNT_FIELDS,
    KEY_DATE_FIELDS,
    NOTE_FIELDS,
    UPDATABLE_CASE_FIELDS,
    CaseDetails,
    ValidationError,
    validate_archive_reason,
    validate_case_details,
    validate_case_updates,
    validate_period_amounts,
)

logger = logging.getLogger(__name__)

RECALCULATE_ON = frozenset({"average_weekly_earnings", "cmp_weeks_entitlement"})


@dataclass(frozen=True)
class CaseWarning:
    """A non-fatal problem found while processing a case."""

    code: str
    message: str


@dataclass
class CaseResult:
    """A case plus any warnings raised while creating it.

    A case created with warnings exists and is persisted, but its CMP
    figures need attention before they are paid.
    """

    case: MaternityCase
    warnings: list[CaseWarning] = field(default_factory=list)

    @property
    def needs_attention(self) -> bool:
        return bool(self.warnings)


@dataclass(frozen=True)
class SmpStartCheck:
    """Whether an SMP start date lines up with the payroll calendar."""

    smp_start_date: date
    staff_class: StaffClass
    valid: bool
    period: CalendarPeriod | None
    message: str


def new_case_id() -> str:
    return f"MAT-{uuid4().hex[:10].upper()}"


def _money(value: Any) -> Decimal:
    return round_money(Decimal(str(value)))


class MaternityCaseService:
    """Service for managing the maternity case lifecycle.

    Operations:
    - create_case: snapshot the employee, generate periods, seed SMP, allocate CMP
    - update_case: merge field edits; date edits regenerate the ledger
    - set_actual_return_date: record the return without regenerating periods
    - update_period_amounts: edit one period; SMP edits reallocate CMP case-wide
    - set_period_status: move a period between pending and amounts_entered
    - archive_case: soft-delete, keeping the ledger for audit
    - recalculate_cmp: force a CMP reallocation
    - validate_smp_start_date: check a date against the payroll calendar

    Every mutation flushes through the CaseStore's version check; call
    commit() to finish the unit of work.
    """

    def __init__(
        self,
        session: AsyncSession,
        employee_directory: EmployeeDirectory | None = None,
        calendar_source: PayrollCalendarSource | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session = session
        self.store = CaseStore(session)
        self.employee_directory = employee_directory or SqlEmployeeDirectory(session)
        self.calendar_source = calendar_source or PayrollCalendarSource(session)
        self.settings = settings or get_settings()
        self.cmp_engine = CMPEngine()
        self._clock = clock

    async def commit(self) -> None:
        await self.store.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_case(self, case_id: str) -> MaternityCase:
        return await self.store.get(case_id)

    async def list_cases(self, include_archived: bool = False) -> list[MaternityCase]:
        return await self.store.load_all(include_archived=include_archived)

    async def audit_trail(self, case_id: str) -> list[CaseAuditEvent]:
        await self.store.get(case_id)
        return await self.store.audit_trail(case_id)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_case(self, details: CaseDetails, actor: str) -> CaseResult:
        """Open a case and build its initial ledger.

        A CMP calculation failure does not block creation: the case is
        saved with zero CMP, calculation_status 'failed', and a warning.

        Raises:
            ValidationError: If the details are incomplete or inconsistent
            EmployeeNotFoundError: If the employee is not in the directory
            PersistenceError: If the case cannot be saved
        """
        validate_case_details(details, self.settings.max_cmp_weeks)
        employee_id = (details.employee_id or "").strip()

        record = await self.employee_directory.lookup_by_number(employee_id)
        if record is None:
            raise EmployeeNotFoundError(employee_id)
        snapshot = record.snapshot()
        now = self._clock()

        case = MaternityCase(
            case_id=new_case_id(),
            employee_id=snapshot.employee_id,
            employee_name=snapshot.full_name,
            employee_location=snapshot.location,
            staff_class=snapshot.staff_class.value,
            snapshot_annual_salary=snapshot.annual_salary,
            snapshot_hourly_rate=snapshot.hourly_rate,
            snapshot_contracted_hours=snapshot.contracted_hours,
            baby_due_date=details.baby_due_date,
            maternity_start_date=details.maternity_start_date,
            smp_start_date=details.smp_start_date,
            expected_return_date=details.expected_return_date,
            actual_return_date=details.actual_return_date,
            total_smp=_money(details.total_smp),
            monthly_smp_breakdown={
                key: str(_money(amount))
                for key, amount in sorted(details.monthly_smp_breakdown.items())
            },
            average_weekly_earnings=_money(details.average_weekly_earnings),
            contracted_weekly_earnings=round_money(ZERO),
            target_weekly_amount=round_money(ZERO),
            cmp_weeks_entitlement=(
                details.cmp_weeks_entitlement
                if details.cmp_weeks_entitlement is not None
                else self.settings.default_cmp_weeks
            ),
            total_cmp=round_money(ZERO),
            calculation_status=CalculationStatus.PENDING.value,
            status=CaseStatus.ACTIVE.value,
            created_by=actor,
            created_at=now,
            last_updated_at=now,
            last_updated_by=actor,
        )

        resolver = await self.calendar_source.load_resolver()
        self._regenerate_periods(case, resolver, actor, now)

        warnings: list[CaseWarning] = []
        try:
            self._recalculate(case)
        except CalculationError as e:
            logger.warning("Case %s created without CMP: %s", case.case_id, e)
            self._clear_cmp(case, CalculationStatus.FAILED, str(e))
            warnings.append(CaseWarning(code="cmp_not_calculated", message=str(e)))

        await self.store.add(case)
        await self.store.record_audit(
            case.case_id,
            "created",
            actor,
            {
                "employee_id": case.employee_id,
                "periods": len(case.periods),
                "total_cmp": str(case.total_cmp),
                "warnings": [w.code for w in warnings],
            },
        )
        logger.info(
            "Created case %s for employee %s with %d periods",
            case.case_id,
            case.employee_id,
            len(case.periods),
        )
        return CaseResult(case=case, warnings=warnings)

    async def update_case(
        self,
        case_id: str,
        updates: Mapping[str, Any],
        actor: str,
        expected_version: int | None = None,
    ) -> MaternityCase:
        """Merge field edits into a case.

        A change to any of the four key dates regenerates the period
        ledger, re-seeds the monthly SMP breakdown and, when average weekly
        earnings are known, reallocates CMP. A change to earnings or
        entitlement alone reallocates CMP.

        Raises:
            CaseNotFoundError, StaleCaseError, InvalidTransitionError,
            ValidationError, CalculationError, PersistenceError
        """
        return await self._apply_updates(case_id, updates, actor, expected_version, "updated")

    async def set_actual_return_date(
        self,
        case_id: str,
        actual_return_date: date | None,
        actor: str,
        expected_version: int | None = None,
    ) -> MaternityCase:
        """Record (or clear) the actual return date.

        The ledger is not regenerated, so entered amounts survive.
        """
        return await self._apply_updates(
            case_id,
            {"actual_return_date": actual_return_date},
            actor,
            expected_version,
            "actual_return_set",
        )

    async def update_period_amounts(
        self,
        case_id: str,
        period_id: str,
        amounts: Mapping[str, Any],
        actor: str,
        expected_version: int | None = None,
    ) -> MaternityCase:
        """Enter amounts or notes for one period.

        An SMP change reallocates CMP over the whole case, overriding any
        manual company amounts. Other edits keep total_cmp equal to the sum
        of period company amounts.
        """
        case = await self._load_mutable(case_id, "edit periods of", expected_version)
        period = case.find_period(period_id)
        if period is None:
            raise PeriodNotFoundError(case_id, period_id)

        validate_period_amounts(amounts)
        now = self._clock()

        smp_changed = (
            "smp_amount" in amounts and _money(amounts["smp_amount"]) != period.smp_amount
        )
        for name in AMOUNT_FIELDS & set(amounts):
            setattr(period, name, _money(amounts[name]))
        for name in NOTE_FIELDS & set(amounts):
            setattr(period, name, amounts[name])
        period.entered_by = actor
        period.entered_at = now
        period.refresh_completeness()

        if smp_changed:
            self._recalculate(case)
        else:
            case.total_cmp = round_money(sum((p.company_amount for p in case.periods), ZERO))

        self._touch(case, actor, now)
        await self.store.save(case, expected_version)
        await self.store.record_audit(
            case_id,
            "period_amounts_updated",
            actor,
            {
                "period_id": period_id,
                "fields": sorted(amounts),
                "smp_amount": str(period.smp_amount),
                "company_amount": str(period.company_amount),
                "cmp_recalculated": smp_changed,
            },
        )
        logger.info("Case %s period %s amounts updated by %s", case_id, period_id, actor)
        return case

    async def set_period_status(
        self,
        case_id: str,
        period_id: str,
        status: str,
        actor: str,
        expected_version: int | None = None,
    ) -> MaternityCase:
        """Set a period's workflow status explicitly."""
        try:
            to_status = PeriodStatus(status)
        except ValueError:
            raise ValidationError([f"Unknown period status '{status}'"]) from None

        case = await self._load_mutable(case_id, "change period status of", expected_version)
        period = case.find_period(period_id)
        if period is None:
            raise PeriodNotFoundError(case_id, period_id)

        from_status = period.status
        PeriodStateMachine.validate_transition(from_status, to_status)
        period.status = to_status.value

        self._touch(case, actor, self._clock())
        await self.store.save(case, expected_version)
        await self.store.record_audit(
            case_id,
            f"period_status:{from_status}:{to_status.value}",
            actor,
            {"period_id": period_id},
        )
        return case

    async def archive_case(
        self,
        case_id: str,
        reason: str,
        actor: str,
        expected_version: int | None = None,
    ) -> MaternityCase:
        """Archive a case. Periods and amounts are kept unchanged.

        Raises:
            InvalidTransitionError: If the case is already archived
            ValidationError: If no reason is given
        """
        case = await self.store.get(case_id)
        self.store.check_version(case, expected_version)
        CaseStateMachine.validate_transition(case.status, CaseStatus.ARCHIVED)
        validate_archive_reason(reason)

        now = self._clock()
        old_status = case.status
        case.status = CaseStatus.ARCHIVED.value
        case.archived_at = now
        case.archived_by = actor
        case.archived_reason = reason.strip()
        self._touch(case, actor, now)

        await self.store.save(case, expected_version)
        await self.store.record_audit(
            case_id,
            f"status_change:{old_status}:{case.status}",
            actor,
            {"reason": case.archived_reason},
        )
        logger.info("Archived case %s: %s", case_id, case.archived_reason)
        return case

    async def recalculate_cmp(
        self,
        case_id: str,
        actor: str,
        expected_version: int | None = None,
    ) -> CMPAllocationResult:
        """Force a CMP reallocation over the case's current ledger."""
        case = await self._load_mutable(case_id, "recalculate", expected_version)
        result = self._recalculate(case)

        self._touch(case, actor, self._clock())
        await self.store.save(case, expected_version)
        await self.store.record_audit(
            case_id,
            "cmp_recalculated",
            actor,
            {
                "total_cmp": str(case.total_cmp),
                "weeks_consumed": result.weeks_consumed,
            },
        )
        logger.info(
            "Recalculated CMP for case %s: total %s over %d weeks",
            case_id,
            case.total_cmp,
            result.weeks_consumed,
        )
        return result

    async def validate_smp_start_date(
        self, smp_start_date: date, staff_class: StaffClass | str
    ) -> SmpStartCheck:
        """Check whether the payroll calendar can place an SMP start date."""
        staff_class = StaffClass(staff_class)
        resolver = await self.calendar_source.load_resolver()
        period = resolver.find(smp_start_date, staff_class)
        if period is None:
            message = (
                f"No {staff_class.value} payroll period covers {smp_start_date.isoformat()}; "
                "synthetic monthly periods will be used"
            )
            return SmpStartCheck(smp_start_date, staff_class, False, None, message)
        return SmpStartCheck(
            smp_start_date,
            staff_class,
            True,
            period,
            f"SMP start falls in payroll period {period.period_name}",
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_mutable(
        self, case_id: str, action: str, expected_version: int | None
    ) -> MaternityCase:
        case = await self.store.get(case_id)
        self.store.check_version(case, expected_version)
        CaseStateMachine.ensure_mutable(case, action)
        return case

    async def _apply_updates(
        self,
        case_id: str,
        updates: Mapping[str, Any],
        actor: str,
        expected_version: int | None,
        action: str,
    ) -> MaternityCase:
        case = await self._load_mutable(case_id, "update", expected_version)

        current: dict[str, Any] = {name: getattr(case, name) for name in UPDATABLE_CASE_FIELDS}
        current["monthly_smp_breakdown"] = case.breakdown()
        validate_case_updates(current, updates, self.settings.max_cmp_weeks)

        normalized = self._normalize_updates(updates)
        changed = sorted(name for name, value in normalized.items() if current[name] != value)
        for name in changed:
            value = normalized[name]
            if name == "monthly_smp_breakdown":
                value = {key: str(amount) for key, amount in sorted(value.items())}
            setattr(case, name, value)

        now = self._clock()
        changed_set = set(changed)
        if changed_set & KEY_DATE_FIELDS:
            resolver = await self.calendar_source.load_resolver()
            self._regenerate_periods(case, resolver, actor, now)
            if case.average_weekly_earnings > ZERO:
                self._recalculate(case)
            else:
                self._clear_cmp(case, CalculationStatus.PENDING, None)
        elif changed_set & RECALCULATE_ON:
            self._recalculate(case)

        self._touch(case, actor, now)
        await self.store.save(case, expected_version)
        await self.store.record_audit(
            case_id,
            action,
            actor,
            {
                "fields": changed,
                "periods_regenerated": bool(changed_set & KEY_DATE_FIELDS),
            },
        )
        logger.info("Case %s %s by %s: %s", case_id, action, actor, ", ".join(changed) or "no changes")
        return case

    @staticmethod
    def _normalize_updates(updates: Mapping[str, Any]) -> dict[str, Any]:
        normalized: dict[str, Any] = {}
        for name, value in updates.items():
            if name in ("total_smp", "average_weekly_earnings"):
                normalized[name] = _money(value)
            elif name == "monthly_smp_breakdown":
                normalized[name] = {key: _money(amount) for key, amount in (value or {}).items()}
            else:
                normalized[name] = value
        return normalized

    def _regenerate_periods(
        self,
        case: MaternityCase,
        resolver: PayrollCalendarResolver,
        actor: str,
        now: datetime,
    ) -> None:
        """Rebuild the ledger from the calendar, discarding entered amounts.

        Rows are reused by period number so period ids stay stable.
        """
        skeletons = generate_periods(
            case.case_id,
            case.dates,
            StaffClass(case.staff_class),
            resolver,
            synthetic_period_limit=self.settings.synthetic_period_limit,
            synthetic_pay_day=self.settings.synthetic_pay_day,
        )
        apply_monthly_breakdown(skeletons, case.breakdown(), actor, now)

        existing = {p.period_number: p for p in case.periods}
        rows: list[MaternityPeriod] = []
        for skeleton in skeletons:
            row = existing.get(skeleton.period_number) or MaternityPeriod(
                period_id=skeleton.period_id
            )
            row.period_number = skeleton.period_number
            row.period_name = skeleton.period_name
            row.period_start = skeleton.period_start
            row.period_end = skeleton.period_end
            row.pay_date = skeleton.pay_date
            row.is_synthetic = skeleton.is_synthetic
            row.smp_amount = round_money(skeleton.smp_amount)
            row.company_amount = round_money(ZERO)
            row.holiday_accrued = round_money(ZERO)
            row.cmp_weeks = 0
            row.cmp_note = None
            row.smp_notes = None
            row.company_notes = None
            row.holiday_notes = None
            row.entered_by = skeleton.entered_by
            row.entered_at = skeleton.entered_at
            row.data_complete = skeleton.data_complete
            row.status = skeleton.status
            rows.append(row)
        case.periods = rows

    def _recalculate(self, case: MaternityCase) -> CMPAllocationResult:
        """Reallocate CMP across every period of the case."""
        contracted = contracted_weekly_earnings(case.snapshot)
        target = target_weekly_amount(case.average_weekly_earnings, contracted)
        result = self.cmp_engine.allocate(
            [
                AllocationInput(
                    period_number=p.period_number,
                    period_start=p.period_start,
                    period_end=p.period_end,
                    smp_amount=p.smp_amount,
                )
                for p in case.periods
            ],
            case.smp_start_date,
            target,
            case.cmp_weeks_entitlement,
        )

        for period in case.periods:
            allocation = result.for_period(period.period_number)
            if allocation is None:
                raise CalculationError(
                    f"No allocation returned for period {period.period_number}"
                )
            period.company_amount = allocation.company_amount
            period.cmp_weeks = allocation.weeks_applied
            period.cmp_note = allocation.note.value
            period.refresh_completeness()

        case.contracted_weekly_earnings = contracted
        case.target_weekly_amount = target
        case.total_cmp = result.total_cmp
        case.calculation_status = CalculationStatus.CALCULATED.value
        case.calculation_warning = None
        return result

    @staticmethod
    def _clear_cmp(case: MaternityCase, status: CalculationStatus, warning: str | None) -> None:
        for period in case.periods:
            period.company_amount = round_money(ZERO)
            period.cmp_weeks = 0
            period.cmp_note = None
        case.total_cmp = round_money(ZERO)
        case.calculation_status = status.value
        case.calculation_warning = warning

    @staticmethod
    def _touch(case: MaternityCase, actor: str, now: datetime) -> None:
        case.last_updated_at = now
        case.last_updated_by = actor
