"""Tests for the maternity case lifecycle service."""

from datetime import date
from decimal import Decimal

import pytest

from maternity_pay.calculators.types import PayType, StaffClass
from maternity_pay.services.case_service import new_case_id
from maternity_pay.services.case_store import (
    CaseNotFoundError,
    PeriodNotFoundError,
    StaleCaseError,
)
from maternity_pay.services.employee_directory import EmployeeNotFoundError, EmployeeRecord
from maternity_pay.services.state_machine import InvalidTransitionError
from maternity_pay.services.validation import CaseDetails, ValidationError

ACTOR = "payroll.clerk"


def salaried_details(**overrides) -> CaseDetails:
    values = dict(
        employee_id="E100",
        baby_due_date=date(2024, 3, 18),
        maternity_start_date=date(2024, 3, 4),
        smp_start_date=date(2024, 3, 4),
        expected_return_date=date(2024, 12, 2),
        total_smp=Decimal("2500.00"),
        average_weekly_earnings=Decimal("600.00"),
        monthly_smp_breakdown={"2024-03": Decimal("1500.00"), "2024-04": Decimal("1000.00")},
    )
    values.update(overrides)
    return CaseDetails(**values)


def hourly_details(**overrides) -> CaseDetails:
    values = dict(
        employee_id="E200",
        baby_due_date=date(2024, 4, 1),
        maternity_start_date=date(2024, 3, 24),
        smp_start_date=date(2024, 3, 24),
        expected_return_date=date(2024, 9, 1),
        total_smp=Decimal("900.00"),
        average_weekly_earnings=Decimal("200.00"),
        monthly_smp_breakdown={"2024-03": Decimal("600.00"), "2024-04": Decimal("300.00")},
    )
    values.update(overrides)
    return CaseDetails(**values)


def test_case_ids_are_unique():
    ids = {new_case_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(i.startswith("MAT-") and len(i) == 14 for i in ids)


@pytest.mark.asyncio
class TestCreateCase:
    async def test_salaried_case(self, service):
        result = await service.create_case(salaried_details(), ACTOR)
        case = result.case

        assert result.warnings == []
        assert result.needs_attention is False
        assert case.status == "active"
        assert case.version == 1
        assert case.staff_class == "salaried"
        assert case.employee_name == "Alice Salaried"
        assert case.cmp_weeks_entitlement == 8
        assert case.contracted_weekly_earnings == Decimal("500.00")
        assert case.target_weekly_amount == Decimal("600.00")
        assert case.calculation_status == "calculated"

        assert len(case.periods) == 10
        first, second, third = case.periods[:3]
        assert first.period_id == f"{case.case_id}_P1"
        assert first.smp_amount == Decimal("1500.00")
        assert first.company_amount == Decimal("900.00")
        assert first.cmp_weeks == 4
        assert first.status == "amounts_entered"
        assert second.company_amount == Decimal("1400.00")
        assert third.company_amount == Decimal("0.00")
        assert third.cmp_note == "beyond_entitlement"
        assert third.status == "pending"
        assert third.data_complete is False
        assert case.total_cmp == Decimal("2300.00")

    async def test_hourly_case_uses_cutoff_calendar(self, service):
        result = await service.create_case(hourly_details(), ACTOR)
        case = result.case

        assert case.periods[0].period_start == date(2024, 3, 20)
        assert case.periods[0].period_end == date(2024, 4, 19)
        assert case.target_weekly_amount == Decimal("250.00")
        assert case.periods[0].company_amount == Decimal("400.00")
        assert case.periods[1].company_amount == Decimal("700.00")
        assert case.total_cmp == Decimal("1100.00")

    async def test_total_cmp_matches_periods(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        assert case.total_cmp == sum(p.company_amount for p in case.periods)

    async def test_missing_salary_creates_case_with_warning(self, service):
        result = await service.create_case(salaried_details(employee_id="E300"), ACTOR)
        case = result.case

        assert result.needs_attention is True
        assert [w.code for w in result.warnings] == ["cmp_not_calculated"]
        assert case.calculation_status == "failed"
        assert "no annual salary" in case.calculation_warning
        assert case.total_cmp == Decimal("0.00")
        assert len(case.periods) == 10
        assert all(p.company_amount == Decimal("0.00") for p in case.periods)

    async def test_unknown_employee(self, service):
        with pytest.raises(EmployeeNotFoundError):
            await service.create_case(salaried_details(employee_id="E999"), ACTOR)

    async def test_invalid_details(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.create_case(CaseDetails(employee_id="E100"), ACTOR)
        assert "Total SMP is required" in exc_info.value.messages

    async def test_synthetic_fallback(self, service):
        case = (
            await service.create_case(
                salaried_details(
                    baby_due_date=date(2030, 1, 20),
                    maternity_start_date=date(2030, 1, 10),
                    smp_start_date=date(2030, 1, 10),
                    expected_return_date=date(2030, 6, 1),
                    monthly_smp_breakdown={},
                ),
                ACTOR,
            )
        ).case

        assert len(case.periods) == 5
        assert all(p.is_synthetic for p in case.periods)
        assert case.periods[0].pay_date == date(2030, 1, 28)
        # No SMP entered yet, so nothing is payable
        assert case.total_cmp == Decimal("0.00")

    async def test_audit_event_recorded(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        events = await service.audit_trail(case.case_id)

        assert [e.action for e in events] == ["created"]
        assert events[0].actor == ACTOR
        assert events[0].details["periods"] == 10


@pytest.mark.asyncio
class TestUpdateCase:
    async def test_earnings_change_recalculates(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case

        case = await service.update_case(
            case.case_id, {"average_weekly_earnings": Decimal("500.00")}, ACTOR
        )

        assert case.target_weekly_amount == Decimal("500.00")
        assert case.total_cmp == Decimal("1500.00")
        assert case.version == 2

    async def test_entitlement_change_recalculates(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case

        case = await service.update_case(case.case_id, {"cmp_weeks_entitlement": 4}, ACTOR)

        assert case.total_cmp == Decimal("900.00")
        assert case.periods[1].cmp_note == "beyond_entitlement"

    async def test_date_change_regenerates_periods(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        third_id = case.periods[2].period_id
        await service.update_period_amounts(
            case.case_id, third_id, {"holiday_accrued": Decimal("50.00")}, ACTOR
        )

        case = await service.update_case(
            case.case_id, {"expected_return_date": date(2024, 9, 30)}, ACTOR
        )

        assert len(case.periods) == 7
        assert [p.period_id for p in case.periods] == [
            f"{case.case_id}_P{n}" for n in range(1, 8)
        ]
        assert case.periods[2].holiday_accrued == Decimal("0.00")
        assert case.periods[0].smp_amount == Decimal("1500.00")
        assert case.total_cmp == Decimal("2300.00")

    async def test_date_change_without_earnings_clears_cmp(self, service):
        case = (
            await service.create_case(
                hourly_details(employee_id="E400", average_weekly_earnings=Decimal("0")),
                ACTOR,
            )
        ).case

        case = await service.update_case(
            case.case_id, {"smp_start_date": date(2024, 4, 22)}, ACTOR
        )

        assert case.calculation_status == "pending"
        assert case.total_cmp == Decimal("0.00")
        assert case.periods[0].period_start == date(2024, 4, 20)

    async def test_actual_return_keeps_ledger(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        third_id = case.periods[2].period_id
        await service.update_period_amounts(
            case.case_id, third_id, {"holiday_accrued": Decimal("50.00")}, ACTOR
        )

        case = await service.set_actual_return_date(case.case_id, date(2024, 8, 15), ACTOR)

        assert case.actual_return_date == date(2024, 8, 15)
        assert len(case.periods) == 10
        assert case.periods[2].holiday_accrued == Decimal("50.00")

    async def test_unknown_field_rejected(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        with pytest.raises(ValidationError):
            await service.update_case(case.case_id, {"employee_name": "Someone"}, ACTOR)

    async def test_stale_version_rejected(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case

        await service.update_case(
            case.case_id, {"average_weekly_earnings": Decimal("550.00")}, ACTOR, expected_version=1
        )
        with pytest.raises(StaleCaseError) as exc_info:
            await service.update_case(
                case.case_id,
                {"average_weekly_earnings": Decimal("500.00")},
                ACTOR,
                expected_version=1,
            )

        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2

    async def test_unknown_case(self, service):
        with pytest.raises(CaseNotFoundError):
            await service.update_case("MAT-MISSING", {"cmp_weeks_entitlement": 4}, ACTOR)

    async def test_snapshot_is_frozen(self, service, employee_directory):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        employee_directory.add(
            EmployeeRecord(
                employee_number="E100",
                full_name="Alice Promoted",
                location="London",
                pay_type=PayType.SALARY,
                annual_salary=Decimal("52000.00"),
            )
        )

        await service.recalculate_cmp(case.case_id, ACTOR)

        assert case.employee_name == "Alice Salaried"
        assert case.contracted_weekly_earnings == Decimal("500.00")


@pytest.mark.asyncio
class TestPeriodAmounts:
    async def test_manual_company_amount(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        first_id = case.periods[0].period_id

        case = await service.update_period_amounts(
            case.case_id,
            first_id,
            {"company_amount": Decimal("950.00"), "company_notes": "agreed uplift"},
            ACTOR,
        )

        first = case.find_period(first_id)
        assert first.company_amount == Decimal("950.00")
        assert first.company_notes == "agreed uplift"
        assert first.entered_by == ACTOR
        assert case.total_cmp == Decimal("2350.00")

    async def test_smp_change_reallocates_whole_case(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        first_id, second_id = case.periods[0].period_id, case.periods[1].period_id
        await service.update_period_amounts(
            case.case_id, first_id, {"company_amount": Decimal("950.00")}, ACTOR
        )

        case = await service.update_period_amounts(
            case.case_id, second_id, {"smp_amount": Decimal("1200.00")}, ACTOR
        )

        assert case.find_period(first_id).company_amount == Decimal("900.00")
        assert case.find_period(second_id).company_amount == Decimal("1200.00")
        assert case.total_cmp == Decimal("2100.00")

    async def test_entering_smp_marks_period_complete(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        fifth_id = case.periods[4].period_id

        case = await service.update_period_amounts(
            case.case_id, fifth_id, {"smp_amount": Decimal("184.03")}, ACTOR
        )

        fifth = case.find_period(fifth_id)
        assert fifth.data_complete is True
        assert fifth.status == "amounts_entered"

    async def test_reallocation_resets_status_of_zeroed_period(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        fifth_id = case.periods[4].period_id
        case = await service.update_period_amounts(
            case.case_id, fifth_id, {"company_amount": Decimal("10.00")}, ACTOR
        )
        assert case.find_period(fifth_id).status == "amounts_entered"

        await service.recalculate_cmp(case.case_id, ACTOR)

        fifth = (await service.get_case(case.case_id)).find_period(fifth_id)
        assert fifth.smp_amount == Decimal("0.00")
        assert fifth.company_amount == Decimal("0.00")
        assert fifth.data_complete is False
        assert fifth.status == "pending"

    async def test_unknown_period(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        with pytest.raises(PeriodNotFoundError):
            await service.update_period_amounts(
                case.case_id, "MAT-X_P1", {"smp_amount": Decimal("1")}, ACTOR
            )

    async def test_negative_amount(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        with pytest.raises(ValidationError):
            await service.update_period_amounts(
                case.case_id, case.periods[0].period_id, {"smp_amount": Decimal("-1")}, ACTOR
            )

    async def test_period_status(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        third_id = case.periods[2].period_id

        case = await service.set_period_status(case.case_id, third_id, "amounts_entered", ACTOR)
        assert case.find_period(third_id).status == "amounts_entered"

        with pytest.raises(ValidationError):
            await service.set_period_status(case.case_id, third_id, "paid", ACTOR)


@pytest.mark.asyncio
class TestArchive:
    async def test_archive_keeps_ledger(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case

        case = await service.archive_case(case.case_id, "Employee resigned", "hr.manager")

        assert case.status == "archived"
        assert case.archived_by == "hr.manager"
        assert case.archived_reason == "Employee resigned"
        assert case.archived_at is not None
        assert len(case.periods) == 10
        assert case.total_cmp == Decimal("2300.00")

    async def test_archived_case_is_read_only(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        await service.archive_case(case.case_id, "Duplicate", ACTOR)

        with pytest.raises(InvalidTransitionError):
            await service.update_case(case.case_id, {"cmp_weeks_entitlement": 4}, ACTOR)
        with pytest.raises(InvalidTransitionError):
            await service.update_period_amounts(
                case.case_id, case.periods[0].period_id, {"smp_amount": Decimal("1")}, ACTOR
            )
        with pytest.raises(InvalidTransitionError):
            await service.recalculate_cmp(case.case_id, ACTOR)
        with pytest.raises(InvalidTransitionError):
            await service.archive_case(case.case_id, "Again", ACTOR)

    async def test_archive_requires_reason(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        with pytest.raises(ValidationError):
            await service.archive_case(case.case_id, "  ", ACTOR)
        assert case.status == "active"

    async def test_archived_cases_hidden_from_default_listing(self, service):
        kept = (await service.create_case(salaried_details(), ACTOR)).case
        gone = (await service.create_case(hourly_details(), ACTOR)).case
        await service.archive_case(gone.case_id, "Left before leave", ACTOR)

        active = await service.list_cases()
        everything = await service.list_cases(include_archived=True)

        assert [c.case_id for c in active] == [kept.case_id]
        assert {c.case_id for c in everything} == {kept.case_id, gone.case_id}


@pytest.mark.asyncio
class TestRecalculate:
    async def test_recalculate_reports_allocation(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case

        result = await service.recalculate_cmp(case.case_id, ACTOR)

        assert result.total_cmp == Decimal("2300.00")
        assert result.weeks_consumed == 8
        assert result.remaining_weeks == 0
        events = await service.audit_trail(case.case_id)
        assert events[-1].action == "cmp_recalculated"

    async def test_recalculate_is_idempotent(self, service):
        case = (await service.create_case(salaried_details(), ACTOR)).case
        first = await service.recalculate_cmp(case.case_id, ACTOR)
        second = await service.recalculate_cmp(case.case_id, ACTOR)
        assert first == second


@pytest.mark.asyncio
class TestValidateSmpStart:
    async def test_date_in_calendar(self, service):
        check = await service.validate_smp_start_date(date(2024, 3, 24), StaffClass.HOURLY)
        assert check.valid is True
        assert check.period.period_name == "Hourly April 2024"

    async def test_hourly_cutoff_date_is_not_placed(self, service):
        check = await service.validate_smp_start_date(date(2024, 3, 20), "hourly")
        assert check.valid is False
        assert check.period is None
        assert "synthetic" in check.message
