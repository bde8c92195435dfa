"""Tests for the case store, calendar source, and employee directory."""

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine

from factories import calendar_records, hourly_calendar, salaried_calendar
from maternity_pay.calculators.types import StaffClass
from maternity_pay.database import create_schema, get_engine, make_session_factory
from maternity_pay.models import Employee
from maternity_pay.services.calendar_source import PayrollCalendarSource, period_from_record
from maternity_pay.services.case_service import MaternityCaseService
from maternity_pay.services.case_store import (
    CaseNotFoundError,
    CaseStore,
    PersistenceError,
    StaleCaseError,
)
from maternity_pay.services.employee_directory import SqlEmployeeDirectory
from maternity_pay.services.validation import CaseDetails


@pytest.mark.asyncio
class TestCalendarSource:
    async def test_loads_periods_with_cutoffs(self, seeded_calendar):
        periods = await seeded_calendar.load_calendar()

        hourly = [p for p in periods if p.staff_class == StaffClass.HOURLY]
        assert len(periods) == 60
        assert all(p.cutoff_date is not None for p in hourly)

    async def test_resolver_from_database(self, seeded_calendar):
        resolver = await seeded_calendar.load_resolver()
        period = resolver.resolve(date(2024, 3, 24), StaffClass.HOURLY)
        assert period.cutoff_date == date(2024, 3, 20)

    async def test_add_periods_from_iso_strings(self, session):
        source = PayrollCalendarSource(session)
        added = await source.add_periods(
            [
                {
                    "staff_class": "Salaried",
                    "period_name": "Salaried January 2025",
                    "period_start": "2025-01-01",
                    "period_end": "2025-01-31",
                    "pay_date": "2025-01-24",
                    "cutoff_date": "",
                }
            ]
        )

        assert added == 1
        periods = await source.load_calendar()
        assert periods[0].staff_class == StaffClass.SALARIED
        assert periods[0].cutoff_date is None


def test_period_from_record_parses_dates():
    row = period_from_record(
        {
            "staff_class": "hourly",
            "period_name": "Hourly",
            "period_start": "2024-03-20",
            "period_end": date(2024, 4, 19),
            "pay_date": "2024-04-26",
            "cutoff_date": "2024-03-20",
        }
    )
    assert row.period_start == date(2024, 3, 20)
    assert row.period_end == date(2024, 4, 19)
    assert row.cutoff_date == date(2024, 3, 20)


@pytest.mark.asyncio
class TestSqlEmployeeDirectory:
    async def test_lookup(self, session):
        session.add(
            Employee(
                employee_number="E100",
                full_name="Alice Salaried",
                location="Leeds",
                pay_type="salary",
                annual_salary=Decimal("26000.00"),
            )
        )
        await session.flush()

        directory = SqlEmployeeDirectory(session)
        record = await directory.lookup_by_number("E100")

        assert record is not None
        snapshot = record.snapshot()
        assert snapshot.staff_class == StaffClass.SALARIED
        assert snapshot.annual_salary == Decimal("26000.00")
        assert await directory.lookup_by_number("E999") is None


@pytest.mark.asyncio
class TestCaseStore:
    async def test_get_unknown_case(self, session):
        with pytest.raises(CaseNotFoundError, match="MAT-NOPE"):
            await CaseStore(session).get("MAT-NOPE")

    async def test_check_version(self, service):
        result = await service.create_case(
            CaseDetails(
                employee_id="E100",
                baby_due_date=date(2024, 3, 18),
                maternity_start_date=date(2024, 3, 4),
                smp_start_date=date(2024, 3, 4),
                expected_return_date=date(2024, 12, 2),
                total_smp=Decimal("0"),
                average_weekly_earnings=Decimal("600.00"),
            ),
            "tester",
        )
        store = service.store

        store.check_version(result.case, None)
        store.check_version(result.case, 1)
        with pytest.raises(StaleCaseError):
            store.check_version(result.case, 7)

    async def test_commit_persists_case(self, engine, service):
        result = await service.create_case(
            CaseDetails(
                employee_id="E200",
                baby_due_date=date(2024, 4, 1),
                maternity_start_date=date(2024, 3, 24),
                smp_start_date=date(2024, 3, 24),
                expected_return_date=date(2024, 9, 1),
                total_smp=Decimal("0"),
                average_weekly_earnings=Decimal("200.00"),
            ),
            "tester",
        )
        await service.commit()

        async with make_session_factory(engine)() as other:
            loaded = await CaseStore(other).get(result.case.case_id)
            assert loaded.version == 1
            assert len(loaded.periods) == len(result.case.periods)
            assert loaded.periods[0].period_start == date(2024, 3, 20)

    async def test_failed_write_discards_changes(self, service, session, monkeypatch):
        result = await service.create_case(_salaried_case(), "tester")
        await service.commit()
        case_id = result.case.case_id

        async def failing_flush(*args, **kwargs):
            raise OperationalError("UPDATE maternity_cases", {}, Exception("disk I/O error"))

        monkeypatch.setattr(session, "flush", failing_flush)
        with pytest.raises(PersistenceError) as exc_info:
            await service.update_case(case_id, {"total_smp": Decimal("2600.00")}, "tester")
        monkeypatch.undo()

        assert not isinstance(exc_info.value, StaleCaseError)
        assert exc_info.value.case_id == case_id
        reloaded = await service.get_case(case_id)
        assert reloaded.total_smp == Decimal("0.00")
        assert reloaded.version == 1


def _salaried_case() -> CaseDetails:
    return CaseDetails(
        employee_id="E100",
        baby_due_date=date(2024, 3, 18),
        maternity_start_date=date(2024, 3, 4),
        smp_start_date=date(2024, 3, 4),
        expected_return_date=date(2024, 12, 2),
        total_smp=Decimal("0"),
        average_weekly_earnings=Decimal("600.00"),
    )


@pytest_asyncio.fixture
async def file_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """A file-backed database so each session gets its own connection."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'cases.db'}")
    await create_schema(engine)
    async with make_session_factory(engine)() as session:
        await PayrollCalendarSource(session).add_periods(
            calendar_records(salaried_calendar() + hourly_calendar())
        )
        await session.commit()

    yield engine

    await engine.dispose()


@pytest.mark.asyncio
class TestConcurrentWriters:
    async def test_second_writer_loses_race(self, file_engine, employee_directory, settings, clock):
        factory = make_session_factory(file_engine)

        async with factory() as first, factory() as second:
            alice = MaternityCaseService(
                first, employee_directory=employee_directory, settings=settings, clock=clock
            )
            bob = MaternityCaseService(
                second, employee_directory=employee_directory, settings=settings, clock=clock
            )
            case_id = (await alice.create_case(_salaried_case(), "alice")).case.case_id
            await alice.commit()

            seen_by_bob = await bob.get_case(case_id)
            assert seen_by_bob.version == 1

            await alice.update_case(case_id, {"total_smp": Decimal("2600.00")}, "alice")
            await alice.commit()

            with pytest.raises(StaleCaseError) as exc_info:
                await bob.update_case(case_id, {"total_smp": Decimal("2700.00")}, "bob")

        assert exc_info.value.case_id == case_id
        assert exc_info.value.expected_version == 1
        assert "version 1 is no longer current" in str(exc_info.value)

        async with factory() as fresh:
            stored = await CaseStore(fresh).get(case_id)
            assert stored.version == 2
            assert stored.total_smp == Decimal("2600.00")
