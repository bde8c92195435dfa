"""API test fixtures over an in-memory database."""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from factories import EMPLOYEES, calendar_records, hourly_calendar, salaried_calendar
from maternity_pay.api.app import create_app
from maternity_pay.api.dependencies import get_db_session
from maternity_pay.database import make_session_factory
from maternity_pay.models import Employee
from maternity_pay.services.calendar_source import PayrollCalendarSource


@pytest_asyncio.fixture
async def seeded_engine(engine: AsyncEngine) -> AsyncEngine:
    """Commit the calendar and employee directory used by API tests."""
    async with make_session_factory(engine)() as session:
        await PayrollCalendarSource(session).add_periods(
            calendar_records(salaried_calendar() + hourly_calendar())
        )
        session.add_all(
            Employee(
                employee_number=record.employee_number,
                full_name=record.full_name,
                location=record.location,
                pay_type=record.pay_type.value,
                annual_salary=record.annual_salary,
                hourly_rate=record.hourly_rate,
                contracted_hours=record.contracted_hours,
            )
            for record in EMPLOYEES
        )
        await session.commit()
    return engine


@pytest_asyncio.fixture
async def client(seeded_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    factory = make_session_factory(seeded_engine)

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app = create_app()
    app.dependency_overrides[get_db_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
