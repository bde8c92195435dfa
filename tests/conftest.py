"""Pytest fixtures for maternity pay engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from factories import EMPLOYEES, TickingClock, calendar_records, hourly_calendar, salaried_calendar
from maternity_pay.config import Settings
from maternity_pay.database import make_session_factory
from maternity_pay.models import Base
from maternity_pay.services.calendar_source import PayrollCalendarSource
from maternity_pay.services.case_service import MaternityCaseService
from maternity_pay.services.employee_directory import InMemoryEmployeeDirectory

# In-memory SQLite shared across connections of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        host="127.0.0.1",
        port=8000,
        debug=False,
    )


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock(datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def employee_directory() -> InMemoryEmployeeDirectory:
    return InMemoryEmployeeDirectory(EMPLOYEES)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    factory = make_session_factory(engine)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def seeded_calendar(session: AsyncSession) -> PayrollCalendarSource:
    """Load salaried and hourly calendars for 2024 through mid 2026."""
    source = PayrollCalendarSource(session)
    await source.add_periods(calendar_records(salaried_calendar() + hourly_calendar()))
    return source


@pytest_asyncio.fixture
async def service(
    session: AsyncSession,
    seeded_calendar: PayrollCalendarSource,
    employee_directory: InMemoryEmployeeDirectory,
    settings: Settings,
    clock: TickingClock,
) -> MaternityCaseService:
    return MaternityCaseService(
        session,
        employee_directory=employee_directory,
        calendar_source=seeded_calendar,
        settings=settings,
        clock=clock,
    )
