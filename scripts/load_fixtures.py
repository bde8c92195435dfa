"""Load the payroll calendar and employee directory into the database.

Usage:
    python -m scripts.load_fixtures [--seed-file PATH] [--database-url URL]

The seed file is JSON with two lists, "payroll_periods" and "employees".
Dates are ISO strings; hourly periods should carry a cutoff_date.
Useful for setting up a development or test environment.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from maternity_pay.config import get_settings
from maternity_pay.database import create_schema, get_engine, make_session_factory
from maternity_pay.models import Employee
from maternity_pay.services.calendar_source import PayrollCalendarSource
from maternity_pay.services.system_check import check_calendar

DEFAULT_SEED_FILE = Path(__file__).parent.parent / "fixtures" / "seed_minimal.json"


def _money(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    return Decimal(str(value))


def employee_from_record(record: dict[str, Any]) -> Employee:
    return Employee(
        employee_number=str(record["employee_number"]),
        full_name=record["full_name"],
        location=record.get("location", ""),
        pay_type=str(record["pay_type"]).lower(),
        annual_salary=_money(record.get("annual_salary")),
        hourly_rate=_money(record.get("hourly_rate")),
        contracted_hours=_money(record.get("contracted_hours")),
    )


async def load_fixtures(seed_file: Path, database_url: str) -> None:
    """Load fixture JSON into the database."""
    if not seed_file.exists():
        print(f"Error: Seed file not found: {seed_file}")
        sys.exit(1)

    print(f"Loading fixtures from: {seed_file}")
    print(f"Target database: {database_url.split('@')[1] if '@' in database_url else database_url}")

    data = json.loads(seed_file.read_text(encoding="utf-8"))
    periods = data.get("payroll_periods", [])
    employees = data.get("employees", [])

    engine = get_engine(database_url)
    try:
        await create_schema(engine)
        async with make_session_factory(engine)() as session:
            source = PayrollCalendarSource(session)
            try:
                added = await source.add_periods(periods)
                session.add_all(employee_from_record(r) for r in employees)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                print(f"Error: fixtures not loaded: {str(e)[:200]}")
                sys.exit(1)

            print("\nResults:")
            print(f"  Payroll periods: {added}")
            print(f"  Employees: {len(employees)}")

            report = check_calendar(
                await source.load_calendar(),
                date.today(),
                get_settings().calendar_horizon_days,
            )
            if report.ok:
                print("\nFixtures loaded successfully!")
            else:
                print("\nFixtures loaded with calendar warnings:")
                for issue in report.issues:
                    print(f"  - {issue}")
    finally:
        await engine.dispose()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Load fixture data into the database")
    parser.add_argument(
        "--seed-file",
        type=Path,
        default=DEFAULT_SEED_FILE,
        help=f"Path to seed JSON file (default: {DEFAULT_SEED_FILE})",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Database URL (default: from settings)",
    )

    args = parser.parse_args()

    asyncio.run(load_fixtures(args.seed_file, args.database_url or get_settings().database_url))


if __name__ == "__main__":
    main()
