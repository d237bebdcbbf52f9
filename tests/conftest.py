"""Pytest fixtures for shiftpay tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shiftpay.config import Settings
from shiftpay.database import make_session_factory
from shiftpay.models import Base, Company, Employee, JobRole, Punch
from shiftpay.services.notifications import (
    MealBreakReminder,
    NotificationDispatcher,
    PayStubIssued,
)


class RecordingNotifier:
    """Notifier that keeps everything it was asked to send."""

    def __init__(self):
        self.meal_breaks: list[MealBreakReminder] = []
        self.pay_stubs: list[PayStubIssued] = []

    async def meal_break_reminder(self, reminder: MealBreakReminder) -> None:
        self.meal_breaks.append(reminder)

    async def pay_stub_issued(self, notice: PayStubIssued) -> None:
        self.pay_stubs.append(notice)


class FailingNotifier:
    """Notifier whose delivery channel is down."""

    async def meal_break_reminder(self, reminder: MealBreakReminder) -> None:
        raise ConnectionError("smtp unavailable")

    async def pay_stub_issued(self, notice: PayStubIssued) -> None:
        raise ConnectionError("smtp unavailable")


@pytest.fixture
def settings() -> Settings:
    """Policy settings with the standard defaults, independent of the environment."""
    return Settings(
        database_url="sqlite+aiosqlite://",
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
        overtime_threshold_hours=Decimal("40"),
        meal_break_threshold_hours=Decimal("5"),
        duplicate_punch_window_minutes=2,
        min_shift_minutes=30,
        process_timeout_seconds=60.0,
    )


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a per-test SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def dispatcher(notifier: RecordingNotifier) -> NotificationDispatcher:
    return NotificationDispatcher([notifier])


@pytest_asyncio.fixture
async def company(session: AsyncSession) -> Company:
    """Create a test company."""
    company = Company(company_id=uuid4(), name="Test Diner")
    session.add(company)
    await session.commit()
    return company


@pytest_asyncio.fixture
async def job_role(session: AsyncSession, company: Company) -> JobRole:
    """Create a job role carrying default rates."""
    role = JobRole(
        job_role_id=uuid4(),
        company_id=company.company_id,
        name="Line Cook",
        hourly_rate=Decimal("18.00"),
    )
    session.add(role)
    await session.commit()
    return role


@pytest_asyncio.fixture
async def employees(
    session: AsyncSession, company: Company, job_role: JobRole
) -> list[Employee]:
    """Create test employees.

    Alice has her own $20/h rate, Bob inherits the job role's $18/h,
    Carol has no rate anywhere, and Dave is inactive.
    """
    rows = [
        ("Alice", "Adams", "admin", Decimal("20.00"), None, True),
        ("Bob", "Baker", "employee", None, job_role.job_role_id, True),
        ("Carol", "Clark", "employee", None, None, True),
        ("Dave", "Dunn", "employee", Decimal("25.00"), None, False),
    ]
    employees = []
    for first_name, last_name, access_role, rate, role_id, active in rows:
        employee = Employee(
            employee_id=uuid4(),
            company_id=company.company_id,
            job_role_id=role_id,
            first_name=first_name,
            last_name=last_name,
            email=f"{first_name.lower()}@example.com",
            access_role=access_role,
            hourly_rate=rate,
            is_active=active,
        )
        session.add(employee)
        employees.append(employee)
    await session.commit()
    return employees


@pytest.fixture
def alice(employees: list[Employee]) -> Employee:
    return employees[0]


@pytest.fixture
def bob(employees: list[Employee]) -> Employee:
    return employees[1]


async def add_punches(
    session: AsyncSession,
    employee: Employee,
    punches: list[tuple[str, datetime]],
) -> list[Punch]:
    """Insert punches directly, bypassing sequencing rules."""
    rows = [
        Punch(employee_id=employee.employee_id, punch_type=punch_type, punched_at=at)
        for punch_type, at in punches
    ]
    session.add_all(rows)
    await session.commit()
    return rows


def standard_day(day: datetime) -> list[tuple[str, datetime]]:
    """09:00 in, 13:00-13:30 lunch, 17:30 out: 8.00 hours."""
    return [
        ("clock_in", day.replace(hour=9, minute=0)),
        ("lunch_start", day.replace(hour=13, minute=0)),
        ("lunch_end", day.replace(hour=13, minute=30)),
        ("clock_out", day.replace(hour=17, minute=30)),
    ]
