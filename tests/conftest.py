"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from leavedesk.auth.service import create_session, hash_password
from leavedesk.common.constants import LeaveDuration, LeaveStatus, LeaveType, UserRole
from leavedesk.database import Base, get_db
from leavedesk.main import create_app

# Import ALL model modules so metadata knows every table
import leavedesk.auth.models  # noqa: F401
import leavedesk.common.audit  # noqa: F401
import leavedesk.employees.models  # noqa: F401
import leavedesk.holidays.models  # noqa: F401
import leavedesk.leave.models  # noqa: F401
import leavedesk.notifications.models  # noqa: F401
import leavedesk.paid_leave.models  # noqa: F401

from leavedesk.employees.models import Employee
from leavedesk.holidays.models import PublicHoliday
from leavedesk.leave.models import LeaveRequest

TEST_PASSWORD = "correct-horse-battery"
_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from leavedesk.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_employee(
    *,
    name: str = "Test User",
    email: Optional[str] = None,
    role: UserRole = UserRole.employee,
    **balances: Decimal,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        email=email or f"user.{uuid.uuid4().hex[:8]}@leavedesk.io",
        password_hash=_PASSWORD_HASH,
        role=role,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
        **balances,
    )


async def create_employee(db: AsyncSession, **kwargs) -> Employee:
    """Insert and commit an employee; keyword args go to ``_make_employee``."""
    employee = Employee(**_make_employee(**kwargs))
    db.add(employee)
    await db.commit()
    return employee


async def create_leave_request(
    db: AsyncSession,
    employee: Employee,
    *,
    leave_type: LeaveType = LeaveType.annual,
    start: date = date(2024, 6, 3),
    end: date = date(2024, 6, 5),
    duration: LeaveDuration = LeaveDuration.full_day,
    total_days: Decimal = Decimal("3"),
    status: LeaveStatus = LeaveStatus.pending,
    reason: str = "Family trip",
) -> LeaveRequest:
    """Insert a request row directly, bypassing sizing and balance checks."""
    req = LeaveRequest(
        employee_id=employee.id,
        leave_type=leave_type,
        start_date=start,
        end_date=end,
        duration=duration,
        total_days=total_days,
        reason=reason,
        status=status,
    )
    db.add(req)
    await db.commit()
    return req


async def create_holiday(
    db: AsyncSession,
    on: date,
    *,
    name: str = "Poya Day",
    country: str = "LK",
) -> PublicHoliday:
    holiday = PublicHoliday(name=name, date=on, country=country)
    db.add(holiday)
    await db.commit()
    return holiday


async def reload_employee(db: AsyncSession, employee_id: uuid.UUID) -> Employee:
    """Fetch a fresh copy, discarding whatever the session has cached."""
    return await db.get(Employee, employee_id, populate_existing=True)


@pytest.fixture
async def employee(db) -> Employee:
    return await create_employee(db, name="Nimal Perera", email="nimal@leavedesk.io")


@pytest.fixture
async def manager(db) -> Employee:
    return await create_employee(
        db, name="Mala Silva", email="mala@leavedesk.io", role=UserRole.manager,
    )


@pytest.fixture
async def admin(db) -> Employee:
    return await create_employee(
        db, name="Ade Admin", email="admin@leavedesk.io", role=UserRole.admin,
    )


# ── Auth helpers ────────────────────────────────────────────────────

async def auth_headers_for(db: AsyncSession, employee: Employee) -> dict[str, str]:
    """Issue a real token with a persisted session for *employee*."""
    token, _ = await create_session(db, employee, "127.0.0.1", "pytest")
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def auth_headers(db, employee) -> dict[str, str]:
    return await auth_headers_for(db, employee)


@pytest.fixture
async def manager_headers(db, manager) -> dict[str, str]:
    return await auth_headers_for(db, manager)


@pytest.fixture
async def admin_headers(db, admin) -> dict[str, str]:
    return await auth_headers_for(db, admin)
