"""
Shared test fixtures for the leave ledger test suite.

In-memory aiosqlite database shared through a StaticPool; the app's
database, session-factory and auth dependencies are overridden.
"""

import os
import sys
from datetime import date, datetime, timezone
from typing import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
# One connection is shared by every session, so close employees one at a time
os.environ["CLOSE_MONTH_CONCURRENCY"] = "1"
os.environ["CLOSE_MONTH_RETRY_BACKOFF_SECONDS"] = "0"
os.environ["TIMEZONE_OFFSET"] = "+00:00"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leaveledger.api.v1.deps import (get_current_active_user, get_db,
                                     get_session_factory, require_admin)
from leaveledger.api.v1.endpoints.auth import limiter
from leaveledger.db.base import Base
from leaveledger.main import app
from leaveledger.models import (AttendancePunch, CompOffGrant, Employee,
                                LeaveRequest, LeaveType, PermissionEntry,
                                ShiftAssignment, ShiftDefinition, User)

test_engine = create_async_engine(
    "sqlite+aiosqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def setup_db():
    """Create all tables before usage and drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestingSessionLocal() as session:
        yield session


def _override_get_session_factory() -> async_sessionmaker[AsyncSession]:
    return TestingSessionLocal


app.dependency_overrides[get_db] = _override_get_db
app.dependency_overrides[get_session_factory] = _override_get_session_factory


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def session_factory() -> async_sessionmaker[AsyncSession]:
    return TestingSessionLocal


# ── Auth Overrides ──────────────────────────────────────────────────
async def _override_get_current_active_user():
    return User(id=1, email="test@example.com", is_active=True, role="admin")


async def _override_require_admin():
    return User(id=1, email="admin@example.com", is_active=True, role="admin")


app.dependency_overrides[get_current_active_user] = _override_get_current_active_user
app.dependency_overrides[require_admin] = _override_require_admin


@pytest.fixture
def real_auth():
    """Run a test against the real JWT guards instead of the overrides."""
    saved = {
        dep: app.dependency_overrides.pop(dep)
        for dep in (get_current_active_user, require_admin)
    }
    yield
    app.dependency_overrides.update(saved)


# ── Data builders ───────────────────────────────────────────────────
async def make_employee(db: AsyncSession, **kwargs) -> Employee:
    kwargs.setdefault("name", "Test Employee")
    kwargs.setdefault("category", "confirmed")
    emp = Employee(**kwargs)
    db.add(emp)
    await db.commit()
    await db.refresh(emp)
    return emp


async def make_grant(
    db: AsyncSession, employee_id: int, day: date, hours: float, status: str = "approved"
) -> CompOffGrant:
    grant = CompOffGrant(
        employee_id=employee_id,
        date=day,
        hours=hours,
        days=round(hours / 8, 2),
        status=status,
        month=day.month,
        year=day.year,
    )
    db.add(grant)
    await db.commit()
    return grant


async def make_permission(
    db: AsyncSession, employee_id: int, day: date, hours: float, type_: str = "general"
) -> PermissionEntry:
    entry = PermissionEntry(
        employee_id=employee_id,
        date=day,
        type=type_,
        hours=hours,
        days=round(hours / 8, 2),
        month=day.month,
        year=day.year,
    )
    db.add(entry)
    await db.commit()
    return entry


async def make_leave_type(db: AsyncSession, code: str, name: str, pool: str | None) -> LeaveType:
    lt = LeaveType(code=code, name=name, pool=pool)
    db.add(lt)
    await db.commit()
    await db.refresh(lt)
    return lt


async def make_leave(
    db: AsyncSession,
    employee_id: int,
    leave_type_id: int,
    start: date,
    end: date,
    days: float,
    status: str = "approved",
) -> LeaveRequest:
    req = LeaveRequest(
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        start_date=start,
        end_date=end,
        days=days,
        status=status,
    )
    db.add(req)
    await db.commit()
    return req


async def make_punch(db: AsyncSession, employee_id: int, day: date, hh: int, mm: int) -> AttendancePunch:
    punch = AttendancePunch(
        employee_id=employee_id,
        date=day,
        in_at=datetime(day.year, day.month, day.day, hh, mm, tzinfo=timezone.utc),
    )
    db.add(punch)
    await db.commit()
    return punch


async def make_shift(
    db: AsyncSession, employee_id: int, start: date, end: date, records: list[dict]
) -> ShiftAssignment:
    shift = ShiftDefinition(name="General", records=records)
    db.add(shift)
    await db.flush()
    assignment = ShiftAssignment(
        employee_id=employee_id, shift_id=shift.id, start_date=start, end_date=end
    )
    db.add(assignment)
    await db.commit()
    return assignment
