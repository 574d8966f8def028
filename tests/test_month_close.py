"""Tests for the month-close orchestrator: isolation, retries and timeouts."""

import asyncio
from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import make_employee, make_grant
from leaveledger.engine.months import MonthKey
from leaveledger.models.balance import MonthlyBalance
from leaveledger.services import month_close
from leaveledger.services.month_close import MonthCloser

MARCH = MonthKey(2024, 3)


async def _rows(session_factory) -> dict[int, MonthlyBalance]:
    async with session_factory() as s:
        result = await s.execute(select(MonthlyBalance))
        return {r.employee_id: r for r in result.scalars().all()}


@pytest.fixture
async def three_employees(db_session: AsyncSession):
    emps = [await make_employee(db_session, name=f"E{i}", code=f"C{i}") for i in range(3)]
    for emp in emps:
        await make_grant(db_session, emp.id, date(2024, 3, 2), 9)
    return emps


@pytest.mark.asyncio
async def test_one_failure_does_not_block_others(session_factory, three_employees, monkeypatch):
    """A crash for one employee leaves that employee unclosed and the rest closed."""
    bad = three_employees[1].id
    real_step = month_close.close_step

    def broken_step(profile):
        if profile.employee_id == bad:
            raise RuntimeError("corrupt shift record")
        return real_step(profile)

    monkeypatch.setattr(month_close, "close_step", broken_step)

    report = await MonthCloser(session_factory).close([MARCH])

    assert report.processed == [three_employees[0].id, three_employees[2].id]
    assert [f.employee_id for f in report.failed] == [bad]
    assert "corrupt shift record" in report.failed[0].error

    rows = await _rows(session_factory)
    assert bad not in rows
    assert all(rows[e.id].is_closed for e in three_employees if e.id != bad)


@pytest.mark.asyncio
async def test_retries_transient_database_errors(session_factory, three_employees, monkeypatch):
    calls = {"n": 0}
    real_write = month_close.write_snapshot

    async def flaky_write(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 1:
            raise OperationalError("UPDATE monthly_balances", {}, Exception("database is locked"))
        return await real_write(*args, **kwargs)

    monkeypatch.setattr(month_close, "write_snapshot", flaky_write)

    report = await MonthCloser(session_factory, retry_backoff=0).close([MARCH])

    assert report.failed == []
    assert report.count == 3
    assert calls["n"] == 4


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(session_factory, db_session: AsyncSession, monkeypatch):
    emp = await make_employee(db_session)
    calls = {"n": 0}

    async def always_locked(*args, **kwargs):
        calls["n"] += 1
        raise OperationalError("UPDATE monthly_balances", {}, Exception("database is locked"))

    monkeypatch.setattr(month_close, "write_snapshot", always_locked)

    report = await MonthCloser(session_factory, max_retries=2, retry_backoff=0).close([MARCH])

    assert [f.employee_id for f in report.failed] == [emp.id]
    assert calls["n"] == 3
    assert await _rows(session_factory) == {}


@pytest.mark.asyncio
async def test_timeout_reports_unfinished_employees(session_factory, db_session: AsyncSession, monkeypatch):
    fast = await make_employee(db_session, name="Fast", code="A1")
    slow = await make_employee(db_session, name="Slow", code="Z9")
    real_load = month_close.load_month_data

    async def slow_load(db, month, employees, **kwargs):
        if employees[0].id == slow.id:
            await asyncio.sleep(30)
        return await real_load(db, month, employees, **kwargs)

    monkeypatch.setattr(month_close, "load_month_data", slow_load)

    closer = MonthCloser(session_factory, concurrency=1, timeout_base=1.0, timeout_per_employee=0)
    report = await closer.close([MARCH])

    assert report.processed == [fast.id]
    assert [f.employee_id for f in report.failed] == [slow.id]
    assert "timed out" in report.failed[0].error

    rows = await _rows(session_factory)
    assert slow.id not in rows
    assert rows[fast.id].is_closed is True


@pytest.mark.asyncio
async def test_selected_employees_only(session_factory, three_employees):
    target = three_employees[2].id
    report = await MonthCloser(session_factory).close([MARCH], employee_ids=[target])
    assert report.processed == [target]
    assert set(await _rows(session_factory)) == {target}


@pytest.mark.asyncio
async def test_no_active_employees(session_factory):
    report = await MonthCloser(session_factory).close([MARCH])
    assert report.count == 0
    assert report.failed == []


def test_timeout_scales_with_employee_count(session_factory):
    closer = MonthCloser(session_factory, timeout_base=10, timeout_per_employee=0.5)
    assert closer.timeout_for(0) == 10
    assert closer.timeout_for(40) == 30
