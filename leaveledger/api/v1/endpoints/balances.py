"""
Ledger endpoints: live details/summary projections, month close,
range backfill, reopen, initial seeding and revision history.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leaveledger.api.v1.deps import (get_current_active_user, get_db,
                                     get_session_factory, require_admin)
from leaveledger.core.config import settings
from leaveledger.engine.conversion import convert_grant_totals
from leaveledger.engine.lateness import parse_offset
from leaveledger.engine.months import MonthKey, month_range
from leaveledger.models.balance import MonthlyBalanceRevision
from leaveledger.models.employee import Employee
from leaveledger.models.user import User
from leaveledger.schemas.balance import (CloseMonthRequest, CloseMonthResponse,
                                         CloseRangeRequest, DetailsResponse,
                                         ReopenRequest, ReopenResponse,
                                         RevisionRead, SeedRequest,
                                         SeedResponse, SummaryResponse)
from leaveledger.services.ledger import (reopen_month, revision_history,
                                         seed_balance)
from leaveledger.services.month_close import CloseReport, MonthCloser
from leaveledger.services.projections import build_details, build_summary

router = APIRouter(prefix="/balances", tags=["balances"])
logger = logging.getLogger(__name__)


def _tz():
    return parse_offset(settings.TIMEZONE_OFFSET)


async def _require_employee(db: AsyncSession, employee_id: int) -> Employee:
    employee = await db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail=f"Employee {employee_id} not found")
    return employee


def _close_response(report: CloseReport) -> CloseMonthResponse:
    return CloseMonthResponse(
        success=not report.failed,
        months=[str(m) for m in report.months],
        count=report.count,
        processed=report.processed,
        unchanged=report.unchanged,
        failed=[{"employee_id": f.employee_id, "error": f.error} for f in report.failed],
    )


# ── Projections ─────────────────────────────────────────────────────
@router.get("/details", response_model=DetailsResponse)
async def balance_details(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    employee_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> dict:
    """Itemised grants, permissions, leaves and late check-ins per employee."""
    if employee_id is not None:
        await _require_employee(db, employee_id)
    rows = await build_details(
        db,
        MonthKey(year, month),
        tz=_tz(),
        fallback_cutoff=settings.LATE_FALLBACK_CUTOFF,
        employee_id=employee_id,
    )
    return {"month": month, "year": year, "employees": rows}


@router.get("/summary", response_model=SummaryResponse)
async def balance_summary(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    employee_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> dict:
    """Live waterfall result per employee; nothing is persisted."""
    if employee_id is not None:
        await _require_employee(db, employee_id)
    rows = await build_summary(
        db,
        MonthKey(year, month),
        tz=_tz(),
        fallback_cutoff=settings.LATE_FALLBACK_CUTOFF,
        employee_id=employee_id,
    )
    return {"month": month, "year": year, "employees": rows}


# ── Close / reopen ──────────────────────────────────────────────────
@router.post("/close-month", response_model=CloseMonthResponse)
async def close_month(
    body: CloseMonthRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    admin: User = Depends(require_admin),
) -> CloseMonthResponse:
    closer = MonthCloser(session_factory)
    report = await closer.close([body.key], body.employee_ids, actor_id=admin.id)
    return _close_response(report)


@router.post("/close-range", response_model=CloseMonthResponse)
async def close_range(
    body: CloseRangeRequest,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    admin: User = Depends(require_admin),
) -> CloseMonthResponse:
    """Backfill: close consecutive months in order, atomically per employee."""
    months = month_range(body.start.key, body.end.key)
    closer = MonthCloser(session_factory)
    report = await closer.close(months, body.employee_ids, actor_id=admin.id)
    return _close_response(report)


@router.post("/reopen", response_model=ReopenResponse)
async def reopen(
    body: ReopenRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ReopenResponse:
    await _require_employee(db, body.employee_id)
    stale = await reopen_month(db, body.employee_id, body.key, actor_id=admin.id)
    await db.commit()
    return ReopenResponse(
        employee_id=body.employee_id,
        month=body.month,
        year=body.year,
        stale_months=stale,
    )


# ── Seeding ─────────────────────────────────────────────────────────
@router.post("/seed", response_model=SeedResponse, status_code=201)
async def seed(
    body: SeedRequest,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> dict:
    """Write closed opening balances for a tenant's first ledger month.

    All entries are written in one transaction. Hour pools are folded so
    each holds fewer than 8 hours.
    """
    rows = []
    for entry in body.entries:
        await _require_employee(db, entry.employee_id)
        co_days, co_hours = convert_grant_totals(entry.comp_off_days, entry.comp_off_hours)
        le_days, le_hours = convert_grant_totals(entry.late_early_days, entry.late_early_hours)
        row = await seed_balance(
            db,
            entry.employee_id,
            body.key,
            {
                "comp_off_days": co_days,
                "comp_off_hours": co_hours,
                "cl_balance": entry.cl_balance,
                "sl_balance": entry.sl_balance,
                "el_balance": entry.el_balance,
                "late_early_days": le_days,
                "late_early_hours": le_hours,
                "lop_days": 0.0,
            },
            actor_id=admin.id,
        )
        rows.append(row)
    await db.commit()
    logger.info("Seeded %d opening balance(s) for %s", len(rows), body.key)
    return {"count": len(rows), "balances": rows}


# ── History ─────────────────────────────────────────────────────────
@router.get("/{employee_id}/history", response_model=list[RevisionRead])
async def balance_history(
    employee_id: int,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[MonthlyBalanceRevision]:
    await _require_employee(db, employee_id)
    return await revision_history(db, employee_id)
