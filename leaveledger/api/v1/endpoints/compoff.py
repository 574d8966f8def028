"""
Comp-off grants and permission entries.

Both feed the month's ledger computation, so every mutation is refused
once the employee's month is closed; reopen it first.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveledger.api.v1.deps import get_current_active_user, get_db, require_admin
from leaveledger.engine.conversion import hours_to_days
from leaveledger.engine.months import MonthKey
from leaveledger.models.compoff import CompOffGrant, PermissionEntry
from leaveledger.models.employee import Employee
from leaveledger.models.user import User
from leaveledger.schemas.compoff import (CompOffGrantCreate, CompOffGrantRead,
                                         DeleteResponse, PermissionCreate,
                                         PermissionRead)
from leaveledger.services.ledger import ensure_month_open

router = APIRouter(prefix="/compoff", tags=["compoff"])
logger = logging.getLogger(__name__)


async def _active_employee(db: AsyncSession, employee_id: int) -> Employee:
    employee = await db.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        raise HTTPException(status_code=404, detail="Employee not found")
    return employee


async def _get_grant(db: AsyncSession, grant_id: int) -> CompOffGrant:
    grant = await db.get(CompOffGrant, grant_id)
    if grant is None:
        raise HTTPException(status_code=404, detail="Comp-off grant not found")
    return grant


# ── Permissions ─────────────────────────────────────────────────────
@router.get("/permissions", response_model=list[PermissionRead])
async def list_permissions(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=2000, le=2100),
    employee_id: int | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[PermissionEntry]:
    stmt = select(PermissionEntry)
    if month is not None:
        stmt = stmt.where(PermissionEntry.month == month)
    if year is not None:
        stmt = stmt.where(PermissionEntry.year == year)
    if employee_id is not None:
        stmt = stmt.where(PermissionEntry.employee_id == employee_id)
    result = await db.execute(stmt.order_by(PermissionEntry.date, PermissionEntry.id))
    return list(result.scalars().unique().all())


@router.post("/permissions", response_model=PermissionRead, status_code=201)
async def create_permission(
    body: PermissionCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> PermissionEntry:
    await _active_employee(db, body.employee_id)
    period = MonthKey.of(body.date)
    await ensure_month_open(db, body.employee_id, period)

    entry = PermissionEntry(
        employee_id=body.employee_id,
        date=body.date,
        type=body.type,
        hours=body.hours,
        days=hours_to_days(body.hours),
        remarks=body.remarks,
        month=period.month,
        year=period.year,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


@router.delete("/permissions/{permission_id}", response_model=DeleteResponse)
async def delete_permission(
    permission_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    entry = await db.get(PermissionEntry, permission_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Permission entry not found")
    await ensure_month_open(db, entry.employee_id, MonthKey(entry.year, entry.month))

    await db.delete(entry)
    await db.commit()
    return DeleteResponse(message=f"Permission entry {permission_id} deleted")


# ── Comp-off grants ─────────────────────────────────────────────────
@router.get("", response_model=list[CompOffGrantRead])
async def list_grants(
    month: int | None = Query(default=None, ge=1, le=12),
    year: int | None = Query(default=None, ge=2000, le=2100),
    employee_id: int | None = None,
    status: str | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> list[CompOffGrant]:
    stmt = select(CompOffGrant)
    if month is not None:
        stmt = stmt.where(CompOffGrant.month == month)
    if year is not None:
        stmt = stmt.where(CompOffGrant.year == year)
    if employee_id is not None:
        stmt = stmt.where(CompOffGrant.employee_id == employee_id)
    if status is not None:
        stmt = stmt.where(CompOffGrant.status == status)
    result = await db.execute(stmt.order_by(CompOffGrant.date, CompOffGrant.id))
    return list(result.scalars().unique().all())


@router.post("", response_model=CompOffGrantRead, status_code=201)
async def create_grant(
    body: CompOffGrantCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> CompOffGrant:
    """Record a pending grant. ``days`` is informational; balances use hours."""
    await _active_employee(db, body.employee_id)
    period = MonthKey.of(body.date)
    await ensure_month_open(db, body.employee_id, period)

    grant = CompOffGrant(
        employee_id=body.employee_id,
        date=body.date,
        hours=body.hours,
        days=hours_to_days(body.hours),
        reason=body.reason,
        status="pending",
        month=period.month,
        year=period.year,
    )
    db.add(grant)
    await db.commit()
    await db.refresh(grant)
    return grant


async def _set_status(
    db: AsyncSession, grant_id: int, new_status: str, admin: User
) -> CompOffGrant:
    grant = await _get_grant(db, grant_id)
    await ensure_month_open(db, grant.employee_id, MonthKey(grant.year, grant.month))

    grant.status = new_status
    grant.approved_by = admin.id if new_status == "approved" else None
    await db.commit()
    await db.refresh(grant)
    logger.info(
        "Comp-off grant %s for employee %s %s by user %s",
        grant.id,
        grant.employee_id,
        new_status,
        admin.id,
    )
    return grant


@router.post("/{grant_id}/approve", response_model=CompOffGrantRead)
async def approve_grant(
    grant_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> CompOffGrant:
    return await _set_status(db, grant_id, "approved", admin)


@router.post("/{grant_id}/reject", response_model=CompOffGrantRead)
async def reject_grant(
    grant_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> CompOffGrant:
    return await _set_status(db, grant_id, "rejected", admin)


@router.delete("/{grant_id}", response_model=DeleteResponse)
async def delete_grant(
    grant_id: int,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> DeleteResponse:
    grant = await _get_grant(db, grant_id)
    await ensure_month_open(db, grant.employee_id, MonthKey(grant.year, grant.month))

    await db.delete(grant)
    await db.commit()
    return DeleteResponse(message=f"Comp-off grant {grant_id} deleted")
