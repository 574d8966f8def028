"""
Read-only month views built from the same loader and computation as
month close. Nothing here writes to the ledger.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import timezone

from sqlalchemy.ext.asyncio import AsyncSession

from leaveledger.engine.computation import compute_month
from leaveledger.engine.months import MonthKey
from leaveledger.services.inputs import (EmployeeMonthData, active_employees,
                                         load_month_data)
from leaveledger.services.ledger import month_rows


def _employee(d: EmployeeMonthData) -> dict:
    e = d.employee
    return {
        "id": e.id,
        "name": e.name,
        "code": e.code,
        "designation": e.designation,
        "department": e.department,
        "category": e.category,
        "leave_start_month": e.leave_start_month,
    }


def _previous(d: EmployeeMonthData) -> dict | None:
    row = d.previous
    if row is None:
        return None
    return {**row.snapshot(), "is_closed": bool(row.is_closed), "is_stale": bool(row.is_stale)}


async def build_details(
    db: AsyncSession,
    month: MonthKey,
    *,
    tz: timezone,
    fallback_cutoff: str,
    employee_id: int | None = None,
) -> list[dict]:
    """Itemised inputs per active employee, for review before closing."""
    employees = await active_employees(db, None if employee_id is None else [employee_id])
    data = await load_month_data(db, month, employees, tz=tz, fallback_cutoff=fallback_cutoff)

    rows = []
    for e in employees:
        d = data[e.id]
        rows.append(
            {
                "employee": _employee(d),
                "comp_off_grants": [
                    {
                        "id": g.id,
                        "date": g.date,
                        "hours": g.hours,
                        "days": g.days,
                        "reason": g.reason,
                        "status": g.status,
                    }
                    for g in d.grants
                ],
                "permissions": [
                    {
                        "id": p.id,
                        "date": p.date,
                        "type": p.type,
                        "hours": p.hours,
                        "days": p.days,
                        "remarks": p.remarks,
                    }
                    for p in d.permissions
                ],
                "leaves": {pool: [asdict(entry) for entry in entries] for pool, entries in d.leaves.items()},
                "late_checkin_dates": d.late_dates,
                "late_checkins": len(d.late_dates),
                "days_present": d.days_present,
                "previous_balance": _previous(d),
                "warnings": d.warnings,
            }
        )
    return rows


async def build_summary(
    db: AsyncSession,
    month: MonthKey,
    *,
    tz: timezone,
    fallback_cutoff: str,
    employee_id: int | None = None,
) -> list[dict]:
    """Live waterfall result per active employee, computed against current data."""
    employees = await active_employees(db, None if employee_id is None else [employee_id])
    data = await load_month_data(db, month, employees, tz=tz, fallback_cutoff=fallback_cutoff)
    ledger_rows = await month_rows(db, month, [e.id for e in employees])

    rows = []
    for e in employees:
        d = data[e.id]
        result = compute_month(d.profile, d.carried(), d.activity(), month)
        own = ledger_rows.get(e.id)
        rows.append(
            {
                "employee": _employee(d),
                "current": asdict(result.current),
                "available": asdict(result.available),
                "adjusted": asdict(result.adjusted),
                "balance": asdict(result.balance),
                "lop_days": result.lop_days,
                "status": result.status,
                "leave_reset": result.leave_reset,
                "is_closed": bool(own is not None and own.is_closed),
                "is_stale": bool(own is not None and own.is_stale),
                "validation": asdict(result.validation),
                "warnings": d.warnings,
            }
        )
    return rows
