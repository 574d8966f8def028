"""
Load everything one month's computation needs, for many employees at once.

Each table is read in a single query for the whole employee set and
grouped in Python, so the details/summary views and month close share
the same loader without N+1 queries.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leaveledger.engine.classification import Classifier, LeaveTypeRef
from leaveledger.engine.computation import (CarriedBalance, EmployeeProfile,
                                            MonthActivity)
from leaveledger.engine.lateness import (PunchDay, ShiftDay, ShiftWindow,
                                         late_checkin_dates)
from leaveledger.engine.months import MonthKey
from leaveledger.models.balance import MonthlyBalance
from leaveledger.models.compoff import CompOffGrant, PermissionEntry
from leaveledger.models.employee import AttendancePunch, Employee
from leaveledger.models.leave import LeaveRequest
from leaveledger.models.shift import ShiftAssignment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveEntry:
    request_id: int
    leave_type_id: int
    leave_type: str
    start_date: date
    end_date: date
    days: float


@dataclass
class EmployeeMonthData:
    employee: Employee
    month: MonthKey
    grants: list[CompOffGrant] = field(default_factory=list)
    permissions: list[PermissionEntry] = field(default_factory=list)
    leaves: dict[str, list[LeaveEntry]] = field(
        default_factory=lambda: {"CL": [], "SL": [], "EL": []}
    )
    warnings: list[str] = field(default_factory=list)
    days_present: int = 0
    late_dates: list[date] = field(default_factory=list)
    previous: MonthlyBalance | None = None

    @property
    def profile(self) -> EmployeeProfile:
        return EmployeeProfile(
            employee_id=self.employee.id,
            category=self.employee.category or "confirmed",
            leave_start_month=self.employee.leave_start_month,
        )

    def leave_days(self, pool: str) -> float:
        return sum(e.days for e in self.leaves[pool])

    def activity(self) -> MonthActivity:
        # Comp-off counts approved grants only; permissions count every entry.
        return MonthActivity(
            approved_comp_off_hours=sum(g.hours for g in self.grants if g.status == "approved"),
            permission_hours=sum(p.hours for p in self.permissions),
            cl_availed=self.leave_days("CL"),
            sl_availed=self.leave_days("SL"),
            el_utilised=self.leave_days("EL"),
            late_checkins=len(self.late_dates),
        )

    def carried(self) -> CarriedBalance:
        return carried_from_row(self.previous)


def carried_from_row(row: MonthlyBalance | None) -> CarriedBalance:
    if row is None:
        return CarriedBalance()
    return CarriedBalance(
        comp_off_days=row.comp_off_days or 0.0,
        comp_off_hours=row.comp_off_hours or 0.0,
        cl=row.cl_balance or 0.0,
        sl=row.sl_balance or 0.0,
        el=row.el_balance or 0.0,
        late_early_days=row.late_early_days or 0.0,
        late_early_hours=row.late_early_hours or 0.0,
    )


def leave_days_in_month(request: LeaveRequest, month: MonthKey) -> float:
    """Days of ``request`` falling inside ``month``.

    Requests entirely inside the month count their recorded ``days``
    (which may be a half day). Requests crossing a month boundary count
    the calendar days of the overlap, capped at the recorded total.
    """
    if month.contains(request.start_date) and month.contains(request.end_date):
        return float(request.days)
    start = max(request.start_date, month.first_day)
    end = min(request.end_date, month.last_day)
    if end < start:
        return 0.0
    return float(min(request.days, (end - start).days + 1))


async def active_employees(
    db: AsyncSession, employee_ids: Sequence[int] | None = None
) -> list[Employee]:
    stmt = select(Employee).where(Employee.is_active.is_(True))
    if employee_ids is not None:
        stmt = stmt.where(Employee.id.in_(list(employee_ids)))
    result = await db.execute(stmt.order_by(Employee.code, Employee.id))
    return list(result.scalars().all())


async def load_month_data(
    db: AsyncSession,
    month: MonthKey,
    employees: Sequence[Employee],
    *,
    tz: timezone,
    fallback_cutoff: str,
    classifier: Classifier | None = None,
) -> dict[int, EmployeeMonthData]:
    """Collect grants, permissions, leaves, punches and the carried row."""
    classifier = classifier or Classifier()
    data = {e.id: EmployeeMonthData(employee=e, month=month) for e in employees}
    if not data:
        return data
    ids = list(data)
    first, last = month.first_day, month.last_day

    grants = await db.execute(
        select(CompOffGrant)
        .where(
            CompOffGrant.employee_id.in_(ids),
            CompOffGrant.month == month.month,
            CompOffGrant.year == month.year,
        )
        .order_by(CompOffGrant.date, CompOffGrant.id)
    )
    for g in grants.scalars().unique().all():
        data[g.employee_id].grants.append(g)

    permissions = await db.execute(
        select(PermissionEntry)
        .where(
            PermissionEntry.employee_id.in_(ids),
            PermissionEntry.month == month.month,
            PermissionEntry.year == month.year,
        )
        .order_by(PermissionEntry.date, PermissionEntry.id)
    )
    for p in permissions.scalars().unique().all():
        data[p.employee_id].permissions.append(p)

    leaves = await db.execute(
        select(LeaveRequest)
        .where(
            LeaveRequest.employee_id.in_(ids),
            LeaveRequest.status == "approved",
            LeaveRequest.start_date <= last,
            LeaveRequest.end_date >= first,
        )
        .order_by(LeaveRequest.start_date, LeaveRequest.id)
    )
    for req in leaves.scalars().unique().all():
        lt = req.leave_type
        pool = classifier.classify(LeaveTypeRef(id=lt.id, code=lt.code, name=lt.name, pool=lt.pool))
        emp_data = data[req.employee_id]
        if pool is None:
            emp_data.warnings.extend(
                w for w in classifier.warnings_for([lt.id]) if w not in emp_data.warnings
            )
            continue
        emp_data.leaves[pool].append(
            LeaveEntry(
                request_id=req.id,
                leave_type_id=lt.id,
                leave_type=lt.name,
                start_date=req.start_date,
                end_date=req.end_date,
                days=leave_days_in_month(req, month),
            )
        )

    windows: dict[int, list[ShiftWindow]] = defaultdict(list)
    assignments = await db.execute(
        select(ShiftAssignment).where(
            ShiftAssignment.employee_id.in_(ids),
            ShiftAssignment.start_date <= last,
            ShiftAssignment.end_date >= first,
        )
    )
    for a in assignments.scalars().unique().all():
        windows[a.employee_id].append(
            ShiftWindow(
                start_date=a.start_date,
                end_date=a.end_date,
                days=tuple(ShiftDay.from_record(r) for r in (a.shift.records or [])),
            )
        )

    punches_by_emp: dict[int, list[PunchDay]] = defaultdict(list)
    punches = await db.execute(
        select(AttendancePunch).where(
            AttendancePunch.employee_id.in_(ids),
            AttendancePunch.date >= first,
            AttendancePunch.date <= last,
        )
    )
    for p in punches.scalars().all():
        punches_by_emp[p.employee_id].append(PunchDay(day=p.date, in_at=p.in_at))

    for emp_id, days in punches_by_emp.items():
        data[emp_id].days_present = sum(1 for d in days if d.in_at is not None)
        data[emp_id].late_dates = late_checkin_dates(
            days, windows.get(emp_id, []), tz, fallback_cutoff
        )

    prev = month.previous()
    previous = await db.execute(
        select(MonthlyBalance).where(
            MonthlyBalance.employee_id.in_(ids),
            MonthlyBalance.month == prev.month,
            MonthlyBalance.year == prev.year,
        )
    )
    for row in previous.scalars().all():
        data[row.employee_id].previous = row

    logger.debug("Loaded %s inputs for %d employee(s)", month, len(data))
    return data
