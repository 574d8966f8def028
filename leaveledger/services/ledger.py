"""
Ledger persistence: chain checks, snapshot writes, reopen and seeding.

Rows are keyed by ``(employee_id, month, year)``. A close writes the
floored carry-forward plus the month's LOP and marks the row closed;
identical re-closes leave the row untouched. Every value change appends
a ``MonthlyBalanceRevision``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone

from sqlalchemy import and_, exists, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leaveledger.core.exceptions import (MonthClosedError, MonthConsumedError,
                                         MonthNotClosedError,
                                         OutOfOrderCloseError,
                                         SeedConflictError)
from leaveledger.engine.computation import CarriedBalance, MonthComputation
from leaveledger.engine.months import MonthKey
from leaveledger.models.balance import (SNAPSHOT_FIELDS, MonthlyBalance,
                                        MonthlyBalanceRevision)
from leaveledger.services.inputs import carried_from_row

logger = logging.getLogger(__name__)


def _after(month: MonthKey):
    return or_(
        MonthlyBalance.year > month.year,
        and_(MonthlyBalance.year == month.year, MonthlyBalance.month > month.month),
    )


def _before(month: MonthKey):
    return or_(
        MonthlyBalance.year < month.year,
        and_(MonthlyBalance.year == month.year, MonthlyBalance.month < month.month),
    )


async def get_balance(db: AsyncSession, employee_id: int, month: MonthKey) -> MonthlyBalance | None:
    result = await db.execute(
        select(MonthlyBalance).where(
            MonthlyBalance.employee_id == employee_id,
            MonthlyBalance.month == month.month,
            MonthlyBalance.year == month.year,
        )
    )
    return result.scalar_one_or_none()


async def ensure_month_open(db: AsyncSession, employee_id: int, month: MonthKey) -> None:
    """Reject edits to grants/permissions bucketed in a closed month."""
    row = await get_balance(db, employee_id, month)
    if row is not None and row.is_closed:
        raise MonthClosedError(
            f"{month} is closed for employee {employee_id}; reopen it before editing",
            employee_id=employee_id,
        )


async def month_rows(
    db: AsyncSession, month: MonthKey, employee_ids: Sequence[int]
) -> dict[int, MonthlyBalance]:
    """Ledger rows for ``month`` keyed by employee, for those that have one."""
    if not employee_ids:
        return {}
    result = await db.execute(
        select(MonthlyBalance).where(
            MonthlyBalance.employee_id.in_(list(employee_ids)),
            MonthlyBalance.month == month.month,
            MonthlyBalance.year == month.year,
        )
    )
    return {row.employee_id: row for row in result.scalars().all()}


async def opening_balance_for_close(
    db: AsyncSession, employee_id: int, months: Sequence[MonthKey]
) -> CarriedBalance:
    """Validate the chain around ``months`` and return the opening balance.

    * The month before the range must be closed and current, unless the
      employee has no ledger history before the range at all.
    * No month after the range may be closed (and current): it already
      consumed the balances about to be rewritten.
    * No month in the range may hold seeded opening balances; those are
      entered, not computed, and a close would overwrite them.
    """
    first, last = months[0], months[-1]

    seeded = await db.execute(
        select(MonthlyBalance.year, MonthlyBalance.month).where(
            MonthlyBalance.employee_id == employee_id,
            MonthlyBalance.source == "seed",
            ~_before(first),
            ~_after(last),
        )
    )
    seeded_month = seeded.first()
    if seeded_month is not None:
        raise SeedConflictError(
            f"{MonthKey(*seeded_month)} holds seeded opening balances for employee "
            f"{employee_id}; close the following month instead",
            employee_id=employee_id,
        )

    later = await db.execute(
        select(
            exists().where(
                MonthlyBalance.employee_id == employee_id,
                _after(last),
                MonthlyBalance.is_closed.is_(True),
                MonthlyBalance.is_stale.is_(False),
            )
        )
    )
    if later.scalar():
        raise MonthConsumedError(
            f"A month after {last} is already closed for employee {employee_id}; "
            f"reopen {last.next()} first",
            employee_id=employee_id,
        )

    prev = await get_balance(db, employee_id, first.previous())
    if prev is None:
        history = await db.execute(
            select(exists().where(MonthlyBalance.employee_id == employee_id, _before(first)))
        )
        if history.scalar():
            raise OutOfOrderCloseError(
                f"{first.previous()} has no ledger row for employee {employee_id}; "
                "close months in order",
                employee_id=employee_id,
            )
        return CarriedBalance()

    if not prev.is_closed:
        raise OutOfOrderCloseError(
            f"{first.previous()} is open for employee {employee_id}; close it first",
            employee_id=employee_id,
        )
    if prev.is_stale:
        raise OutOfOrderCloseError(
            f"{first.previous()} is stale for employee {employee_id} after a reopen; "
            "re-close it first",
            employee_id=employee_id,
        )
    return carried_from_row(prev)


def _append_revision(
    db: AsyncSession, row: MonthlyBalance, action: str, actor_id: int | None
) -> None:
    db.add(
        MonthlyBalanceRevision(
            balance_id=row.id,
            employee_id=row.employee_id,
            month=row.month,
            year=row.year,
            revision=row.revision,
            action=action,
            actor_id=actor_id,
            **row.snapshot(),
        )
    )


def snapshot_values(result: MonthComputation, carried: CarriedBalance) -> dict[str, float]:
    return {
        "comp_off_days": carried.comp_off_days,
        "comp_off_hours": carried.comp_off_hours,
        "cl_balance": carried.cl,
        "sl_balance": carried.sl,
        "el_balance": carried.el,
        "late_early_days": carried.late_early_days,
        "late_early_hours": carried.late_early_hours,
        "lop_days": result.lop_days,
    }


async def write_snapshot(
    db: AsyncSession,
    employee_id: int,
    result: MonthComputation,
    carried: CarriedBalance,
    actor_id: int | None = None,
) -> bool:
    """Upsert the closed row for ``result.month``. Returns whether it changed."""
    month = result.month
    values = snapshot_values(result, carried)
    row = await get_balance(db, employee_id, month)

    if row is not None and row.is_closed and not row.is_stale and row.snapshot() == values:
        logger.debug("Employee %s %s unchanged on re-close", employee_id, month)
        return False

    if row is None:
        row = MonthlyBalance(employee_id=employee_id, month=month.month, year=month.year, revision=0)
        db.add(row)

    for name, value in values.items():
        setattr(row, name, value)
    row.is_closed = True
    row.is_stale = False
    row.source = "close"
    row.revision = (row.revision or 0) + 1
    row.closed_at = datetime.now(timezone.utc)
    row.closed_by = actor_id
    await db.flush()
    _append_revision(db, row, "close", actor_id)
    return True


async def reopen_month(
    db: AsyncSession, employee_id: int, month: MonthKey, actor_id: int | None = None
) -> int:
    """Open ``month`` again and flag later closed months stale.

    Returns the number of later months flagged.
    """
    row = await get_balance(db, employee_id, month)
    if row is None or not row.is_closed:
        raise MonthNotClosedError(
            f"{month} is not closed for employee {employee_id}",
            employee_id=employee_id,
        )
    if row.source == "seed":
        raise SeedConflictError(
            f"{month} holds seeded opening balances for employee {employee_id} and cannot be reopened",
            employee_id=employee_id,
        )

    row.is_closed = False
    row.revision = (row.revision or 0) + 1
    await db.flush()
    _append_revision(db, row, "reopen", actor_id)

    flagged = await db.execute(
        update(MonthlyBalance)
        .where(
            MonthlyBalance.employee_id == employee_id,
            _after(month),
            MonthlyBalance.is_closed.is_(True),
            MonthlyBalance.source != "seed",
        )
        .values(is_stale=True)
        .execution_options(synchronize_session=False)
    )
    count = flagged.rowcount or 0
    logger.info(
        "Reopened %s for employee %s; %d later month(s) flagged stale",
        month,
        employee_id,
        count,
    )
    return count


async def seed_balance(
    db: AsyncSession,
    employee_id: int,
    month: MonthKey,
    values: Mapping[str, float],
    actor_id: int | None = None,
) -> MonthlyBalance:
    """Write a closed opening row for a tenant's first ledger month."""
    clash = await db.execute(
        select(
            exists().where(
                MonthlyBalance.employee_id == employee_id,
                or_(
                    _after(month),
                    and_(MonthlyBalance.year == month.year, MonthlyBalance.month == month.month),
                ),
            )
        )
    )
    if clash.scalar():
        raise SeedConflictError(
            f"Employee {employee_id} already has ledger rows from {month} onwards",
            employee_id=employee_id,
        )

    row = MonthlyBalance(
        employee_id=employee_id,
        month=month.month,
        year=month.year,
        is_closed=True,
        is_stale=False,
        source="seed",
        revision=1,
        closed_at=datetime.now(timezone.utc),
        closed_by=actor_id,
        **{name: float(values.get(name, 0.0)) for name in SNAPSHOT_FIELDS},
    )
    db.add(row)
    await db.flush()
    _append_revision(db, row, "seed", actor_id)
    return row


async def revision_history(db: AsyncSession, employee_id: int) -> list[MonthlyBalanceRevision]:
    result = await db.execute(
        select(MonthlyBalanceRevision)
        .where(MonthlyBalanceRevision.employee_id == employee_id)
        .order_by(
            MonthlyBalanceRevision.year,
            MonthlyBalanceRevision.month,
            MonthlyBalanceRevision.revision,
        )
    )
    return list(result.scalars().all())
