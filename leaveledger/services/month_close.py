"""
Month close: recompute and persist the ledger row of every active employee.

Employees are independent. Each one runs in its own session and
transaction with bounded concurrency, so a failure (or a timeout) for one
employee leaves everyone else's rows committed and its own rows untouched.
A range of months is folded per employee and committed as one unit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import timezone

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leaveledger.core.config import settings
from leaveledger.core.exceptions import LedgerError
from leaveledger.engine.computation import EmployeeProfile, close_step
from leaveledger.engine.lateness import parse_offset
from leaveledger.engine.months import MonthKey, fold_months, iter_contiguous
from leaveledger.models.employee import Employee
from leaveledger.services.inputs import active_employees, load_month_data
from leaveledger.services.ledger import opening_balance_for_close, write_snapshot

logger = logging.getLogger(__name__)

RETRYABLE = (OperationalError, IntegrityError)


@dataclass(frozen=True)
class EmployeeFailure:
    employee_id: int
    error: str


@dataclass
class CloseReport:
    months: list[MonthKey]
    processed: list[int] = field(default_factory=list)
    unchanged: list[int] = field(default_factory=list)
    failed: list[EmployeeFailure] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.processed)


class MonthCloser:
    """Runs month close for a set of employees."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        concurrency: int | None = None,
        max_retries: int | None = None,
        retry_backoff: float | None = None,
        timeout_base: float | None = None,
        timeout_per_employee: float | None = None,
        tz: timezone | None = None,
        fallback_cutoff: str | None = None,
    ):
        self.session_factory = session_factory
        self.concurrency = concurrency or settings.CLOSE_MONTH_CONCURRENCY
        self.max_retries = settings.CLOSE_MONTH_MAX_RETRIES if max_retries is None else max_retries
        self.retry_backoff = (
            settings.CLOSE_MONTH_RETRY_BACKOFF_SECONDS if retry_backoff is None else retry_backoff
        )
        self.timeout_base = (
            settings.CLOSE_MONTH_TIMEOUT_BASE_SECONDS if timeout_base is None else timeout_base
        )
        self.timeout_per_employee = (
            settings.CLOSE_MONTH_TIMEOUT_PER_EMPLOYEE_SECONDS
            if timeout_per_employee is None
            else timeout_per_employee
        )
        self.tz = tz or parse_offset(settings.TIMEZONE_OFFSET)
        self.fallback_cutoff = fallback_cutoff or settings.LATE_FALLBACK_CUTOFF

    def timeout_for(self, employee_count: int) -> float:
        return self.timeout_base + self.timeout_per_employee * employee_count

    async def close(
        self,
        months: Sequence[MonthKey],
        employee_ids: Sequence[int] | None = None,
        actor_id: int | None = None,
    ) -> CloseReport:
        months = list(iter_contiguous(sorted(months)))
        if not months:
            raise ValueError("at least one month is required")
        report = CloseReport(months=months)

        async with self.session_factory() as db:
            ids = [e.id for e in await active_employees(db, employee_ids)]
        if not ids:
            logger.info("Month close %s..%s: no active employees", months[0], months[-1])
            return report

        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(employee_id: int) -> bool:
            async with semaphore:
                return await self._close_with_retry(employee_id, months, actor_id)

        tasks = {asyncio.create_task(run(emp_id)): emp_id for emp_id in ids}
        timeout = self.timeout_for(len(ids))
        done, pending = await asyncio.wait(tasks, timeout=timeout)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            for task in pending:
                emp_id = tasks[task]
                logger.warning("Month close timed out for employee %s after %.1fs", emp_id, timeout)
                report.failed.append(EmployeeFailure(emp_id, f"timed out after {timeout:g}s"))

        for task in done:
            emp_id = tasks[task]
            exc = task.exception()
            if exc is not None:
                report.failed.append(EmployeeFailure(emp_id, str(exc) or type(exc).__name__))
                continue
            report.processed.append(emp_id)
            if not task.result():
                report.unchanged.append(emp_id)

        report.processed.sort()
        report.unchanged.sort()
        report.failed.sort(key=lambda f: f.employee_id)
        logger.info(
            "Month close %s..%s: %d processed (%d unchanged), %d failed",
            months[0],
            months[-1],
            len(report.processed),
            len(report.unchanged),
            len(report.failed),
        )
        return report

    async def _close_with_retry(
        self, employee_id: int, months: list[MonthKey], actor_id: int | None
    ) -> bool:
        attempt = 0
        while True:
            try:
                return await self._close_employee(employee_id, months, actor_id)
            except RETRYABLE as exc:
                if attempt >= self.max_retries:
                    logger.warning(
                        "Month close failed for employee %s after %d attempt(s): %s",
                        employee_id,
                        attempt + 1,
                        exc,
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Retrying month close for employee %s (attempt %d): %s",
                    employee_id,
                    attempt + 1,
                    exc,
                )
                await asyncio.sleep(self.retry_backoff * attempt)
            except LedgerError as exc:
                logger.warning("Month close rejected for employee %s: %s", employee_id, exc.message)
                raise
            except Exception:
                logger.exception("Month close crashed for employee %s", employee_id)
                raise

    async def _close_employee(
        self, employee_id: int, months: list[MonthKey], actor_id: int | None
    ) -> bool:
        """Fold and persist ``months`` for one employee. Returns whether any row changed."""
        async with self.session_factory() as db:
            try:
                employee = await db.get(Employee, employee_id)
                if employee is None:
                    raise LedgerError(f"Employee {employee_id} not found", employee_id=employee_id)
                opening = await opening_balance_for_close(db, employee_id, months)

                inputs = {}
                for month in months:
                    data = await load_month_data(
                        db,
                        month,
                        [employee],
                        tz=self.tz,
                        fallback_cutoff=self.fallback_cutoff,
                    )
                    inputs[month] = data[employee_id].activity()

                profile = EmployeeProfile(
                    employee_id=employee_id,
                    category=employee.category or "confirmed",
                    leave_start_month=employee.leave_start_month,
                )
                changed = False
                for _month, result, carried in fold_months(
                    opening, months, inputs, close_step(profile)
                ):
                    changed = await write_snapshot(db, employee_id, result, carried, actor_id) or changed
                await db.commit()
                return changed
            except Exception:
                await db.rollback()
                raise
