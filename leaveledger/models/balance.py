"""
MonthlyBalance: the per-employee-per-month ledger snapshot.

One row per ``(employee_id, month, year)``. A closed row is the
carry-forward source for the following month. Every change to a row's
values (close, reopen, seed) is also written to ``monthly_balance_revisions``,
which is never updated or deleted.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, Float, ForeignKey, Index,
                        Integer, String, UniqueConstraint)

from leaveledger.db.base import Base

SNAPSHOT_FIELDS = (
    "comp_off_days",
    "comp_off_hours",
    "cl_balance",
    "sl_balance",
    "el_balance",
    "late_early_days",
    "late_early_hours",
    "lop_days",
)


class MonthlyBalance(Base):
    __tablename__ = "monthly_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "month", "year", name="uq_balance_emp_month_year"),
        Index("ix_balance_emp_period", "employee_id", "year", "month"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]

    comp_off_days: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    comp_off_hours: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    cl_balance: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    sl_balance: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    el_balance: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    late_early_days: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    late_early_hours: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]
    lop_days: float = Column(Float, nullable=False, default=0.0)  # type: ignore[assignment]

    is_closed: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    # Set when an earlier month was reopened after this one was closed.
    is_stale: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    source: str = Column(String(10), nullable=False, default="close")  # type: ignore[assignment]  # close | seed
    revision: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    closed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    closed_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]

    def snapshot(self) -> dict[str, float]:
        return {field: getattr(self, field) for field in SNAPSHOT_FIELDS}


class MonthlyBalanceRevision(Base):
    __tablename__ = "monthly_balance_revisions"
    __table_args__ = (
        UniqueConstraint("balance_id", "revision", name="uq_balance_revision"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    balance_id: int = Column(Integer, ForeignKey("monthly_balances.id"), nullable=False)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    revision: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    action: str = Column(String(10), nullable=False)  # type: ignore[assignment]  # close | reopen | seed

    comp_off_days: float = Column(Float, nullable=False)  # type: ignore[assignment]
    comp_off_hours: float = Column(Float, nullable=False)  # type: ignore[assignment]
    cl_balance: float = Column(Float, nullable=False)  # type: ignore[assignment]
    sl_balance: float = Column(Float, nullable=False)  # type: ignore[assignment]
    el_balance: float = Column(Float, nullable=False)  # type: ignore[assignment]
    late_early_days: float = Column(Float, nullable=False)  # type: ignore[assignment]
    late_early_hours: float = Column(Float, nullable=False)  # type: ignore[assignment]
    lop_days: float = Column(Float, nullable=False)  # type: ignore[assignment]

    actor_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
