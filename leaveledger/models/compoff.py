"""
Comp-off grants and permission entries, bucketed by month/year.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, Float, ForeignKey, Index,
                        Integer, String)
from sqlalchemy.orm import relationship

from leaveledger.db.base import Base

GRANT_STATUSES = ("pending", "approved", "rejected")
PERMISSION_TYPES = ("late_coming", "early_going", "general")


class CompOffGrant(Base):
    __tablename__ = "comp_off_grants"
    __table_args__ = (Index("ix_compoff_emp_period", "employee_id", "year", "month"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    hours: float = Column(Float, nullable=False)  # type: ignore[assignment]
    days: float = Column(Float, nullable=False)  # type: ignore[assignment]  # hours / 8, display only
    reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    status: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="pending",
        server_default="pending",
    )  # pending | approved | rejected
    approved_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", lazy="joined")


class PermissionEntry(Base):
    __tablename__ = "permission_entries"
    __table_args__ = (Index("ix_permission_emp_period", "employee_id", "year", "month"),)

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    type: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    # late_coming | early_going | general
    hours: float = Column(Float, nullable=False)  # type: ignore[assignment]
    days: float = Column(Float, nullable=False)  # type: ignore[assignment]
    remarks: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    month: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    employee = relationship("Employee", lazy="joined")
