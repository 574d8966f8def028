"""
Employee & AttendancePunch models: read-only inputs to the ledger.

Both tables are owned by the HR side of the product; the ledger only
reads the category, the personal leave-start month and the daily punches.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Boolean, Column, Date, DateTime, ForeignKey, Index,
                        Integer, String, UniqueConstraint)
from sqlalchemy.orm import relationship

from leaveledger.db.base import Base

EMPLOYEE_CATEGORIES = ("confirmed", "time_scale", "contract", "adhoc", "part_time")


class Employee(Base):
    __tablename__ = "employees"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    code: str | None = Column(String(50), unique=True, nullable=True, index=True)  # type: ignore[assignment]
    designation: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    category: str = Column(  # type: ignore[assignment]
        String(20),
        nullable=False,
        default="confirmed",
        server_default="confirmed",
    )  # confirmed | time_scale | contract | adhoc | part_time
    # Personal anniversary month (1-12) on which CL/SL are re-allocated.
    leave_start_month: int | None = Column(Integer, nullable=True)  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    punches = relationship(
        "AttendancePunch",
        back_populates="employee",
        cascade="all, delete-orphan",
    )


class AttendancePunch(Base):
    __tablename__ = "attendance_punches"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_punch_emp_date"),
        Index("ix_punch_employee_date", "employee_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    date: date = Column(Date, nullable=False, index=True)  # type: ignore[assignment]
    in_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    out_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]

    employee = relationship("Employee", back_populates="punches")
