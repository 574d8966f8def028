"""
Leave types and approved leave requests.

The approval workflow lives elsewhere; the ledger only reads requests in
``approved`` state. ``LeaveType.pool`` tags a type as CL, SL or EL at
configuration time. Untagged types fall back to the legacy code/name
matching in ``leaveledger.engine.classification``.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Column, Date, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from leaveledger.db.base import Base


class LeaveType(Base):
    __tablename__ = "leave_types"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    code: str = Column(String(20), nullable=False)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    pool: str | None = Column(String(2), nullable=True)  # type: ignore[assignment]  # CL | SL | EL


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        Index("ix_leave_request_emp_range", "employee_id", "start_date", "end_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    leave_type_id: int = Column(Integer, ForeignKey("leave_types.id"), nullable=False)  # type: ignore[assignment]
    start_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    days: float = Column(Float, nullable=False)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="pending")  # type: ignore[assignment]
    # pending | approved | rejected | cancelled

    leave_type = relationship("LeaveType", lazy="joined")
