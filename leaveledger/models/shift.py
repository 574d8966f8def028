"""
Work shift definitions and their date-ranged assignment to employees.

``records`` holds one JSON object per weekday::

    {"day": "monday", "startTime": "09:00", "endTime": "18:00",
     "isOff": false, "graceMins": 10, "isOvernight": false}
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import JSON, Column, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from leaveledger.db.base import Base


class ShiftDefinition(Base):
    __tablename__ = "shift_definitions"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    name: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    records: list = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="active")  # type: ignore[assignment]


class ShiftAssignment(Base):
    __tablename__ = "shift_assignments"
    __table_args__ = (
        Index("ix_shift_assignment_emp_range", "employee_id", "start_date", "end_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("employees.id"), nullable=False)  # type: ignore[assignment]
    shift_id: int = Column(Integer, ForeignKey("shift_definitions.id"), nullable=False)  # type: ignore[assignment]
    start_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_date: date = Column(Date, nullable=False)  # type: ignore[assignment]

    shift = relationship("ShiftDefinition", lazy="joined")
