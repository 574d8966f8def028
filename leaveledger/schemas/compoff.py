"""Pydantic schemas for comp-off grants and permission entries."""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from leaveledger.models.compoff import PERMISSION_TYPES


# ── Comp-off grants ─────────────────────────────────────────────────
class CompOffGrantCreate(BaseModel):
    employee_id: int
    date: date_type
    hours: float = Field(gt=0, le=24)
    reason: str | None = Field(default=None, max_length=500)

    @field_validator("date")
    @classmethod
    def _year_in_range(cls, v: date_type) -> date_type:
        if not 2000 <= v.year <= 2100:
            raise ValueError("Date must fall between 2000 and 2100")
        return v


class CompOffGrantRead(BaseModel):
    id: int
    employee_id: int
    date: date_type
    hours: float
    days: float
    reason: str | None
    status: str
    approved_by: int | None
    month: int
    year: int
    created_at: datetime | None

    model_config = {"from_attributes": True}


# ── Permissions ─────────────────────────────────────────────────────
class PermissionCreate(BaseModel):
    employee_id: int
    date: date_type
    type: str = "general"
    hours: float = Field(gt=0, le=24)
    remarks: str | None = Field(default=None, max_length=500)

    @field_validator("type")
    @classmethod
    def _valid_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in PERMISSION_TYPES:
            raise ValueError(f"Type must be one of: {', '.join(PERMISSION_TYPES)}")
        return v

    @field_validator("date")
    @classmethod
    def _year_in_range(cls, v: date_type) -> date_type:
        if not 2000 <= v.year <= 2100:
            raise ValueError("Date must fall between 2000 and 2100")
        return v


class PermissionRead(BaseModel):
    id: int
    employee_id: int
    date: date_type
    type: str
    hours: float
    days: float
    remarks: str | None
    month: int
    year: int
    created_at: datetime | None

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    success: bool = True
    message: str
