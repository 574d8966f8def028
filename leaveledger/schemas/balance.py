"""Pydantic schemas for ledger projections, month close, reopen and seeding."""

from __future__ import annotations

from datetime import date, datetime
from datetime import date as date_type

from pydantic import BaseModel, Field, model_validator

from leaveledger.engine.months import MonthKey


class MonthYear(BaseModel):
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)

    @property
    def key(self) -> MonthKey:
        return MonthKey(year=self.year, month=self.month)


# ── Shared pieces ───────────────────────────────────────────────────
class EmployeeRef(BaseModel):
    id: int
    name: str
    code: str | None = None
    designation: str | None = None
    department: str | None = None
    category: str
    leave_start_month: int | None = None


class BalanceValues(BaseModel):
    comp_off_days: float
    comp_off_hours: float
    cl_balance: float
    sl_balance: float
    el_balance: float
    late_early_days: float
    late_early_hours: float
    lop_days: float


# ── Details ─────────────────────────────────────────────────────────
class GrantItem(BaseModel):
    id: int
    date: date_type
    hours: float
    days: float
    reason: str | None
    status: str


class PermissionItem(BaseModel):
    id: int
    date: date_type
    type: str
    hours: float
    days: float
    remarks: str | None


class LeaveItem(BaseModel):
    request_id: int
    leave_type_id: int
    leave_type: str
    start_date: date
    end_date: date
    days: float


class PreviousBalance(BalanceValues):
    is_closed: bool
    is_stale: bool


class EmployeeDetails(BaseModel):
    employee: EmployeeRef
    comp_off_grants: list[GrantItem]
    permissions: list[PermissionItem]
    leaves: dict[str, list[LeaveItem]]
    late_checkin_dates: list[date]
    late_checkins: int
    days_present: int
    previous_balance: PreviousBalance | None
    warnings: list[str] = []


class DetailsResponse(BaseModel):
    month: int
    year: int
    employees: list[EmployeeDetails]


# ── Summary ─────────────────────────────────────────────────────────
class CurrentBlock(BaseModel):
    comp_off_days: float
    comp_off_hours: float
    cl_availed: float
    late_checkins: int
    late_checkin_days: float
    perm_days: float
    perm_hours: float
    sl_availed: float
    el_credited: float
    el_utilised: float


class AvailableBlock(BaseModel):
    comp_off_days: float
    comp_off_hours: float
    cl: float
    sl: float
    el: float
    perm_days: float
    perm_hours: float


class AdjustedBlock(BaseModel):
    comp_off_days: float
    comp_off_hours: float
    from_cl: float
    from_el: float
    cl_overdraft: float
    el_overdraft: float
    sl_uncovered: float


class BalanceBlock(BaseModel):
    comp_off_days: float
    comp_off_hours: float
    cl: float
    sl: float
    el: float
    late_early_days: float
    late_early_hours: float


class ValidationBlock(BaseModel):
    error: bool
    message: str | None = None


class EmployeeSummary(BaseModel):
    employee: EmployeeRef
    current: CurrentBlock
    available: AvailableBlock
    adjusted: AdjustedBlock
    balance: BalanceBlock
    lop_days: float
    status: str
    leave_reset: bool
    is_closed: bool
    is_stale: bool
    validation: ValidationBlock
    warnings: list[str] = []


class SummaryResponse(BaseModel):
    month: int
    year: int
    employees: list[EmployeeSummary]


# ── Close / reopen ──────────────────────────────────────────────────
class CloseMonthRequest(MonthYear):
    employee_ids: list[int] | None = None


class CloseRangeRequest(BaseModel):
    start: MonthYear
    end: MonthYear
    employee_ids: list[int] | None = None

    @model_validator(mode="after")
    def _ordered(self) -> CloseRangeRequest:
        if self.end.key < self.start.key:
            raise ValueError("end month must not precede start month")
        return self


class EmployeeFailureRead(BaseModel):
    employee_id: int
    error: str


class CloseMonthResponse(BaseModel):
    success: bool
    months: list[str]
    count: int
    processed: list[int]
    unchanged: list[int]
    failed: list[EmployeeFailureRead]


class ReopenRequest(MonthYear):
    employee_id: int


class ReopenResponse(BaseModel):
    success: bool = True
    employee_id: int
    month: int
    year: int
    stale_months: int


# ── Seeding ─────────────────────────────────────────────────────────
class SeedEntry(BaseModel):
    employee_id: int
    comp_off_days: float = Field(default=0.0, ge=0)
    comp_off_hours: float = Field(default=0.0, ge=0)
    cl_balance: float = Field(default=0.0, ge=0)
    sl_balance: float = Field(default=0.0, ge=0)
    el_balance: float = Field(default=0.0, ge=0)
    late_early_days: float = Field(default=0.0, ge=0)
    late_early_hours: float = Field(default=0.0, ge=0)


class SeedRequest(MonthYear):
    entries: list[SeedEntry] = Field(min_length=1)


class BalanceRead(BalanceValues):
    id: int
    employee_id: int
    month: int
    year: int
    is_closed: bool
    is_stale: bool
    source: str
    revision: int
    closed_at: datetime | None
    closed_by: int | None

    model_config = {"from_attributes": True}


class SeedResponse(BaseModel):
    success: bool = True
    count: int
    balances: list[BalanceRead]


class RevisionRead(BalanceValues):
    id: int
    balance_id: int
    employee_id: int
    month: int
    year: int
    revision: int
    action: str
    actor_id: int | None
    created_at: datetime | None

    model_config = {"from_attributes": True}
