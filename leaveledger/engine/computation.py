"""
One employee, one month: from raw monthly totals and the carried balance
to the full register row (current, available, adjusted, balance, LOP).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from leaveledger.engine.conversion import (convert_grant_totals,
                                           late_checkins_to_days,
                                           normalize_hours)
from leaveledger.engine.months import MonthKey
from leaveledger.engine.policy import Pool, available_leave, el_credited
from leaveledger.engine.waterfall import Allocation, WaterfallInput, allocate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeProfile:
    employee_id: int
    category: str = "confirmed"
    leave_start_month: int | None = None


@dataclass(frozen=True)
class CarriedBalance:
    """Balances brought forward from the previous month's ledger row."""

    comp_off_days: float = 0.0
    comp_off_hours: float = 0.0
    cl: float = 0.0
    sl: float = 0.0
    el: float = 0.0
    late_early_days: float = 0.0
    late_early_hours: float = 0.0


@dataclass(frozen=True)
class MonthActivity:
    """Raw totals for the month, before conversion."""

    approved_comp_off_hours: float = 0.0
    permission_hours: float = 0.0
    cl_availed: float = 0.0
    sl_availed: float = 0.0
    el_utilised: float = 0.0
    late_checkins: int = 0


@dataclass(frozen=True)
class Current:
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


@dataclass(frozen=True)
class Available:
    comp_off_days: float
    comp_off_hours: float
    cl: float
    sl: float
    el: float
    perm_days: float
    perm_hours: float


@dataclass(frozen=True)
class Adjusted:
    comp_off_days: float
    comp_off_hours: float
    from_cl: float
    from_el: float
    cl_overdraft: float
    el_overdraft: float
    sl_uncovered: float


@dataclass(frozen=True)
class Balance:
    comp_off_days: float
    comp_off_hours: float
    cl: float
    sl: float
    el: float
    late_early_days: float
    late_early_hours: float


@dataclass(frozen=True)
class Validation:
    error: bool = False
    message: str | None = None


@dataclass(frozen=True)
class MonthComputation:
    month: MonthKey
    employee_id: int
    current: Current
    available: Available
    adjusted: Adjusted
    balance: Balance
    lop_days: float
    status: str
    leave_reset: bool
    validation: Validation = Validation()
    allocation: Allocation = field(default_factory=Allocation, repr=False, compare=False)


def compute_month(
    profile: EmployeeProfile,
    carried: CarriedBalance,
    activity: MonthActivity,
    month: MonthKey,
) -> MonthComputation:
    co_days, co_hours = convert_grant_totals(0, activity.approved_comp_off_hours)
    perm_days, perm_hours = convert_grant_totals(0, activity.permission_hours)
    late_days = late_checkins_to_days(activity.late_checkins)

    avail_co_days, avail_co_hours = normalize_hours(
        carried.comp_off_days, carried.comp_off_hours, co_days, co_hours
    )
    avail_perm_days, avail_perm_hours = normalize_hours(
        carried.late_early_days, carried.late_early_hours, perm_days, perm_hours
    )
    cl_avail, sl_avail, reset = available_leave(
        profile.category,
        profile.leave_start_month,
        month.month,
        carried.cl,
        carried.sl,
    )
    credited = el_credited(profile.leave_start_month, month.month, month.year, profile.category)
    el_avail = carried.el + credited

    allocation = allocate(
        WaterfallInput(
            cl_availed=activity.cl_availed,
            late_days=late_days,
            permission_days=avail_perm_days,
            permission_hours=avail_perm_hours,
            sl_availed=activity.sl_availed,
            comp_off_days=avail_co_days,
            comp_off_hours=avail_co_hours,
            cl_available=cl_avail,
            sl_available=sl_avail,
            el_available=el_avail,
            el_utilised=activity.el_utilised,
        )
    )

    validation = Validation()
    if activity.sl_availed > sl_avail:
        message = f"SL availed ({activity.sl_availed:g}) exceeds SL balance ({sl_avail:g})"
        logger.warning("Employee %s %s: %s", profile.employee_id, month, message)
        validation = Validation(error=True, message=message)

    return MonthComputation(
        month=month,
        employee_id=profile.employee_id,
        current=Current(
            comp_off_days=co_days,
            comp_off_hours=co_hours,
            cl_availed=activity.cl_availed,
            late_checkins=activity.late_checkins,
            late_checkin_days=late_days,
            perm_days=perm_days,
            perm_hours=perm_hours,
            sl_availed=activity.sl_availed,
            el_credited=credited,
            el_utilised=activity.el_utilised,
        ),
        available=Available(
            comp_off_days=avail_co_days,
            comp_off_hours=avail_co_hours,
            cl=cl_avail,
            sl=sl_avail,
            el=el_avail,
            perm_days=avail_perm_days,
            perm_hours=avail_perm_hours,
        ),
        adjusted=Adjusted(
            comp_off_days=allocation.comp_off_days_used,
            comp_off_hours=allocation.comp_off_hours_used,
            from_cl=allocation.drawn[Pool.CL],
            from_el=allocation.drawn[Pool.EL],
            cl_overdraft=allocation.overdraft[Pool.CL],
            el_overdraft=allocation.overdraft[Pool.EL],
            sl_uncovered=allocation.sl_uncovered,
        ),
        balance=Balance(
            comp_off_days=allocation.comp_off_days_balance,
            comp_off_hours=allocation.comp_off_hours_balance,
            cl=allocation.cl_balance,
            sl=allocation.sl_balance,
            el=allocation.el_balance,
            late_early_days=allocation.late_early_days_balance,
            late_early_hours=allocation.late_early_hours_balance,
        ),
        lop_days=allocation.lop_days,
        status=allocation.status,
        leave_reset=reset,
        validation=validation,
        allocation=allocation,
    )


def carry_forward(result: MonthComputation) -> CarriedBalance:
    """The balance stored at close: every field floored at zero.

    Deficits have already been charged as loss of pay for the month and
    are not carried into the next one as debt.
    """
    b = result.balance
    return CarriedBalance(
        comp_off_days=max(0.0, b.comp_off_days),
        comp_off_hours=max(0.0, b.comp_off_hours),
        cl=max(0.0, b.cl),
        sl=max(0.0, b.sl),
        el=max(0.0, b.el),
        late_early_days=max(0.0, b.late_early_days),
        late_early_hours=max(0.0, b.late_early_hours),
    )


def close_step(profile: EmployeeProfile):
    """Step function for ``fold_months`` closing one employee's months."""

    def step(
        carried: CarriedBalance, month: MonthKey, activity: MonthActivity
    ) -> tuple[MonthComputation, CarriedBalance]:
        result = compute_month(profile, carried, activity, month)
        return result, carry_forward(result)

    return step
