"""
Company leave policy: fresh allocations, EL credits and deduction order.

The order in which deficits are paid out of the leave pools is declared
here as data (``DEFAULT_RULES``) and interpreted by
``leaveledger.engine.waterfall``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class Category(str, enum.Enum):
    CONFIRMED = "confirmed"
    TIME_SCALE = "time_scale"
    CONTRACT = "contract"
    ADHOC = "adhoc"
    PART_TIME = "part_time"


class Pool(str, enum.Enum):
    COMP_OFF = "comp_off"
    CL = "cl"
    EL = "el"


class Deficit(str, enum.Enum):
    CL = "cl"
    LATE = "late"
    PERMISSION = "permission"
    SL = "sl"


@dataclass(frozen=True)
class DeductionRule:
    """A deficit and the pools allowed to cover it, in drawing order.

    When ``charge_shortfall`` is false the uncovered remainder is not
    charged against any balance and goes straight to loss of pay at
    ``lop_rate`` days per day of shortfall.
    """

    deficit: Deficit
    priority: int
    pools: tuple[Pool, ...]
    charge_shortfall: bool = True
    lop_rate: float = 1.0


DEFAULT_RULES: tuple[DeductionRule, ...] = (
    DeductionRule(Deficit.CL, 1, (Pool.COMP_OFF, Pool.CL, Pool.EL)),
    DeductionRule(Deficit.LATE, 2, (Pool.COMP_OFF, Pool.CL, Pool.EL)),
    DeductionRule(Deficit.PERMISSION, 3, (Pool.COMP_OFF, Pool.CL, Pool.EL)),
    DeductionRule(Deficit.SL, 4, (Pool.COMP_OFF,), charge_shortfall=False, lop_rate=0.5),
)

# Pools are drained in this order; within a pool, rules go by priority.
POOL_ORDER: tuple[Pool, ...] = (Pool.COMP_OFF, Pool.CL, Pool.EL)


@dataclass(frozen=True)
class FreshAllocation:
    cl: float
    sl: float


_FRESH_ALLOCATIONS: dict[str, FreshAllocation] = {
    Category.CONFIRMED.value: FreshAllocation(cl=12, sl=15),
    Category.TIME_SCALE.value: FreshAllocation(cl=12, sl=15),
    Category.CONTRACT.value: FreshAllocation(cl=8, sl=8),
}

# EL is credited in these calendar months regardless of the employee's
# personal leave-start month.
EL_CREDIT_MONTHS = frozenset({1, 6})

_EL_CREDITS: dict[str, float] = {
    Category.CONFIRMED.value: 15,
    Category.TIME_SCALE.value: 15,
    Category.CONTRACT.value: 15,
    Category.PART_TIME.value: 8,
}


def fresh_leave_allocation(category: str | None) -> FreshAllocation | None:
    """CL/SL granted on the leave-start month, or ``None`` to carry forward."""
    return _FRESH_ALLOCATIONS.get((category or "").lower())


def el_credited(
    leave_start_month: int | None,
    month: int,
    year: int,
    category: str | None,
) -> float:
    """EL days credited to the employee in ``month``/``year``.

    ``leave_start_month`` and ``year`` do not influence the credit today;
    they are part of the signature so per-employee credit calendars can be
    introduced without touching callers.
    """
    if month not in EL_CREDIT_MONTHS:
        return 0.0
    return float(_EL_CREDITS.get((category or "").lower(), 0.0))


def available_leave(
    category: str | None,
    leave_start_month: int | None,
    month: int,
    carried_cl: float,
    carried_sl: float,
) -> tuple[float, float, bool]:
    """Return ``(cl, sl, was_reset)`` available before this month's usage.

    Employees without a leave-start month never reset and keep carrying
    their previous balances.
    """
    if leave_start_month is not None and leave_start_month == month:
        fresh = fresh_leave_allocation(category)
        if fresh is not None:
            return float(fresh.cl), float(fresh.sl), True
    return carried_cl, carried_sl, False
