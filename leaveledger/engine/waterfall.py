"""
Waterfall allocation of a month's leave deficits across the leave pools.

Deficits (CL availed, late days, permission days, SL availed) are paid
pool by pool: first every rule draws on comp-off in priority order, then
on the CL balance, then on the EL balance. A pool never gives more than
it holds. What is still owed afterwards is either charged as an
overdraft against a balance (EL when the employee has EL, CL otherwise),
which later surfaces as loss of pay, or, for rules that may not be
charged, turned directly into loss of pay at the rule's rate.

Letters in comments refer to the columns of the monthly register the
HR team keeps (``X`` comp-off days available, ``AD`` comp-off days used,
and so on).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from leaveledger.engine.policy import DEFAULT_RULES, POOL_ORDER, DeductionRule, Deficit, Pool

STATUS_FULL = "FULL"
STATUS_LOP = "LOP"


@dataclass(frozen=True)
class WaterfallInput:
    cl_availed: float = 0.0  # K
    late_days: float = 0.0  # L
    permission_days: float = 0.0  # AA
    permission_hours: float = 0.0  # AB
    sl_availed: float = 0.0  # Q
    comp_off_days: float = 0.0  # X
    comp_off_hours: float = 0.0  # Y
    cl_available: float = 0.0  # T
    sl_available: float = 0.0  # U
    el_available: float = 0.0  # V
    el_utilised: float = 0.0

    def deficit(self, kind: Deficit) -> float:
        return {
            Deficit.CL: self.cl_availed,
            Deficit.LATE: self.late_days,
            Deficit.PERMISSION: self.permission_days,
            Deficit.SL: self.sl_availed,
        }[kind]


@dataclass(frozen=True)
class Draw:
    deficit: Deficit
    pool: Pool
    days: float


@dataclass
class Allocation:
    draws: list[Draw] = field(default_factory=list)
    drawn: dict[Pool, float] = field(default_factory=lambda: {p: 0.0 for p in Pool})
    overdraft: dict[Pool, float] = field(default_factory=lambda: {p: 0.0 for p in Pool})
    uncovered: dict[Deficit, float] = field(default_factory=dict)
    comp_off_hours_used: float = 0.0  # AE
    unchargeable_lop: float = 0.0

    comp_off_days_balance: float = 0.0
    comp_off_hours_balance: float = 0.0
    cl_balance: float = 0.0
    sl_balance: float = 0.0
    el_balance: float = 0.0
    late_early_days_balance: float = 0.0
    late_early_hours_balance: float = 0.0

    lop_days: float = 0.0
    status: str = STATUS_FULL

    @property
    def comp_off_days_used(self) -> float:  # AD
        return self.drawn[Pool.COMP_OFF]

    @property
    def sl_uncovered(self) -> float:  # AL
        return self.uncovered.get(Deficit.SL, 0.0)

    def drawn_for(self, deficit: Deficit, pool: Pool) -> float:
        return sum(d.days for d in self.draws if d.deficit == deficit and d.pool == pool)


def _available(inp: WaterfallInput) -> dict[Pool, float]:
    return {
        Pool.COMP_OFF: max(0.0, inp.comp_off_days),
        Pool.CL: max(0.0, inp.cl_available),
        Pool.EL: max(0.0, inp.el_available),
    }


def allocate(
    inp: WaterfallInput,
    rules: Sequence[DeductionRule] = DEFAULT_RULES,
    pool_order: Sequence[Pool] = POOL_ORDER,
) -> Allocation:
    ordered = sorted(rules, key=lambda r: r.priority)
    remaining = {r.deficit: max(0.0, inp.deficit(r.deficit)) for r in ordered}
    left = _available(inp)
    result = Allocation()

    for pool in pool_order:
        for rule in ordered:
            if pool not in rule.pools:
                continue
            take = min(left[pool], remaining[rule.deficit])
            if take <= 0:
                continue
            left[pool] -= take
            remaining[rule.deficit] -= take
            result.drawn[pool] += take
            result.draws.append(Draw(rule.deficit, pool, take))

    # Whatever the pools could not cover is owed against EL when the
    # employee has EL to speak of, otherwise against CL.
    overdraft_pool = Pool.EL if inp.el_available > 0 else Pool.CL
    for rule in ordered:
        owed = remaining[rule.deficit]
        result.uncovered[rule.deficit] = owed
        if owed <= 0:
            continue
        if rule.charge_shortfall:
            result.overdraft[overdraft_pool] += owed
        else:
            result.unchargeable_lop += owed * rule.lop_rate

    # EL leave taken this month comes out of EL on top of the deficits.
    if inp.el_utilised > 0:
        take = min(left[Pool.EL], inp.el_utilised)
        left[Pool.EL] -= take
        result.drawn[Pool.EL] += take
        result.overdraft[Pool.EL] += inp.el_utilised - take

    # Comp-off hours offset permission hours, independent of the day draws.
    result.comp_off_hours_used = min(inp.comp_off_hours, inp.permission_hours)

    result.comp_off_days_balance = inp.comp_off_days - result.drawn[Pool.COMP_OFF]
    result.comp_off_hours_balance = inp.comp_off_hours - result.comp_off_hours_used
    result.cl_balance = inp.cl_available - result.drawn[Pool.CL] - result.overdraft[Pool.CL]
    result.sl_balance = inp.sl_available - result.sl_uncovered
    result.el_balance = inp.el_available - result.drawn[Pool.EL] - result.overdraft[Pool.EL]
    # Permission days are settled above; only sub-day hours carry over.
    result.late_early_days_balance = 0.0
    result.late_early_hours_balance = inp.permission_hours - result.comp_off_hours_used

    result.lop_days = (
        max(0.0, -result.cl_balance)
        + result.unchargeable_lop
        + max(0.0, -result.el_balance)
    )
    result.status = STATUS_LOP if result.lop_days > 0 else STATUS_FULL
    return result
