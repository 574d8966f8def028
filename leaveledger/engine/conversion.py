"""
Hour/day normalisation at a fixed eight-hour working day.

Every hour-valued pool in the ledger is kept as a ``(days, hours)`` pair
with ``0 <= hours < 8``; whole days worth of hours are folded into the
days component.
"""

from __future__ import annotations

import math

HOURS_PER_DAY = 8
LATE_CHECKINS_PER_DAY = 3


def _fold(hours: float) -> tuple[int, float]:
    """Split ``hours`` into whole eight-hour days and the remainder."""
    if hours >= HOURS_PER_DAY:
        overflow = math.floor(hours / HOURS_PER_DAY)
        return overflow, hours - overflow * HOURS_PER_DAY
    return 0, hours


def normalize_hours(
    prev_days: float,
    prev_hours: float,
    cur_days: float,
    cur_hours: float,
) -> tuple[float, float]:
    """Add a carried ``(days, hours)`` pair to this month's pair.

    >>> normalize_hours(1, 6, 0, 3)
    (2, 1)
    """
    overflow, remainder = _fold(prev_hours + cur_hours)
    return prev_days + cur_days + overflow, remainder


def convert_grant_totals(total_days: float, total_hours: float) -> tuple[float, float]:
    """Fold a flat sum of grant or permission hours into ``(days, hours)``.

    ``total_days`` holds amounts already expressed in whole days (seeded
    opening balances); month totals built from entries pass ``0`` and the
    summed hours, since each entry's ``days`` column is derived from its
    hours.
    """
    overflow, remainder = _fold(total_hours)
    return total_days + overflow, remainder


def late_checkins_to_days(count: int) -> int:
    """Every three late arrivals cost one day."""
    return count // LATE_CHECKINS_PER_DAY


def hours_to_days(hours: float) -> float:
    """Per-entry display value stored on grants and permissions."""
    return round(hours / HOURS_PER_DAY, 2)
