"""
Calendar month keys and the month-to-month chain of balances.

Each month's computation starts from the previous month's closed
balance, so a run of months is a left fold over ordered ``MonthKey``s.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from functools import total_ordering
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


@total_ordering
@dataclass(frozen=True)
class MonthKey:
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1-12, got {self.month}")

    def __lt__(self, other: MonthKey) -> bool:
        return (self.year, self.month) < (other.year, other.month)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def index(self) -> int:
        return self.year * 12 + (self.month - 1)

    @classmethod
    def from_index(cls, index: int) -> MonthKey:
        return cls(year=index // 12, month=index % 12 + 1)

    @classmethod
    def of(cls, day: date) -> MonthKey:
        return cls(year=day.year, month=day.month)

    def previous(self) -> MonthKey:
        return MonthKey.from_index(self.index - 1)

    def next(self) -> MonthKey:
        return MonthKey.from_index(self.index + 1)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day


def month_range(start: MonthKey, end: MonthKey) -> list[MonthKey]:
    """Inclusive, ascending. Raises when ``end`` precedes ``start``."""
    if end < start:
        raise ValueError(f"range end {end} precedes start {start}")
    return [MonthKey.from_index(i) for i in range(start.index, end.index + 1)]


def iter_contiguous(months: Sequence[MonthKey]) -> Iterator[MonthKey]:
    """Yield ``months`` after checking they are strictly consecutive."""
    for prev, cur in zip(months, months[1:]):
        if cur.index != prev.index + 1:
            raise ValueError(f"months must be consecutive: {prev} then {cur}")
    yield from months


def fold_months(
    opening: T,
    months: Sequence[MonthKey],
    inputs: Mapping[MonthKey, R],
    step: Callable[[T, MonthKey, R], tuple[object, T]],
) -> list[tuple[MonthKey, object, T]]:
    """Run ``step`` month by month, threading the carried state.

    ``step(carried, month, month_inputs)`` returns ``(result, next_carried)``.
    The return value lists ``(month, result, carried_after)`` in order.
    """
    carried = opening
    out: list[tuple[MonthKey, object, T]] = []
    for month in iter_contiguous(months):
        result, carried = step(carried, month, inputs[month])
        out.append((month, result, carried))
    return out
