"""
Late check-in detection against the employee's shift for the day.

A punch is late when it falls after the shift's start plus grace. When
no shift resolves for the date (no assignment covering it, no record for
the weekday, or a record without a start time) the fixed company cutoff
applies instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
DEFAULT_FALLBACK_CUTOFF = "09:15"


@dataclass(frozen=True)
class ShiftDay:
    day: str
    start_time: str | None = None
    end_time: str | None = None
    is_off: bool = False
    grace_minutes: int = 0
    is_overnight: bool = False

    @classmethod
    def from_record(cls, record: dict) -> ShiftDay:
        """Build from the JSON shape stored on ``ShiftDefinition.records``."""
        return cls(
            day=str(record.get("day", "")).lower(),
            start_time=record.get("startTime") or None,
            end_time=record.get("endTime") or None,
            is_off=bool(record.get("isOff", False)),
            grace_minutes=int(record.get("graceMins") or 0),
            is_overnight=bool(record.get("isOvernight", False)),
        )


@dataclass(frozen=True)
class ShiftWindow:
    """One shift assignment: a weekly pattern valid over ``[start, end]``."""

    start_date: date
    end_date: date
    days: tuple[ShiftDay, ...]

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def record_for(self, day: date) -> ShiftDay | None:
        weekday = WEEKDAYS[day.weekday()]
        return next((d for d in self.days if d.day == weekday), None)


def parse_hhmm(value: str) -> int:
    """``"09:15"`` -> minutes after midnight."""
    hours, _, minutes = value.partition(":")
    return int(hours) * 60 + int(minutes or 0)


def parse_offset(offset: str) -> timezone:
    """``"+05:30"`` -> fixed-offset tzinfo."""
    sign = 1 if offset[0] != "-" else -1
    body = offset.lstrip("+-")
    hours, _, minutes = body.partition(":")
    return timezone(sign * timedelta(hours=int(hours), minutes=int(minutes or 0)))


def to_local(ts: datetime, tz: timezone) -> datetime:
    """Naive timestamps are stored UTC; convert to the configured local zone."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(tz)


def resolve_shift_day(windows: Sequence[ShiftWindow], day: date) -> ShiftDay | None:
    window = next((w for w in windows if w.covers(day)), None)
    if window is None:
        return None
    return window.record_for(day)


def is_late(
    punch_in: datetime,
    day: date,
    windows: Sequence[ShiftWindow],
    tz: timezone,
    fallback_cutoff: str = DEFAULT_FALLBACK_CUTOFF,
) -> bool:
    local = to_local(punch_in, tz)
    punch_minutes = local.hour * 60 + local.minute

    record = resolve_shift_day(windows, day)
    if record is not None:
        if record.is_off:
            return False
        if record.start_time:
            return punch_minutes > parse_hhmm(record.start_time) + record.grace_minutes

    return punch_minutes > parse_hhmm(fallback_cutoff)


@dataclass(frozen=True)
class PunchDay:
    day: date
    in_at: datetime | None


def late_checkin_dates(
    punches: Iterable[PunchDay],
    windows: Sequence[ShiftWindow],
    tz: timezone,
    fallback_cutoff: str = DEFAULT_FALLBACK_CUTOFF,
) -> list[date]:
    """Dates in ``punches`` whose check-in was late, in date order."""
    late = [
        p.day
        for p in punches
        if p.in_at is not None and is_late(p.in_at, p.day, windows, tz, fallback_cutoff)
    ]
    return sorted(late)
