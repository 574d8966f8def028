"""Tests for splitting leave requests across months."""

from datetime import date

import pytest

from leaveledger.engine.months import MonthKey
from leaveledger.models.leave import LeaveRequest
from leaveledger.services.inputs import leave_days_in_month


def _request(start: date, end: date, days: float) -> LeaveRequest:
    return LeaveRequest(employee_id=1, leave_type_id=1, start_date=start, end_date=end, days=days)


@pytest.mark.parametrize(
    "start, end, days, month, expected",
    [
        # Inside the month: the recorded value wins, half days included
        (date(2024, 3, 14), date(2024, 3, 14), 0.5, MonthKey(2024, 3), 0.5),
        (date(2024, 3, 4), date(2024, 3, 8), 5, MonthKey(2024, 3), 5),
        # Crossing a boundary: calendar overlap
        (date(2024, 2, 28), date(2024, 3, 2), 4, MonthKey(2024, 2), 2),
        (date(2024, 2, 28), date(2024, 3, 2), 4, MonthKey(2024, 3), 2),
        (date(2023, 12, 30), date(2024, 1, 2), 4, MonthKey(2024, 1), 2),
        # Overlap capped at the recorded total
        (date(2024, 3, 30), date(2024, 4, 1), 1.5, MonthKey(2024, 3), 1.5),
        # No overlap
        (date(2024, 2, 1), date(2024, 2, 3), 3, MonthKey(2024, 3), 0),
    ],
)
def test_leave_days_in_month(start, end, days, month, expected):
    assert leave_days_in_month(_request(start, end, days), month) == expected
