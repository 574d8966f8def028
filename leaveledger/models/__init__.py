"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from leaveledger.models.balance import MonthlyBalance, MonthlyBalanceRevision
from leaveledger.models.compoff import CompOffGrant, PermissionEntry
from leaveledger.models.employee import AttendancePunch, Employee
from leaveledger.models.leave import LeaveRequest, LeaveType
from leaveledger.models.shift import ShiftAssignment, ShiftDefinition
from leaveledger.models.user import User

__all__ = [
    "AttendancePunch",
    "CompOffGrant",
    "Employee",
    "LeaveRequest",
    "LeaveType",
    "MonthlyBalance",
    "MonthlyBalanceRevision",
    "PermissionEntry",
    "ShiftAssignment",
    "ShiftDefinition",
    "User",
]
