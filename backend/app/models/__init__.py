from app.models.user import User
from app.models.time_entry import TimeEntry, BreakCredit, BreakCreditRequest, OvertimeAdjustment
from app.models.leave import LeaveRequest, SickLeave
from app.models.holiday import Holiday
from app.models.system_config import SystemConfig
from app.models.audit import AuditLog

__all__ = [
    "User",
    "TimeEntry",
    "BreakCredit",
    "BreakCreditRequest",
    "OvertimeAdjustment",
    "LeaveRequest",
    "SickLeave",
    "Holiday",
    "SystemConfig",
    "AuditLog",
]
