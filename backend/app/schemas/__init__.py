from app.schemas.auth import Token, LoginRequest, RefreshRequest, ChangePasswordRequest
from app.schemas.user import UserCreate, UserUpdate, UserOut
from app.schemas.leave import LeaveRequestCreate, LeaveSupervisorUpdate, LeaveDecision, LeaveRequestOut, LeaveCreateOut, AvailabilityOut
from app.schemas.admin import SystemConfigOut, SystemConfigUpdate, HolidayCreate, HolidayUpdate, HolidayOut, RolloverOut

__all__ = [
    "Token", "LoginRequest", "RefreshRequest", "ChangePasswordRequest",
    "UserCreate", "UserUpdate", "UserOut",
    "LeaveRequestCreate", "LeaveSupervisorUpdate", "LeaveDecision", "LeaveRequestOut", "LeaveCreateOut", "AvailabilityOut",
    "SystemConfigOut", "SystemConfigUpdate", "HolidayCreate", "HolidayUpdate", "HolidayOut", "RolloverOut",
]
