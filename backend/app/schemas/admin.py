from pydantic import BaseModel, Field, field_validator
import uuid
import datetime as dt
from datetime import datetime

from app.utils.dates import WEEKDAY_CODES


class SystemConfigOut(BaseModel):
    default_daily_hours: float
    default_weekly_working_days: str
    auto_break_minutes: int
    auto_break_after_hours: float
    self_correction_max_days: int
    require_reason_web_clock: bool
    require_note_self_correction: bool
    require_note_supervisor_correction: bool
    require_note_overtime_adjustment: bool
    require_other_supervisor_for_break_credit_approval: bool

    model_config = {"from_attributes": True}


class SystemConfigUpdate(BaseModel):
    default_daily_hours: float | None = Field(default=None, ge=0, le=24)
    default_weekly_working_days: str | None = None
    auto_break_minutes: int | None = Field(default=None, ge=0, le=240)
    auto_break_after_hours: float | None = Field(default=None, ge=0, le=24)
    self_correction_max_days: int | None = Field(default=None, ge=0, le=365)
    require_reason_web_clock: bool | None = None
    require_note_self_correction: bool | None = None
    require_note_supervisor_correction: bool | None = None
    require_note_overtime_adjustment: bool | None = None
    require_other_supervisor_for_break_credit_approval: bool | None = None

    @field_validator("default_weekly_working_days")
    @classmethod
    def known_weekdays(cls, v: str | None) -> str | None:
        if v is None:
            return v
        tokens = [t.strip().upper() for t in v.split(",") if t.strip()]
        unknown = [t for t in tokens if t not in WEEKDAY_CODES]
        if unknown:
            raise ValueError(f"Unbekannte Wochentage: {', '.join(unknown)}")
        return ",".join(tokens)


class HolidayCreate(BaseModel):
    date: dt.date
    name: str = Field(min_length=1, max_length=255)


class HolidayUpdate(BaseModel):
    date: dt.date | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)


class HolidayOut(BaseModel):
    id: uuid.UUID
    date: dt.date
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class HolidayImportOut(BaseModel):
    year: int
    region: str
    created: int
    skipped: int


class RolloverChange(BaseModel):
    user_id: uuid.UUID
    login_name: str
    name: str
    annual_vacation_days: float
    consumed_days: int
    old_carry_over_days: float
    new_carry_over_days: float


class RolloverOut(BaseModel):
    year: int
    processed_users: int
    changes: list[RolloverChange]
