from pydantic import BaseModel, Field
import uuid
from datetime import date, datetime
from typing import Literal

EntryType = Literal["CLOCK_IN", "CLOCK_OUT"]


class ClockRequest(BaseModel):
    type: EntryType
    reason_text: str | None = Field(default=None, max_length=1000)


class SelfCorrectionRequest(BaseModel):
    type: EntryType
    occurred_at: datetime
    correction_comment: str | None = Field(default=None, max_length=1000)


class SupervisorCorrectionRequest(BaseModel):
    user_id: uuid.UUID
    type: EntryType
    occurred_at: datetime
    correction_comment: str = Field(max_length=1000)
    reason_text: str | None = None


class DayEvent(BaseModel):
    type: str       # CLOCK_IN | CLOCK_OUT
    time: str       # HH:MM oder HH:MM:SS


class DayOverrideRequest(BaseModel):
    user_id: uuid.UUID
    date: str       # YYYY-MM-DD
    note: str | None = Field(default=None, max_length=1000)
    events: list[DayEvent] = []


class SelfDayOverrideRequest(BaseModel):
    date: str
    note: str | None = Field(default=None, max_length=1000)
    events: list[DayEvent]


class DayOverrideOut(BaseModel):
    user_id: uuid.UUID
    date: date
    created_count: int


class TimeEntryOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    occurred_at: datetime
    source: str
    is_manual_correction: bool
    reason_text: str | None
    correction_comment: str | None
    created_by_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class BreakCreditCreate(BaseModel):
    user_id: uuid.UUID
    date: date
    minutes: int
    reason: str


class BreakCreditOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: date
    minutes: int
    reason: str
    created_at: datetime

    model_config = {"from_attributes": True}


class BreakCreditRequestCreate(BaseModel):
    date: date
    minutes: int
    reason: str = Field(max_length=1000)


class BreakCreditRequestCancel(BaseModel):
    request_id: uuid.UUID


class BreakCreditRequestDecision(BaseModel):
    request_id: uuid.UUID
    decision: Literal["APPROVED", "REJECTED"]
    decision_note: str = Field(max_length=1000)


class BreakCreditRequestOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: date
    minutes: int
    reason: str
    status: str
    decision_note: str | None
    decided_by_id: uuid.UUID | None
    decided_at: datetime | None
    requested_at: datetime

    model_config = {"from_attributes": True}


class OvertimeAdjustmentCreate(BaseModel):
    user_id: uuid.UUID
    date: date
    hours: float
    reason: str | None = Field(default=None, max_length=1000)


class OvertimeAdjustmentOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    date: date
    hours: float
    reason: str
    created_by_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}


class OvertimeAccountOut(BaseModel):
    user_id: uuid.UUID
    stored_balance_hours: float
    current_overtime_hours: float


class OvertimeAccountUpdate(BaseModel):
    overtime_balance_hours: float = Field(ge=-10000, le=10000)
    reason: str | None = None


class SickLeaveCreate(BaseModel):
    user_id: uuid.UUID
    start_date: date
    end_date: date
    note: str | None = Field(default=None, max_length=1000)


class SickLeaveOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    start_date: date
    end_date: date
    note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class SickLeaveDeleteDay(BaseModel):
    user_id: uuid.UUID
    date: str


class SickLeaveDeleteDayOut(BaseModel):
    user_id: uuid.UUID
    date: date
    affected_rows: int


class DayRecordOut(BaseModel):
    date: date
    planned_hours: float
    worked_hours: float
    is_holiday: bool
    holiday_name: str | None
    is_weekend: bool
    is_working_day: bool
    has_manual_correction: bool
    gross_minutes: int
    net_minutes: int
    break_minutes_deducted: int
    break_credit_minutes: int
    is_sick: bool
    is_vacation: bool
    entries: list[TimeEntryOut]

    model_config = {"from_attributes": True}


class MonthViewOut(BaseModel):
    year: int
    month: int
    month_planned_hours: float
    month_worked_hours: float
    days: list[DayRecordOut]

    model_config = {"from_attributes": True}


class SummaryOut(BaseModel):
    user_id: uuid.UUID
    year: int
    month: int
    month_planned_hours: float
    month_worked_hours: float
    overtime_hours: float
    manual_adjustment_hours: float
    long_shift_alert: bool


class OvertimeOverviewRow(BaseModel):
    user_id: uuid.UUID
    login_name: str
    name: str
    role: str
    time_tracking_enabled: bool
    overtime_before_current_month: float
    current_month_overtime: float
    total_overtime_hours: float


class TerminalPunchRequest(BaseModel):
    terminal_key: str
    rfid_tag: str = Field(min_length=1)
    reason_text: str | None = Field(default=None, max_length=255)


class TerminalPunchOut(BaseModel):
    user_id: uuid.UUID
    name: str
    type: str
    occurred_at: datetime
    worked_today_hours: float
