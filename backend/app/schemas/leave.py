from pydantic import BaseModel, Field
import uuid
from datetime import date, datetime
from typing import Literal

LeaveKind = Literal["VACATION", "OVERTIME"]


class LeaveRequestCreate(BaseModel):
    kind: LeaveKind
    start_date: date
    end_date: date
    note: str | None = Field(default=None, max_length=1000)


class LeaveSupervisorUpdate(BaseModel):
    kind: LeaveKind | None = None
    start_date: date | None = None
    end_date: date | None = None
    note: str | None = Field(default=None, max_length=1000)


class LeaveDecision(BaseModel):
    decision: Literal["APPROVED", "REJECTED"]
    decision_note: str | None = Field(default=None, max_length=1000)


class LeaveRequestOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    kind: str
    status: str
    start_date: date
    end_date: date
    note: str | None
    decision_note: str | None
    decided_by_id: uuid.UUID | None
    decided_at: datetime | None
    requested_at: datetime

    model_config = {"from_attributes": True}


class LeaveCreateOut(BaseModel):
    request: LeaveRequestOut
    requested_working_days: int | None
    warning_overdrawn: bool
    available_vacation_days: float
    available_overtime_hours: float


class AvailabilityOut(BaseModel):
    user_id: uuid.UUID
    year: int
    available_vacation_days: float
    available_overtime_hours: float
