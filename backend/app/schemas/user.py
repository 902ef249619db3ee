from pydantic import BaseModel, Field, field_validator
import uuid
from datetime import date, datetime
from typing import Literal

Role = Literal["admin", "supervisor", "employee", "azubi"]


class UserCreate(BaseModel):
    login_name: str = Field(min_length=2, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    password: str
    role: Role = "employee"
    annual_vacation_days: float = 30
    carry_over_vacation_days: float = 0
    overtime_balance_hours: float = 0
    daily_work_hours: float | None = Field(default=None, ge=0, le=24)
    time_tracking_enabled: bool = True
    rfid_tag: str | None = None

    @field_validator("password")
    @classmethod
    def password_min_length(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Passwort muss mindestens 8 Zeichen lang sein")
        return v


class UserUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: Role | None = None
    is_active: bool | None = None
    annual_vacation_days: float | None = None
    carry_over_vacation_days: float | None = None
    daily_work_hours: float | None = Field(default=None, ge=0, le=24)
    time_tracking_enabled: bool | None = None
    rfid_tag: str | None = None


class UserOut(BaseModel):
    id: uuid.UUID
    login_name: str
    name: str
    email: str | None
    role: str
    is_active: bool
    annual_vacation_days: float
    carry_over_vacation_days: float
    overtime_balance_hours: float
    overtime_balance_set_on: date | None
    daily_work_hours: float | None
    time_tracking_enabled: bool
    rfid_tag: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
