import uuid
import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Boolean, Numeric, Date
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

ROLE_ADMIN      = "admin"
ROLE_SUPERVISOR = "supervisor"
ROLE_EMPLOYEE   = "employee"
ROLE_AZUBI      = "azubi"

SUPERVISOR_ROLES = (ROLE_ADMIN, ROLE_SUPERVISOR)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    login_name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), default=ROLE_EMPLOYEE)  # admin | supervisor | employee | azubi
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Urlaubskonto
    annual_vacation_days: Mapped[float] = mapped_column(Numeric(5, 1), default=30)
    carry_over_vacation_days: Mapped[float] = mapped_column(Numeric(6, 1), default=0)

    # Zeitkonto: Startsaldo bei Einrichtung bzw. letztem manuellen Setzen
    overtime_balance_hours: Mapped[float] = mapped_column(Numeric(8, 2), default=0)
    # Ab diesem Tag wird auf den Startsaldo aufgerechnet (None = seit Anlage)
    overtime_balance_set_on: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    # None = SystemConfig.default_daily_hours
    daily_work_hours: Mapped[float | None] = mapped_column(Numeric(4, 2), nullable=True)
    time_tracking_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    rfid_tag: Mapped[str | None] = mapped_column(String(100), unique=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Relationships
    time_entries: Mapped[list["TimeEntry"]] = relationship(  # type: ignore[name-defined]
        back_populates="user",
        foreign_keys="TimeEntry.user_id",
    )
    leave_requests: Mapped[list["LeaveRequest"]] = relationship(  # type: ignore[name-defined]
        back_populates="user",
        foreign_keys="LeaveRequest.user_id",
    )

    @property
    def is_supervisor(self) -> bool:
        return self.role in SUPERVISOR_ROLES
