import uuid
from datetime import date, datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, Text, Date
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

KIND_VACATION = "VACATION"
KIND_OVERTIME = "OVERTIME"

STATUS_SUBMITTED = "SUBMITTED"
STATUS_APPROVED  = "APPROVED"
STATUS_REJECTED  = "REJECTED"
STATUS_CANCELED  = "CANCELED"

# Nur diese Status blockieren überschneidende Anträge
BLOCKING_STATUSES = (STATUS_SUBMITTED, STATUS_APPROVED)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # VACATION | OVERTIME
    status: Mapped[str] = mapped_column(String(20), default=STATUS_SUBMITTED)  # SUBMITTED | APPROVED | REJECTED | CANCELED
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    decision_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_by_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship(  # type: ignore[name-defined]
        back_populates="leave_requests",
        foreign_keys=[user_id],
    )


class SickLeave(Base):
    __tablename__ = "sick_leaves"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
