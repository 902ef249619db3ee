import uuid
import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Integer, Numeric, Text, Date
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

CLOCK_IN  = "CLOCK_IN"
CLOCK_OUT = "CLOCK_OUT"

SOURCE_WEB               = "WEB"
SOURCE_RFID              = "RFID"
SOURCE_MANUAL_CORRECTION = "MANUAL_CORRECTION"


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    type: Mapped[str] = mapped_column(String(20), nullable=False)  # CLOCK_IN | CLOCK_OUT
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    source: Mapped[str] = mapped_column(String(30), default=SOURCE_WEB)  # WEB | RFID | MANUAL_CORRECTION
    is_manual_correction: Mapped[bool] = mapped_column(Boolean, default=False)
    reason_text: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    correction_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    user: Mapped["User"] = relationship(  # type: ignore[name-defined]
        back_populates="time_entries",
        foreign_keys=[user_id],
    )


class BreakCredit(Base):
    """Gutschrift auf die Netto-Arbeitszeit eines Tages (z.B. nicht genommene Pause)."""

    __tablename__ = "break_credits"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    created_by_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class BreakCreditRequest(Base):
    """Antrag eines Mitarbeiters auf Pausengutschrift; Genehmigung legt eine BreakCredit an."""

    __tablename__ = "break_credit_requests"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="SUBMITTED")  # SUBMITTED | APPROVED | REJECTED | CANCELED

    decision_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_by_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class OvertimeAdjustment(Base):
    """Manuelle Korrektur des Zeitkontos, zählt im Monat von `date`."""

    __tablename__ = "overtime_adjustments"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    hours: Mapped[float] = mapped_column(Numeric(7, 2), nullable=False)  # vorzeichenbehaftet
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    created_by_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
