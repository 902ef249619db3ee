from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Boolean, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base

SYSTEM_CONFIG_ID = 1


class SystemConfig(Base):
    """Globale Vorgaben (genau eine Zeile, id=1)."""

    __tablename__ = "system_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SYSTEM_CONFIG_ID)

    default_daily_hours: Mapped[float] = mapped_column(Numeric(4, 2), default=8)
    default_weekly_working_days: Mapped[str] = mapped_column(String(50), default="MON,TUE,WED,THU,FRI")
    auto_break_minutes: Mapped[int] = mapped_column(Integer, default=30)
    auto_break_after_hours: Mapped[float] = mapped_column(Numeric(4, 2), default=6)
    self_correction_max_days: Mapped[int] = mapped_column(Integer, default=3)

    # Pflichtnotizen
    require_reason_web_clock: Mapped[bool] = mapped_column(Boolean, default=True)
    require_note_self_correction: Mapped[bool] = mapped_column(Boolean, default=True)
    require_note_supervisor_correction: Mapped[bool] = mapped_column(Boolean, default=True)
    require_note_overtime_adjustment: Mapped[bool] = mapped_column(Boolean, default=True)

    # Eigene Pausengutschrift nur durch andere Vorgesetzte oder Admin genehmigen
    require_other_supervisor_for_break_credit_approval: Mapped[bool] = mapped_column(Boolean, default=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
