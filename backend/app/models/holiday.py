import uuid
import datetime as dt
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, Date
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class Holiday(Base):
    """Betrieblicher/gesetzlicher Feiertag – kein Soll, kein Urlaubsverbrauch."""

    __tablename__ = "holidays"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    date: Mapped[dt.date] = mapped_column(Date, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)  # z.B. "Tag der Arbeit"

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
