"""
VacationService: Urlaubskonto und Jahresabschluss.

Verbraucht werden nur genehmigte Urlaubsanträge, die vollständig im Jahr
liegen; gezählt werden Mo–Fr ohne Feiertage.
"""
import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.locks import user_lock
from app.models.leave import LeaveRequest, KIND_VACATION, STATUS_APPROVED
from app.models.user import User
from app.services.audit_service import write_audit_log
from app.services.holiday_service import load_holidays
from app.services.time_accounting import count_leave_days

logger = logging.getLogger(__name__)

UNLIMITED_VACATION_DAYS = 999999


class VacationService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def consumed_days(self, user_id: uuid.UUID, year: int) -> int:
        year_start, year_end = date(year, 1, 1), date(year, 12, 31)
        result = await self.db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.kind == KIND_VACATION,
                LeaveRequest.status == STATUS_APPROVED,
                LeaveRequest.start_date >= year_start,
                LeaveRequest.end_date <= year_end,
            )
        )
        holidays = await load_holidays(self.db, year_start, year_end)
        return sum(
            count_leave_days(req.start_date, req.end_date, holidays)
            for req in result.scalars().all()
        )

    async def available(self, user: User, year: int) -> float:
        """Resturlaub = Übertrag + Jahresanspruch − verbraucht. Ohne Zeiterfassung unbegrenzt."""
        if not user.time_tracking_enabled:
            return UNLIMITED_VACATION_DAYS
        consumed = await self.consumed_days(user.id, year)
        return float(user.carry_over_vacation_days or 0) + float(user.annual_vacation_days or 0) - consumed

    async def run_year_end_rollover(self, year: int, actor: User | None = None) -> dict:
        """
        Jahresabschluss für alle aktiven Benutzer:
        neuer Übertrag = alter Übertrag + Jahresanspruch − Verbrauch im Jahr.
        Negative Salden bleiben negativ, der Jahresanspruch bleibt unverändert.
        """
        result = await self.db.execute(
            select(User).where(User.is_active == True).order_by(User.login_name)  # noqa: E712
        )
        users = result.scalars().all()

        changes = []
        for user in users:
            async with user_lock(user.id):
                consumed = await self.consumed_days(user.id, year)
                old_carry = float(user.carry_over_vacation_days or 0)
                annual = float(user.annual_vacation_days or 0)
                new_carry = old_carry + annual - consumed
                user.carry_over_vacation_days = new_carry
                changes.append({
                    "user_id": user.id,
                    "login_name": user.login_name,
                    "name": user.name,
                    "annual_vacation_days": annual,
                    "consumed_days": consumed,
                    "old_carry_over_days": old_carry,
                    "new_carry_over_days": new_carry,
                })

        await write_audit_log(
            self.db,
            actor=actor,
            action="YEAR_END_ROLLOVER",
            target_type="year",
            target_id=str(year),
            payload={"processed_users": len(changes)},
        )
        await self.db.commit()
        logger.info("Jahresabschluss %s: %d Benutzer verarbeitet", year, len(changes))
        return {"year": year, "processed_users": len(changes), "changes": changes}
