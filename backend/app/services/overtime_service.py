"""
OvertimeService: Zeitkonto (Überstundensaldo) je Benutzer.

Saldo = gespeicherter Startsaldo + Σ (Netto − Soll) je Tag + manuelle Korrekturen.
Urlaubs- und Krankheitstage gelten als mit dem Soll geleistet. Wird der
Startsaldo neu gesetzt, zählen nur Tage und Korrekturen ab diesem Datum.
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.time_entry import OvertimeAdjustment
from app.models.user import User
from app.services.audit_service import write_audit_log
from app.services.time_accounting import (
    AccountingConfig, DayRecord, MonthView, day_overtime_minutes, round_hours,
)
from app.services.timesheet_service import TimesheetService
from app.utils.dates import month_bounds

logger = logging.getLogger(__name__)

MAX_ADJUSTMENT_HOURS = 500


def absence_credited_minutes(record: DayRecord) -> int:
    """Überstunden eines Tages; Urlaub/Krankheit an Arbeitstagen zählt das Soll als geleistet."""
    delta = day_overtime_minutes(record)
    if record.is_working_day and (record.is_sick or record.is_vacation):
        delta += record.planned_minutes
    return delta


class OvertimeService:

    def __init__(self, db: AsyncSession):
        self.db = db
        self.timesheets = TimesheetService(db)

    async def current_month_balance(self, user: User, view: MonthView) -> dict:
        stored = float(user.overtime_balance_hours or 0)
        if not user.time_tracking_enabled:
            return {"overtime_hours": round_hours(stored), "manual_adjustment_hours": 0.0}

        start, end = month_bounds(view.year, view.month)
        if user.overtime_balance_set_on:
            start = max(start, user.overtime_balance_set_on)
        adjustments = await self.timesheets.adjustment_hours(user.id, start, end)
        delta_minutes = sum(absence_credited_minutes(d) for d in view.days if d.date >= start)
        return {
            "overtime_hours": round_hours(stored + delta_minutes / 60 + adjustments),
            "manual_adjustment_hours": round_hours(adjustments),
        }

    async def supervisor_overview(self, config: AccountingConfig, today: date | None = None) -> list[dict]:
        """
        Überstundenübersicht aller aktiven Benutzer, aufgeteilt in
        "bis Vormonat" (inkl. Startsaldo) und "laufender Monat".
        Gerechnet wird ab OVERTIME_EPOCH, frühestens ab Anlage des Benutzers
        bzw. ab dem letzten Setzen des Startsaldos.
        """
        today = today or datetime.now(timezone.utc).date()
        month_start, month_end = month_bounds(today.year, today.month)

        result = await self.db.execute(
            select(User).where(User.is_active == True).order_by(User.name)  # noqa: E712
        )
        rows = []
        for user in result.scalars().all():
            stored = float(user.overtime_balance_hours or 0)
            before = stored
            current = 0.0

            if user.time_tracking_enabled:
                created = user.created_at.date() if user.created_at else settings.OVERTIME_EPOCH
                start = max(settings.OVERTIME_EPOCH, created, user.overtime_balance_set_on or created)
                records = await self.timesheets.day_records(user, min(start, month_start), month_end, config)
                for record in records:
                    if record.date < start:
                        continue
                    hours = absence_credited_minutes(record) / 60
                    if record.date < month_start:
                        before += hours
                    else:
                        current += hours
                if start < month_start:
                    before += await self.timesheets.adjustment_hours(user.id, start, month_start - timedelta(days=1))
                current += await self.timesheets.adjustment_hours(user.id, month_start, month_end)

            rows.append({
                "user_id": user.id,
                "login_name": user.login_name,
                "name": user.name,
                "role": user.role,
                "time_tracking_enabled": user.time_tracking_enabled,
                "overtime_before_current_month": round_hours(before),
                "current_month_overtime": round_hours(current),
                "total_overtime_hours": round_hours(before + current),
            })
        return rows

    # ── Manuelle Korrekturen ─────────────────────────────────────────────────

    async def add_adjustment(
        self, actor: User, user: User, day: date, hours: float, reason: str | None,
        config: AccountingConfig,
    ) -> OvertimeAdjustment:
        if abs(hours) > MAX_ADJUSTMENT_HOURS:
            raise ValidationError(f"Korrektur muss zwischen -{MAX_ADJUSTMENT_HOURS} und {MAX_ADJUSTMENT_HOURS} Stunden liegen.")
        if hours == 0:
            raise ValidationError("Korrektur darf nicht 0 Stunden betragen.")
        reason = (reason or "").strip()
        if config.require_note_overtime_adjustment and not reason:
            raise ValidationError("Begründung ist erforderlich.")

        adjustment = OvertimeAdjustment(
            user_id=user.id, date=day, hours=hours, reason=reason, created_by_id=actor.id,
        )
        self.db.add(adjustment)
        await self.db.flush()
        await write_audit_log(
            self.db, actor=actor, action="OVERTIME_ADJUSTMENT", target_type="User", target_id=user.id,
            payload={"date": day.isoformat(), "hours": hours, "reason": reason},
        )
        await self.db.commit()
        await self.db.refresh(adjustment)
        logger.info("Zeitkonto-Korrektur %+.2f h für %s durch %s", hours, user.login_name, actor.login_name)
        return adjustment

    async def list_adjustments(self, user_id: uuid.UUID) -> list[OvertimeAdjustment]:
        result = await self.db.execute(
            select(OvertimeAdjustment)
            .where(OvertimeAdjustment.user_id == user_id)
            .order_by(OvertimeAdjustment.date.desc(), OvertimeAdjustment.created_at.desc())
        )
        return list(result.scalars().all())

    async def set_stored_balance(
        self, actor: User, user: User, hours: float, reason: str | None, today: date | None = None,
    ) -> User:
        """Setzt den Startsaldo zum heutigen Tag. Legt keine Korrekturbuchung an."""
        today = today or datetime.now(timezone.utc).date()
        old = float(user.overtime_balance_hours or 0)
        user.overtime_balance_hours = hours
        user.overtime_balance_set_on = today
        await write_audit_log(
            self.db, actor=actor, action="OVERTIME_BALANCE_SET", target_type="User", target_id=user.id,
            payload={"old": old, "new": hours, "set_on": today.isoformat(), "reason": reason},
        )
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Startsaldo %s: %.2f -> %.2f (durch %s)", user.login_name, old, hours, actor.login_name)
        return user
