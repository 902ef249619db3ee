"""
TimesheetService: Monatsansicht und Monatszusammenfassung je Benutzer.

Es gibt keinen Cache: jede Anfrage lädt die Stempelungen und rechnet neu.
"""
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.leave import LeaveRequest, SickLeave, KIND_VACATION, STATUS_APPROVED
from app.models.time_entry import TimeEntry, BreakCredit, OvertimeAdjustment
from app.models.user import User
from app.services.holiday_service import load_holidays
from app.services.time_accounting import (
    AccountingConfig, DayRecord, MonthView,
    account_month, account_range, has_long_shift, pair_entries, round_hours,
)
from app.utils.dates import date_range, day_window_utc, month_bounds


class TimesheetService:

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Laden ────────────────────────────────────────────────────────────────

    async def entries_between(self, user_id: uuid.UUID, start: datetime, end: datetime) -> list[TimeEntry]:
        result = await self.db.execute(
            select(TimeEntry).where(
                TimeEntry.user_id == user_id,
                TimeEntry.occurred_at >= start,
                TimeEntry.occurred_at <= end,
            ).order_by(TimeEntry.occurred_at)
        )
        return list(result.scalars().all())

    async def _accounting_inputs(self, user: User, start: date, end: date) -> dict:
        # Einen Tag nach end mitladen, damit Nachtschichten vom letzten Tag gepaart werden
        window_start, _ = day_window_utc(start)
        _, window_end = day_window_utc(end + timedelta(days=1))
        entries = await self.entries_between(user.id, window_start, window_end)

        credits_result = await self.db.execute(
            select(BreakCredit).where(
                BreakCredit.user_id == user.id,
                BreakCredit.date >= start,
                BreakCredit.date <= end,
            )
        )
        break_credits: dict[date, int] = {}
        for credit in credits_result.scalars().all():
            break_credits[credit.date] = break_credits.get(credit.date, 0) + credit.minutes

        sick_result = await self.db.execute(
            select(SickLeave).where(
                SickLeave.user_id == user.id,
                SickLeave.start_date <= end,
                SickLeave.end_date >= start,
            )
        )
        sick_days = {
            d for s in sick_result.scalars().all()
            for d in date_range(max(s.start_date, start), min(s.end_date, end))
        }

        leave_result = await self.db.execute(
            select(LeaveRequest).where(
                LeaveRequest.user_id == user.id,
                LeaveRequest.kind == KIND_VACATION,
                LeaveRequest.status == STATUS_APPROVED,
                LeaveRequest.start_date <= end,
                LeaveRequest.end_date >= start,
            )
        )
        vacation_days = {
            d for r in leave_result.scalars().all()
            for d in date_range(max(r.start_date, start), min(r.end_date, end))
        }

        return {
            "entries": entries,
            "holidays": await load_holidays(self.db, start, end),
            "daily_hours": float(user.daily_work_hours) if user.daily_work_hours is not None else None,
            "break_credits": break_credits,
            "sick_days": sick_days,
            "vacation_days": vacation_days,
            "tracking_enabled": user.time_tracking_enabled,
        }

    async def day_records(self, user: User, start: date, end: date, config: AccountingConfig) -> list[DayRecord]:
        inputs = await self._accounting_inputs(user, start, end)
        entries = inputs.pop("entries")
        holidays = inputs.pop("holidays")
        return account_range(start, end, entries, config, holidays, **inputs)

    async def adjustment_hours(self, user_id: uuid.UUID, start: date, end: date) -> float:
        result = await self.db.execute(
            select(OvertimeAdjustment.hours).where(
                OvertimeAdjustment.user_id == user_id,
                OvertimeAdjustment.date >= start,
                OvertimeAdjustment.date <= end,
            )
        )
        return sum(float(h) for h in result.scalars().all())

    # ── Monatsansicht ────────────────────────────────────────────────────────

    async def get_month_view(self, user: User, year: int, month: int, config: AccountingConfig) -> MonthView:
        start, end = month_bounds(year, month)
        inputs = await self._accounting_inputs(user, start, end)
        entries = inputs.pop("entries")
        holidays = inputs.pop("holidays")
        return account_month(year, month, entries, config, holidays, **inputs)

    # ── Zusammenfassung ──────────────────────────────────────────────────────

    async def get_summary(self, user: User, config: AccountingConfig, today: date | None = None) -> dict:
        """Soll/Ist des laufenden Monats, aktueller Überstundensaldo und Langschicht-Warnung."""
        from app.services.overtime_service import OvertimeService

        today = today or datetime.now(timezone.utc).date()
        view = await self.get_month_view(user, today.year, today.month, config)
        summary = {
            "user_id": user.id,
            "year": today.year,
            "month": today.month,
            "month_planned_hours": view.month_planned_hours,
            "month_worked_hours": view.month_worked_hours,
        }

        if not user.time_tracking_enabled:
            summary.update(
                month_worked_hours=view.month_planned_hours,
                overtime_hours=round_hours(float(user.overtime_balance_hours or 0)),
                manual_adjustment_hours=0.0,
                long_shift_alert=False,
            )
            return summary

        balance = await OvertimeService(self.db).current_month_balance(user, view)
        start, end = month_bounds(today.year, today.month)
        window_start, _ = day_window_utc(start)
        _, window_end = day_window_utc(end)
        month_entries = await self.entries_between(user.id, window_start, window_end)

        summary.update(
            overtime_hours=balance["overtime_hours"],
            manual_adjustment_hours=balance["manual_adjustment_hours"],
            long_shift_alert=has_long_shift(pair_entries(month_entries)),
        )
        return summary
