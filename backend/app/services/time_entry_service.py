"""
TimeEntryService: Stempelungen, Korrekturen, Pausengutschriften, Krankmeldungen
und RFID-Terminal.

Stempelungen werden nur angelegt, nie geändert. Korrekturen sind zusätzliche
Einträge mit source=MANUAL_CORRECTION.
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.core.locks import user_lock
from app.models.leave import SickLeave
from app.models.time_entry import (
    TimeEntry, BreakCredit, CLOCK_IN, CLOCK_OUT,
    SOURCE_WEB, SOURCE_RFID, SOURCE_MANUAL_CORRECTION,
)
from app.models.user import User
from app.services.audit_service import write_audit_log
from app.services.time_accounting import AccountingConfig, account_range
from app.services.holiday_service import load_holidays
from app.services.user_service import get_user
from app.utils.dates import as_utc, day_window_utc, parse_iso_date

logger = logging.getLogger(__name__)

MIN_SUPERVISOR_COMMENT_LENGTH = 10
BREAK_CREDIT_MINUTES = (1, 180)
MIN_BREAK_CREDIT_REASON_LENGTH = 5
TRACKING_DISABLED = "Zeiterfassung ist für diesen Mitarbeiter deaktiviert."


def _ensure_tracking(user: User) -> None:
    if not user.time_tracking_enabled:
        raise AuthorizationError(TRACKING_DISABLED)


def _ensure_type(entry_type: str) -> None:
    if entry_type not in (CLOCK_IN, CLOCK_OUT):
        raise ValidationError("Ungültiger Buchungstyp.")


class TimeEntryService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _store(self, actor: User | None, entry: TimeEntry, action: str, payload: dict) -> TimeEntry:
        self.db.add(entry)
        await self.db.flush()
        await write_audit_log(
            self.db, actor=actor, action=action, target_type="TimeEntry", target_id=entry.id, payload=payload,
        )
        await self.db.commit()
        await self.db.refresh(entry)
        return entry

    # ── Stempeln ─────────────────────────────────────────────────────────────

    async def record_clock(self, user: User, entry_type: str, reason_text: str | None, config: AccountingConfig) -> TimeEntry:
        _ensure_type(entry_type)
        reason_text = (reason_text or "").strip()
        if config.require_reason_web_clock and not reason_text:
            raise ValidationError("Grund ist Pflicht.")
        _ensure_tracking(user)

        entry = TimeEntry(
            user_id=user.id,
            type=entry_type,
            source=SOURCE_WEB,
            reason_text=reason_text or None,
            occurred_at=datetime.now(timezone.utc),
        )
        entry = await self._store(user, entry, "CLOCK_EVENT", {"type": entry_type, "reason_text": reason_text})
        logger.info("%s für %s (Web)", entry_type, user.login_name)
        return entry

    async def record_self_correction(
        self, user: User, entry_type: str, occurred_at: datetime, comment: str | None, config: AccountingConfig,
    ) -> TimeEntry:
        _ensure_type(entry_type)
        comment = (comment or "").strip()
        if config.require_note_self_correction and not comment:
            raise ValidationError("Notiz ist Pflicht.")
        _ensure_tracking(user)

        entry = TimeEntry(
            user_id=user.id,
            type=entry_type,
            source=SOURCE_MANUAL_CORRECTION,
            is_manual_correction=True,
            correction_comment=comment,
            reason_text=comment,
            occurred_at=as_utc(occurred_at),
            created_by_id=user.id,
        )
        return await self._store(user, entry, "SELF_CORRECTION_CREATED", {
            "type": entry_type, "occurred_at": as_utc(occurred_at).isoformat(), "comment": comment,
        })

    async def record_supervisor_correction(
        self, actor: User, user_id: uuid.UUID, entry_type: str, occurred_at: datetime, comment: str | None,
        config: AccountingConfig, reason_text: str | None = None,
    ) -> TimeEntry:
        _ensure_type(entry_type)
        comment = (comment or "").strip()
        if config.require_note_supervisor_correction and not comment:
            raise ValidationError("Notiz ist Pflicht.")
        if len(comment) < MIN_SUPERVISOR_COMMENT_LENGTH:
            raise ValidationError(f"Kommentar muss mindestens {MIN_SUPERVISOR_COMMENT_LENGTH} Zeichen lang sein.")
        user = await get_user(self.db, user_id)
        _ensure_tracking(user)

        entry = TimeEntry(
            user_id=user.id,
            type=entry_type,
            source=SOURCE_MANUAL_CORRECTION,
            is_manual_correction=True,
            correction_comment=comment,
            reason_text=reason_text,
            occurred_at=as_utc(occurred_at),
            created_by_id=actor.id,
        )
        entry = await self._store(actor, entry, "SUPERVISOR_CORRECTION_CREATED", {
            "type": entry_type, "occurred_at": as_utc(occurred_at).isoformat(), "comment": comment,
        })
        logger.info("Korrektur %s für %s durch %s", entry_type, user.login_name, actor.login_name)
        return entry

    async def entries_for_day(self, user_id: uuid.UUID, day: date) -> list[TimeEntry]:
        start, end = day_window_utc(day)
        result = await self.db.execute(
            select(TimeEntry).where(
                TimeEntry.user_id == user_id,
                TimeEntry.occurred_at >= start,
                TimeEntry.occurred_at <= end,
            ).order_by(TimeEntry.occurred_at)
        )
        return list(result.scalars().all())

    # ── Pausengutschrift ─────────────────────────────────────────────────────

    async def add_break_credit(
        self, actor: User, user_id: uuid.UUID, day: date, minutes: int, reason: str,
    ) -> BreakCredit:
        low, high = BREAK_CREDIT_MINUTES
        if not low <= minutes <= high:
            raise ValidationError(f"Minuten müssen zwischen {low} und {high} liegen.")
        reason = (reason or "").strip()
        if len(reason) < MIN_BREAK_CREDIT_REASON_LENGTH:
            raise ValidationError(f"Begründung muss mindestens {MIN_BREAK_CREDIT_REASON_LENGTH} Zeichen lang sein.")
        user = await get_user(self.db, user_id)

        credit = BreakCredit(user_id=user.id, date=day, minutes=minutes, reason=reason, created_by_id=actor.id)
        self.db.add(credit)
        await self.db.flush()
        await write_audit_log(
            self.db, actor=actor, action="BREAK_CREDIT_CREATED", target_type="BreakCredit", target_id=credit.id,
            payload={"user_id": str(user.id), "date": day.isoformat(), "minutes": minutes, "reason": reason},
        )
        await self.db.commit()
        await self.db.refresh(credit)
        return credit

    # ── Krankmeldung ─────────────────────────────────────────────────────────

    async def create_sick_leave(
        self, actor: User, user_id: uuid.UUID, start: date, end: date, note: str | None,
    ) -> SickLeave:
        if end < start:
            raise ValidationError("Enddatum darf nicht vor dem Startdatum liegen.")
        user = await get_user(self.db, user_id)

        sick = SickLeave(user_id=user.id, start_date=start, end_date=end, note=note, created_by_id=actor.id)
        self.db.add(sick)
        await self.db.flush()
        await write_audit_log(
            self.db, actor=actor, action="SICK_LEAVE_CREATED", target_type="SickLeave", target_id=sick.id,
            payload={"user_id": str(user.id), "start": start.isoformat(), "end": end.isoformat()},
        )
        await self.db.commit()
        await self.db.refresh(sick)
        logger.info("Krankmeldung %s %s–%s durch %s", user.login_name, start, end, actor.login_name)
        return sick

    async def delete_sick_leave_day(self, actor: User, user_id: uuid.UUID, day: str | date) -> dict:
        """Entfernt einen Tag aus allen Krankmeldungen: löschen, kürzen oder aufteilen."""
        if not isinstance(day, date):
            try:
                day = parse_iso_date(day)
            except ValueError:
                raise ValidationError("Datum ist ungültig.")

        async with user_lock(user_id):
            result = await self.db.execute(
                select(SickLeave).where(
                    SickLeave.user_id == user_id,
                    SickLeave.start_date <= day,
                    SickLeave.end_date >= day,
                ).order_by(SickLeave.start_date)
            )
            rows = result.scalars().all()
            if not rows:
                raise NotFoundError("Kein Krankheitseintrag für diesen Tag gefunden.")

            previous_day, next_day = day - timedelta(days=1), day + timedelta(days=1)
            try:
                for row in rows:
                    starts_today = row.start_date == day
                    ends_today = row.end_date == day
                    if starts_today and ends_today:
                        await self.db.delete(row)
                    elif starts_today:
                        row.start_date = next_day
                    elif ends_today:
                        row.end_date = previous_day
                    else:
                        self.db.add(SickLeave(
                            user_id=row.user_id,
                            start_date=next_day,
                            end_date=row.end_date,
                            note=row.note,
                            created_by_id=actor.id,
                        ))
                        row.end_date = previous_day
                await self.db.flush()
            except Exception:
                await self.db.rollback()
                raise

            await write_audit_log(
                self.db, actor=actor, action="SICK_LEAVE_DAY_REMOVED", target_type="SickLeave",
                target_id=user_id, payload={"date": day.isoformat()},
            )
            await self.db.commit()
        return {"user_id": user_id, "date": day, "affected_rows": len(rows)}

    # ── RFID-Terminal ────────────────────────────────────────────────────────

    async def terminal_punch(self, rfid_tag: str, reason_text: str | None, config: AccountingConfig) -> dict:
        """Richtung ergibt sich aus der letzten Buchung: nach CLOCK_IN folgt CLOCK_OUT."""
        result = await self.db.execute(
            select(User).where(User.rfid_tag == rfid_tag, User.is_active == True)  # noqa: E712
        )
        user = result.scalar_one_or_none()
        if user is None:
            await write_audit_log(
                self.db, actor=None, action="RFID_UNASSIGNED_SCAN", target_type="User",
                payload={"rfid_tag": rfid_tag},
            )
            await self.db.commit()
            logger.warning("RFID-Tag %s ist keinem Benutzer zugeordnet", rfid_tag)
            raise NotFoundError("RFID nicht zugeordnet.")
        _ensure_tracking(user)

        async with user_lock(user.id):
            last_result = await self.db.execute(
                select(TimeEntry.type)
                .where(TimeEntry.user_id == user.id)
                .order_by(TimeEntry.occurred_at.desc())
                .limit(1)
            )
            last_type = last_result.scalar_one_or_none()
            entry_type = CLOCK_OUT if last_type == CLOCK_IN else CLOCK_IN

            entry = TimeEntry(
                user_id=user.id,
                type=entry_type,
                source=SOURCE_RFID,
                reason_text=reason_text,
                occurred_at=datetime.now(timezone.utc),
            )
            entry = await self._store(None, entry, "RFID_PUNCH", {"user_id": str(user.id), "type": entry_type})

        today = as_utc(entry.occurred_at).date()
        credits = await self.db.execute(
            select(BreakCredit.minutes).where(BreakCredit.user_id == user.id, BreakCredit.date == today)
        )
        record = account_range(
            today, today,
            await self.entries_for_day(user.id, today),
            config,
            await load_holidays(self.db, today, today),
            break_credits={today: sum(credits.scalars().all())},
        )[0]
        logger.info("RFID %s für %s", entry_type, user.login_name)
        return {
            "user_id": user.id,
            "name": user.name,
            "type": entry_type,
            "occurred_at": entry.occurred_at,
            "worked_today_hours": record.worked_hours,
        }
