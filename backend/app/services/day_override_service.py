"""
DayOverrideService: ersetzt alle Stempelungen eines Tages.

Löschen und Neuanlegen laufen in einer Transaktion unter der Benutzersperre.
Derselbe Aufruf zweimal hintereinander ergibt denselben Tagesinhalt.
"""
import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, ValidationError
from app.core.locks import user_lock
from app.models.time_entry import TimeEntry, CLOCK_IN, CLOCK_OUT, SOURCE_MANUAL_CORRECTION
from app.models.user import User
from app.services.audit_service import write_audit_log
from app.services.time_accounting import AccountingConfig
from app.services.user_service import get_user
from app.utils.dates import combine_utc, day_window_utc, parse_iso_date

logger = logging.getLogger(__name__)


def check_self_correction_window(day: date, today: date, max_days: int) -> None:
    """Eigene Nachträge: nicht in die Zukunft und höchstens max_days zurück."""
    diff_days = (today - day).days
    if diff_days < 0:
        raise AuthorizationError("Nachtrag in die Zukunft ist nicht erlaubt.")
    if diff_days > max_days:
        raise AuthorizationError(f"Nachtrag nur bis {max_days} Tage rückwirkend erlaubt.")


class DayOverrideService:

    def __init__(self, db: AsyncSession):
        self.db = db

    def _parse(self, day: str | date, events: list, note: str | None, note_required: bool):
        note = (note or "").strip()
        if note_required and not note:
            raise ValidationError("Notiz ist Pflicht.")
        if isinstance(day, date):
            target_day = day
        else:
            try:
                target_day = parse_iso_date(day)
            except ValueError:
                raise ValidationError("Datum ist ungültig.")

        parsed = []
        for event in events:
            event_type = event["type"] if isinstance(event, dict) else event.type
            event_time = event["time"] if isinstance(event, dict) else event.time
            if event_type not in (CLOCK_IN, CLOCK_OUT):
                raise ValidationError("Ungültiger Buchungstyp.")
            try:
                # Sekunden werden verworfen, gerechnet wird in ganzen Minuten
                occurred_at = combine_utc(target_day, event_time).replace(second=0)
            except ValueError:
                raise ValidationError("Zeit ist ungültig (HH:MM).")
            parsed.append((event_type, occurred_at))
        return target_day, parsed, note

    async def _replace_day(self, actor: User, user: User, day: date, events: list, note: str, action: str) -> int:
        start, end = day_window_utc(day)
        async with user_lock(user.id):
            try:
                await self.db.execute(
                    delete(TimeEntry).where(
                        TimeEntry.user_id == user.id,
                        TimeEntry.occurred_at >= start,
                        TimeEntry.occurred_at <= end,
                    )
                )
                for event_type, occurred_at in events:
                    self.db.add(TimeEntry(
                        user_id=user.id,
                        type=event_type,
                        occurred_at=occurred_at,
                        source=SOURCE_MANUAL_CORRECTION,
                        is_manual_correction=True,
                        correction_comment=note,
                        reason_text=note,
                        created_by_id=actor.id,
                    ))
                await self.db.flush()
            except Exception:
                await self.db.rollback()
                raise

            await write_audit_log(
                self.db, actor=actor, action=action, target_type="TimeEntry", target_id=user.id,
                payload={
                    "date": day.isoformat(),
                    "note": note,
                    "events": [{"type": t, "time": o.strftime("%H:%M")} for t, o in events],
                },
            )
            await self.db.commit()

        logger.info("%s: %s am %s durch %s, %d Buchungen", action, user.login_name, day, actor.login_name, len(events))
        return len(events)

    async def override_day(
        self, actor: User, user_id: uuid.UUID, day: str | date, note: str | None, events: list,
        config: AccountingConfig,
    ) -> dict:
        """Vorgesetzte: beliebiger Benutzer, beliebiges Datum; leere Liste leert den Tag."""
        target_day, parsed, note = self._parse(day, events, note, config.require_note_supervisor_correction)
        user = await get_user(self.db, user_id)
        if not user.time_tracking_enabled:
            raise AuthorizationError("Zeiterfassung ist für diesen Mitarbeiter deaktiviert.")
        created = await self._replace_day(actor, user, target_day, parsed, note, "DAY_OVERRIDE_SUPERVISOR")
        return {"user_id": user.id, "date": target_day, "created_count": created}

    async def override_own_day(
        self, actor: User, day: str | date, note: str | None, events: list,
        config: AccountingConfig, today: date | None = None,
    ) -> dict:
        """Eigener Nachtrag innerhalb des Rückwirkungsfensters, mindestens eine Buchung."""
        target_day, parsed, note = self._parse(day, events, note, config.require_note_self_correction)
        if not parsed:
            raise ValidationError("Mindestens eine Buchung ist erforderlich.")
        if not actor.time_tracking_enabled:
            raise AuthorizationError("Zeiterfassung ist für diesen Mitarbeiter deaktiviert.")
        today = today or datetime.now(timezone.utc).date()
        check_self_correction_window(target_day, today, config.self_correction_max_days)
        created = await self._replace_day(actor, actor, target_day, parsed, note, "DAY_OVERRIDE_SELF")
        return {"user_id": actor.id, "date": target_day, "created_count": created}
