"""
BreakCreditService: Anträge auf Pausengutschrift.

Mitarbeiter beantragen eine Gutschrift für einen Tag, an dem die automatische
Pause gegriffen hat. Erst die Genehmigung durch Vorgesetzte legt die
eigentliche BreakCredit an. Je Tag ist höchstens ein offener oder
genehmigter Antrag erlaubt.
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.locks import user_lock
from app.models.leave import (
    LeaveRequest, KIND_VACATION, KIND_OVERTIME,
    STATUS_APPROVED, STATUS_CANCELED, STATUS_REJECTED, STATUS_SUBMITTED,
)
from app.models.time_entry import BreakCredit, BreakCreditRequest
from app.models.user import User, ROLE_SUPERVISOR
from app.services.audit_service import write_audit_log
from app.services.time_accounting import AccountingConfig, pair_entries
from app.services.timesheet_service import TimesheetService
from app.services.time_entry_service import BREAK_CREDIT_MINUTES
from app.utils.dates import day_window_utc

logger = logging.getLogger(__name__)

DECISIONS = (STATUS_APPROVED, STATUS_REJECTED)
OPEN_STATUSES = (STATUS_SUBMITTED, STATUS_APPROVED)


class BreakCreditService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_request(self, request_id: uuid.UUID) -> BreakCreditRequest:
        result = await self.db.execute(select(BreakCreditRequest).where(BreakCreditRequest.id == request_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("Antrag nicht gefunden.")
        return row

    async def _approved_leave_kind(self, user_id: uuid.UUID, day: date) -> str | None:
        result = await self.db.execute(
            select(LeaveRequest.kind).where(
                LeaveRequest.user_id == user_id,
                LeaveRequest.status == STATUS_APPROVED,
                LeaveRequest.kind.in_((KIND_VACATION, KIND_OVERTIME)),
                LeaveRequest.start_date <= day,
                LeaveRequest.end_date >= day,
            ).limit(1)
        )
        return result.scalar_one_or_none()

    async def _gross_minutes(self, user_id: uuid.UUID, day: date) -> int:
        # Folgetag mitladen, damit eine Nachtschicht ab diesem Tag gepaart wird
        window_start, _ = day_window_utc(day)
        _, window_end = day_window_utc(day + timedelta(days=1))
        entries = await TimesheetService(self.db).entries_between(user_id, window_start, window_end)
        return pair_entries(entries).minutes_by_day.get(day, 0)

    # ── Beantragen ───────────────────────────────────────────────────────────

    async def create_request(
        self, user: User, day: date, minutes: int, reason: str, config: AccountingConfig,
    ) -> BreakCreditRequest:
        low, high = BREAK_CREDIT_MINUTES
        if not low <= minutes <= high:
            raise ValidationError(f"Minuten müssen zwischen {low} und {high} liegen.")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Notiz ist Pflicht.")

        leave_kind = await self._approved_leave_kind(user.id, day)
        if leave_kind == KIND_VACATION:
            raise ValidationError("Pausengutschrift nicht möglich: an diesem Tag ist Urlaub eingetragen.")
        if leave_kind == KIND_OVERTIME:
            raise ValidationError("Pausengutschrift nicht möglich: an diesem Tag ist Überstundenfrei eingetragen.")

        gross = await self._gross_minutes(user.id, day)
        if gross <= 0:
            raise ValidationError("Pausengutschrift nicht möglich: an diesem Tag wurde keine Arbeitszeit erfasst.")
        if gross < config.auto_break_after_hours * 60:
            raise ValidationError(
                "Pausengutschrift nicht möglich: automatische Pause greift erst ab "
                f"{config.auto_break_after_hours:g} Stunden Arbeitszeit."
            )

        async with user_lock(user.id):
            existing = await self.db.execute(
                select(BreakCreditRequest.id).where(
                    BreakCreditRequest.user_id == user.id,
                    BreakCreditRequest.date == day,
                    BreakCreditRequest.status.in_(OPEN_STATUSES),
                ).limit(1)
            )
            if existing.scalar_one_or_none() is not None:
                raise ConflictError("Für diesen Tag existiert bereits eine Pausengutschrift (offen/genehmigt).")

            request = BreakCreditRequest(
                user_id=user.id, date=day, minutes=minutes, reason=reason, status=STATUS_SUBMITTED,
            )
            self.db.add(request)
            await self.db.flush()
            await write_audit_log(
                self.db, actor=user, action="BREAK_CREDIT_REQUEST_CREATED",
                target_type="BreakCreditRequest", target_id=request.id,
                payload={"date": day.isoformat(), "minutes": minutes, "reason": reason},
            )
            await self.db.commit()
            await self.db.refresh(request)

        logger.info("Pausengutschrift %s %d min von %s beantragt", day, minutes, user.login_name)
        return request

    async def cancel(self, actor: User, request_id: uuid.UUID) -> BreakCreditRequest:
        request = await self.get_request(request_id)
        if request.user_id != actor.id:
            raise NotFoundError("Antrag nicht gefunden.")
        if request.status != STATUS_SUBMITTED:
            raise ValidationError("Nur offene Anträge können storniert werden.")
        request.status = STATUS_CANCELED
        await write_audit_log(
            self.db, actor=actor, action="BREAK_CREDIT_REQUEST_CANCELED",
            target_type="BreakCreditRequest", target_id=request.id,
        )
        await self.db.commit()
        await self.db.refresh(request)
        return request

    # ── Entscheiden ──────────────────────────────────────────────────────────

    async def decide(
        self, actor: User, request_id: uuid.UUID, decision: str, decision_note: str,
        config: AccountingConfig,
    ) -> BreakCreditRequest:
        if decision not in DECISIONS:
            raise ValidationError("Ungültige Entscheidung.")
        decision_note = (decision_note or "").strip()
        if not decision_note:
            raise ValidationError("Notiz ist Pflicht.")

        request = await self.get_request(request_id)
        if request.status != STATUS_SUBMITTED:
            raise ValidationError("Antrag wurde bereits bearbeitet.")
        if (
            config.require_other_supervisor_for_break_credit_approval
            and actor.role == ROLE_SUPERVISOR
            and request.user_id == actor.id
        ):
            raise AuthorizationError(
                "Eigene Pausengutschrift darf nur durch andere Vorgesetzte oder Admin genehmigt werden."
            )

        request.status = decision
        request.decision_note = decision_note
        request.decided_by_id = actor.id
        request.decided_at = datetime.now(timezone.utc)
        if decision == STATUS_APPROVED:
            self.db.add(BreakCredit(
                user_id=request.user_id, date=request.date, minutes=request.minutes,
                reason=f"Pausengutschrift Antrag: {request.reason}", created_by_id=actor.id,
            ))
        await self.db.flush()
        await write_audit_log(
            self.db, actor=actor, action=f"BREAK_CREDIT_REQUEST_{decision}",
            target_type="BreakCreditRequest", target_id=request.id,
            payload={"decision": decision, "note": decision_note},
        )
        await self.db.commit()
        await self.db.refresh(request)
        logger.info("Pausengutschrift-Antrag %s: %s durch %s", request.id, decision, actor.login_name)
        return request

    # ── Listen ───────────────────────────────────────────────────────────────

    async def list_for_user(self, user_id: uuid.UUID) -> list[BreakCreditRequest]:
        result = await self.db.execute(
            select(BreakCreditRequest)
            .where(BreakCreditRequest.user_id == user_id)
            .order_by(
                BreakCreditRequest.status,
                BreakCreditRequest.date.desc(),
                BreakCreditRequest.requested_at.desc(),
            )
        )
        return list(result.scalars().all())

    async def list_pending(self) -> list[BreakCreditRequest]:
        result = await self.db.execute(
            select(BreakCreditRequest)
            .where(BreakCreditRequest.status == STATUS_SUBMITTED)
            .order_by(BreakCreditRequest.requested_at)
        )
        return list(result.scalars().all())

    async def list_all(self) -> list[BreakCreditRequest]:
        result = await self.db.execute(
            select(BreakCreditRequest).order_by(BreakCreditRequest.requested_at.desc())
        )
        return list(result.scalars().all())
