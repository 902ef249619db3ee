"""
LeaveService: Urlaubs- und Überstundenanträge.

Überschneidungen werden je Benutzer gegen offene und genehmigte Anträge
geprüft (Datumsgrenzen inklusive). Stornierte und abgelehnte Anträge
blockieren nicht. Prüfung und Schreiben laufen unter der Benutzersperre.
"""
import logging
import uuid
from datetime import date, datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.locks import user_lock
from app.models.leave import (
    LeaveRequest, BLOCKING_STATUSES, KIND_VACATION,
    STATUS_APPROVED, STATUS_CANCELED, STATUS_REJECTED, STATUS_SUBMITTED,
)
from app.models.user import User
from app.services.audit_service import write_audit_log
from app.services.holiday_service import load_holidays
from app.services.time_accounting import AccountingConfig, count_leave_days
from app.services.timesheet_service import TimesheetService
from app.services.user_service import ensure_self_or_supervisor, get_user
from app.services.vacation_service import VacationService

logger = logging.getLogger(__name__)

DECISIONS = (STATUS_APPROVED, STATUS_REJECTED)


class LeaveService:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_request(self, leave_id: uuid.UUID) -> LeaveRequest:
        result = await self.db.execute(select(LeaveRequest).where(LeaveRequest.id == leave_id))
        leave = result.scalar_one_or_none()
        if leave is None:
            raise NotFoundError("Antrag nicht gefunden.")
        return leave

    async def find_overlapping(
        self, user_id: uuid.UUID, start: date, end: date, exclude_id: uuid.UUID | None = None,
    ) -> list[LeaveRequest]:
        query = select(LeaveRequest).where(
            LeaveRequest.user_id == user_id,
            LeaveRequest.status.in_(BLOCKING_STATUSES),
            LeaveRequest.start_date <= end,
            LeaveRequest.end_date >= start,
        )
        if exclude_id is not None:
            query = query.where(LeaveRequest.id != exclude_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _check_overlap(self, user_id, start, end, exclude_id=None) -> None:
        if await self.find_overlapping(user_id, start, end, exclude_id):
            raise ConflictError("Im gewählten Zeitraum existiert bereits ein Antrag.")

    async def requested_working_days(self, start: date, end: date) -> int:
        holidays = await load_holidays(self.db, start, end)
        return count_leave_days(start, end, holidays)

    async def availability(self, user: User, config: AccountingConfig, year: int | None = None) -> dict:
        year = year or datetime.now(timezone.utc).year
        summary = await TimesheetService(self.db).get_summary(user, config)
        return {
            "user_id": user.id,
            "year": year,
            "available_vacation_days": await VacationService(self.db).available(user, year),
            "available_overtime_hours": summary["overtime_hours"],
        }

    # ── Anlegen ──────────────────────────────────────────────────────────────

    async def create_request(
        self, user: User, kind: str, start: date, end: date, note: str | None,
        config: AccountingConfig,
    ) -> dict:
        if end < start:
            raise ValidationError("Enddatum darf nicht vor dem Startdatum liegen.")

        async with user_lock(user.id):
            await self._check_overlap(user.id, start, end)

            availability = await self.availability(user, config, start.year)
            requested_days = None
            warning_overdrawn = False
            if kind == KIND_VACATION:
                requested_days = await self.requested_working_days(start, end)
                warning_overdrawn = requested_days > availability["available_vacation_days"]

            leave = LeaveRequest(
                user_id=user.id, kind=kind, status=STATUS_SUBMITTED,
                start_date=start, end_date=end, note=note,
            )
            self.db.add(leave)
            await self.db.flush()
            await write_audit_log(
                self.db, actor=user, action="LEAVE_CREATE", target_type="LeaveRequest", target_id=leave.id,
                payload={"kind": kind, "start": start.isoformat(), "end": end.isoformat()},
            )
            await self.db.commit()
            await self.db.refresh(leave)

        logger.info("Antrag %s %s–%s von %s angelegt", kind, start, end, user.login_name)
        return {
            "request": leave,
            "requested_working_days": requested_days,
            "warning_overdrawn": warning_overdrawn,
            "available_vacation_days": availability["available_vacation_days"],
            "available_overtime_hours": availability["available_overtime_hours"],
        }

    # ── Bearbeiten ───────────────────────────────────────────────────────────

    async def decide(self, actor: User, leave_id: uuid.UUID, decision: str, decision_note: str | None) -> LeaveRequest:
        if decision not in DECISIONS:
            raise ValidationError("Ungültige Entscheidung.")
        leave = await self.get_request(leave_id)
        if leave.status != STATUS_SUBMITTED:
            raise ValidationError("Antrag wurde bereits bearbeitet.")

        leave.status = decision
        leave.decision_note = decision_note
        leave.decided_by_id = actor.id
        leave.decided_at = datetime.now(timezone.utc)
        await write_audit_log(
            self.db, actor=actor, action="LEAVE_DECISION", target_type="LeaveRequest", target_id=leave.id,
            payload={"decision": decision, "note": decision_note},
        )
        await self.db.commit()
        await self.db.refresh(leave)
        logger.info("Antrag %s: %s durch %s", leave.id, decision, actor.login_name)
        return leave

    async def supervisor_update(
        self, actor: User, leave_id: uuid.UUID, kind: str | None, start: date | None, end: date | None,
        note: str | None,
    ) -> LeaveRequest:
        leave = await self.get_request(leave_id)
        async with user_lock(leave.user_id):
            if leave.status != STATUS_SUBMITTED:
                raise ValidationError("Nur offene Anträge können geändert werden.")
            new_start = start or leave.start_date
            new_end = end or leave.end_date
            if new_end < new_start:
                raise ValidationError("Enddatum darf nicht vor dem Startdatum liegen.")
            await self._check_overlap(leave.user_id, new_start, new_end, exclude_id=leave.id)

            before = {"kind": leave.kind, "start": leave.start_date.isoformat(), "end": leave.end_date.isoformat()}
            leave.start_date = new_start
            leave.end_date = new_end
            if kind is not None:
                leave.kind = kind
            if note is not None:
                leave.note = note
            await write_audit_log(
                self.db, actor=actor, action="LEAVE_SUPERVISOR_UPDATE", target_type="LeaveRequest",
                target_id=leave.id,
                payload={"before": before, "after": {
                    "kind": leave.kind, "start": new_start.isoformat(), "end": new_end.isoformat(),
                }},
            )
            await self.db.commit()
            await self.db.refresh(leave)
        return leave

    async def cancel(self, actor: User, leave_id: uuid.UUID) -> LeaveRequest:
        leave = await self.get_request(leave_id)
        if leave.user_id != actor.id:
            raise AuthorizationError("Keine Berechtigung.")
        if leave.status != STATUS_SUBMITTED:
            raise ValidationError("Nur offene Anträge können storniert werden.")
        leave.status = STATUS_CANCELED
        await write_audit_log(
            self.db, actor=actor, action="LEAVE_CANCEL", target_type="LeaveRequest", target_id=leave.id,
        )
        await self.db.commit()
        await self.db.refresh(leave)
        return leave

    # ── Listen ───────────────────────────────────────────────────────────────

    async def list_for_user(self, user_id: uuid.UUID) -> list[LeaveRequest]:
        result = await self.db.execute(
            select(LeaveRequest).where(LeaveRequest.user_id == user_id).order_by(LeaveRequest.requested_at.desc())
        )
        return list(result.scalars().all())

    async def list_pending(self) -> list[LeaveRequest]:
        result = await self.db.execute(
            select(LeaveRequest).where(LeaveRequest.status == STATUS_SUBMITTED).order_by(LeaveRequest.start_date)
        )
        return list(result.scalars().all())

    async def availability_for(self, actor: User, user_id: uuid.UUID, config: AccountingConfig) -> dict:
        ensure_self_or_supervisor(actor, user_id)
        return await self.availability(await get_user(self.db, user_id), config)
