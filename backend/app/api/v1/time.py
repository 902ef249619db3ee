import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Query, status
from fastapi.responses import Response

from app.api.deps import DB, AdminUser, Config, CurrentUser, SupervisorUser
from app.core.config import settings
from app.schemas.time import (
    ClockRequest, SelfCorrectionRequest, SupervisorCorrectionRequest,
    DayOverrideRequest, SelfDayOverrideRequest, DayOverrideOut,
    TimeEntryOut, BreakCreditCreate, BreakCreditOut,
    BreakCreditRequestCreate, BreakCreditRequestCancel, BreakCreditRequestDecision, BreakCreditRequestOut,
    OvertimeAdjustmentCreate, OvertimeAdjustmentOut, OvertimeAccountOut, OvertimeAccountUpdate,
    SickLeaveCreate, SickLeaveOut, SickLeaveDeleteDay, SickLeaveDeleteDayOut,
    MonthViewOut, SummaryOut, OvertimeOverviewRow,
)
from app.services.break_credit_service import BreakCreditService
from app.services.day_override_service import DayOverrideService
from app.services.overtime_service import OvertimeService
from app.services.pdf_service import generate_timesheet_pdf
from app.services.time_entry_service import TimeEntryService
from app.services.timesheet_service import TimesheetService
from app.services.user_service import ensure_self_or_supervisor, get_user

router = APIRouter(prefix="/time", tags=["time"])


# ── Stempeln & Korrekturen ────────────────────────────────────────────────────

@router.post("/clock", response_model=TimeEntryOut, status_code=status.HTTP_201_CREATED)
async def clock(payload: ClockRequest, current_user: CurrentUser, db: DB, config: Config):
    return await TimeEntryService(db).record_clock(current_user, payload.type, payload.reason_text, config)


@router.post("/self-correction", response_model=TimeEntryOut, status_code=status.HTTP_201_CREATED)
async def self_correction(payload: SelfCorrectionRequest, current_user: CurrentUser, db: DB, config: Config):
    return await TimeEntryService(db).record_self_correction(
        current_user, payload.type, payload.occurred_at, payload.correction_comment, config,
    )


@router.post("/correction", response_model=TimeEntryOut, status_code=status.HTTP_201_CREATED)
async def supervisor_correction(
    payload: SupervisorCorrectionRequest, current_user: SupervisorUser, db: DB, config: Config,
):
    return await TimeEntryService(db).record_supervisor_correction(
        current_user, payload.user_id, payload.type, payload.occurred_at, payload.correction_comment,
        config, reason_text=payload.reason_text,
    )


@router.post("/day-override", response_model=DayOverrideOut)
async def day_override(payload: DayOverrideRequest, current_user: SupervisorUser, db: DB, config: Config):
    return await DayOverrideService(db).override_day(
        current_user, payload.user_id, payload.date, payload.note, payload.events, config,
    )


@router.post("/day-override-self", response_model=DayOverrideOut)
async def day_override_self(payload: SelfDayOverrideRequest, current_user: CurrentUser, db: DB, config: Config):
    return await DayOverrideService(db).override_own_day(
        current_user, payload.date, payload.note, payload.events, config,
    )


@router.get("/today/{user_id}", response_model=list[TimeEntryOut])
async def today_entries(user_id: uuid.UUID, current_user: CurrentUser, db: DB):
    ensure_self_or_supervisor(current_user, user_id)
    return await TimeEntryService(db).entries_for_day(user_id, datetime.now(timezone.utc).date())


# ── Pausengutschrift & Krankmeldung ───────────────────────────────────────────

@router.post("/break-credit", response_model=BreakCreditOut, status_code=status.HTTP_201_CREATED)
async def break_credit(payload: BreakCreditCreate, current_user: SupervisorUser, db: DB):
    return await TimeEntryService(db).add_break_credit(
        current_user, payload.user_id, payload.date, payload.minutes, payload.reason,
    )


@router.post("/break-credit/request", response_model=BreakCreditRequestOut, status_code=status.HTTP_201_CREATED)
async def request_break_credit(payload: BreakCreditRequestCreate, current_user: CurrentUser, db: DB, config: Config):
    return await BreakCreditService(db).create_request(
        current_user, payload.date, payload.minutes, payload.reason, config,
    )


@router.get("/break-credit/request/my", response_model=list[BreakCreditRequestOut])
async def my_break_credit_requests(current_user: CurrentUser, db: DB):
    return await BreakCreditService(db).list_for_user(current_user.id)


@router.get("/break-credit/request/pending", response_model=list[BreakCreditRequestOut])
async def pending_break_credit_requests(current_user: SupervisorUser, db: DB):
    return await BreakCreditService(db).list_pending()


@router.get("/break-credit/request/all", response_model=list[BreakCreditRequestOut])
async def all_break_credit_requests(current_user: SupervisorUser, db: DB):
    return await BreakCreditService(db).list_all()


@router.post("/break-credit/request/cancel", response_model=BreakCreditRequestOut)
async def cancel_break_credit_request(payload: BreakCreditRequestCancel, current_user: CurrentUser, db: DB):
    return await BreakCreditService(db).cancel(current_user, payload.request_id)


@router.post("/break-credit/request/decision", response_model=BreakCreditRequestOut)
async def decide_break_credit_request(
    payload: BreakCreditRequestDecision, current_user: SupervisorUser, db: DB, config: Config,
):
    return await BreakCreditService(db).decide(
        current_user, payload.request_id, payload.decision, payload.decision_note, config,
    )


@router.post("/sick-leave", response_model=SickLeaveOut, status_code=status.HTTP_201_CREATED)
async def sick_leave(payload: SickLeaveCreate, current_user: SupervisorUser, db: DB):
    return await TimeEntryService(db).create_sick_leave(
        current_user, payload.user_id, payload.start_date, payload.end_date, payload.note,
    )


@router.post("/sick-leave/delete-day", response_model=SickLeaveDeleteDayOut)
async def sick_leave_delete_day(payload: SickLeaveDeleteDay, current_user: SupervisorUser, db: DB):
    return await TimeEntryService(db).delete_sick_leave_day(current_user, payload.user_id, payload.date)


# ── Zeitkonto ─────────────────────────────────────────────────────────────────

@router.post("/overtime-adjustment", response_model=OvertimeAdjustmentOut, status_code=status.HTTP_201_CREATED)
async def overtime_adjustment(payload: OvertimeAdjustmentCreate, current_user: AdminUser, db: DB, config: Config):
    user = await get_user(db, payload.user_id)
    return await OvertimeService(db).add_adjustment(
        current_user, user, payload.date, payload.hours, payload.reason, config,
    )


@router.get("/overtime-adjustment/{user_id}", response_model=list[OvertimeAdjustmentOut])
async def list_overtime_adjustments(user_id: uuid.UUID, current_user: AdminUser, db: DB):
    await get_user(db, user_id)
    return await OvertimeService(db).list_adjustments(user_id)


@router.get("/overtime-account/{user_id}", response_model=OvertimeAccountOut)
async def get_overtime_account(user_id: uuid.UUID, current_user: AdminUser, db: DB, config: Config):
    user = await get_user(db, user_id)
    summary = await TimesheetService(db).get_summary(user, config)
    return OvertimeAccountOut(
        user_id=user.id,
        stored_balance_hours=float(user.overtime_balance_hours or 0),
        current_overtime_hours=summary["overtime_hours"],
    )


@router.patch("/overtime-account/{user_id}", response_model=OvertimeAccountOut)
async def set_overtime_account(
    user_id: uuid.UUID, payload: OvertimeAccountUpdate, current_user: AdminUser, db: DB, config: Config,
):
    user = await get_user(db, user_id)
    user = await OvertimeService(db).set_stored_balance(
        current_user, user, payload.overtime_balance_hours, payload.reason,
    )
    summary = await TimesheetService(db).get_summary(user, config)
    return OvertimeAccountOut(
        user_id=user.id,
        stored_balance_hours=float(user.overtime_balance_hours or 0),
        current_overtime_hours=summary["overtime_hours"],
    )


@router.get("/supervisor-overview", response_model=list[OvertimeOverviewRow])
async def supervisor_overview(current_user: SupervisorUser, db: DB, config: Config):
    return await OvertimeService(db).supervisor_overview(config)


# ── Monatsansicht ─────────────────────────────────────────────────────────────

@router.get("/month/{user_id}", response_model=MonthViewOut)
async def month_view(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DB,
    config: Config,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
):
    ensure_self_or_supervisor(current_user, user_id)
    user = await get_user(db, user_id)
    view = await TimesheetService(db).get_month_view(user, year, month, config)
    return MonthViewOut.model_validate(view)


@router.get("/summary/{user_id}", response_model=SummaryOut)
async def summary(user_id: uuid.UUID, current_user: CurrentUser, db: DB, config: Config):
    ensure_self_or_supervisor(current_user, user_id)
    user = await get_user(db, user_id)
    return await TimesheetService(db).get_summary(user, config)


@router.get("/month-report/{user_id}/pdf")
async def month_report_pdf(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DB,
    config: Config,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
):
    ensure_self_or_supervisor(current_user, user_id)
    user = await get_user(db, user_id)
    timesheets = TimesheetService(db)
    view = await timesheets.get_month_view(user, year, month, config)
    summary = await timesheets.get_summary(user, config)
    pdf_bytes = generate_timesheet_pdf(view, user, settings.COMPANY_NAME, summary["overtime_hours"])
    filename = f"stundenzettel_{user.login_name}_{year}_{month:02d}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
