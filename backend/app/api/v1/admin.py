"""
Admin API – Systemvorgaben, Feiertage und Jahresabschluss.

SystemConfig ist eine einzelne Zeile (id=1); fehlt sie, gelten die Standardwerte
und sie wird beim ersten Speichern angelegt.
"""
import logging
import uuid
from datetime import date

from fastapi import APIRouter, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.api.deps import DB, AdminUser, CurrentUser
from app.core.config import settings
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.holiday import Holiday
from app.schemas.admin import (
    SystemConfigOut, SystemConfigUpdate,
    HolidayCreate, HolidayUpdate, HolidayOut, HolidayImportOut, RolloverOut,
)
from app.services.audit_service import write_audit_log
from app.services.config_service import get_or_create_system_config
from app.services.holiday_service import import_public_holidays
from app.services.vacation_service import VacationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ── Systemvorgaben ────────────────────────────────────────────────────────────

@router.get("/config", response_model=SystemConfigOut)
async def get_config(current_user: AdminUser, db: DB):
    row = await get_or_create_system_config(db)
    await db.commit()
    return row


@router.patch("/config", response_model=SystemConfigOut)
async def update_config(payload: SystemConfigUpdate, current_user: AdminUser, db: DB):
    row = await get_or_create_system_config(db)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(row, field, value)
    await write_audit_log(db, actor=current_user, action="SYSTEM_CONFIG_UPDATED", target_type="SystemConfig",
                          target_id=row.id, payload=changes)
    await db.commit()
    await db.refresh(row)
    logger.info("Systemvorgaben geändert durch %s: %s", current_user.login_name, sorted(changes))
    return row


# ── Feiertage ─────────────────────────────────────────────────────────────────

async def _get_holiday(db, holiday_id: uuid.UUID) -> Holiday:
    result = await db.execute(select(Holiday).where(Holiday.id == holiday_id))
    holiday = result.scalar_one_or_none()
    if holiday is None:
        raise NotFoundError("Feiertag nicht gefunden.")
    return holiday


@router.get("/holidays", response_model=list[HolidayOut])
async def list_holidays(current_user: CurrentUser, db: DB, year: int | None = Query(default=None, ge=2000, le=2100)):
    query = select(Holiday).order_by(Holiday.date)
    if year:
        query = query.where(Holiday.date >= date(year, 1, 1), Holiday.date <= date(year, 12, 31))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("/holidays", response_model=HolidayOut, status_code=status.HTTP_201_CREATED)
async def create_holiday(payload: HolidayCreate, current_user: AdminUser, db: DB):
    holiday = Holiday(date=payload.date, name=payload.name.strip())
    db.add(holiday)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Für dieses Datum existiert bereits ein Feiertag.")
    await write_audit_log(db, actor=current_user, action="HOLIDAY_CREATED", target_type="Holiday",
                          target_id=holiday.id, payload={"date": payload.date.isoformat(), "name": payload.name})
    await db.commit()
    await db.refresh(holiday)
    return holiday


@router.patch("/holidays/{holiday_id}", response_model=HolidayOut)
async def update_holiday(holiday_id: uuid.UUID, payload: HolidayUpdate, current_user: AdminUser, db: DB):
    holiday = await _get_holiday(db, holiday_id)
    for field, value in payload.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(holiday, field, value)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Für dieses Datum existiert bereits ein Feiertag.")
    await db.commit()
    await db.refresh(holiday)
    return holiday


@router.delete("/holidays/{holiday_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_holiday(holiday_id: uuid.UUID, current_user: AdminUser, db: DB):
    holiday = await _get_holiday(db, holiday_id)
    await db.delete(holiday)
    await write_audit_log(db, actor=current_user, action="HOLIDAY_DELETED", target_type="Holiday",
                          target_id=holiday_id)
    await db.commit()


@router.post("/holidays/import/{year}", response_model=HolidayImportOut)
async def import_holidays(year: int, current_user: AdminUser, db: DB):
    """Gesetzliche Feiertage der konfigurierten Region übernehmen."""
    if not 2000 <= year <= 2100:
        raise ValidationError("Jahr ist ungültig.")
    try:
        result = await import_public_holidays(db, year, settings.HOLIDAY_REGION)
    except ValueError as e:
        raise ValidationError(str(e))
    await write_audit_log(db, actor=current_user, action="HOLIDAYS_IMPORTED", target_type="Holiday",
                          target_id=str(year), payload=result)
    await db.commit()
    return result


# ── Jahresabschluss ───────────────────────────────────────────────────────────

@router.post("/year-end-rollover/{year}", response_model=RolloverOut)
async def year_end_rollover(year: int, current_user: AdminUser, db: DB):
    if not 2000 <= year <= 2100:
        raise ValidationError("Jahr ist ungültig.")
    return await VacationService(db).run_year_end_rollover(year, actor=current_user)
