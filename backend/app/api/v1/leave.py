import uuid

from fastapi import APIRouter, status

from app.api.deps import DB, Config, CurrentUser, SupervisorUser
from app.schemas.leave import (
    LeaveRequestCreate, LeaveSupervisorUpdate, LeaveDecision,
    LeaveRequestOut, LeaveCreateOut, AvailabilityOut,
)
from app.services.leave_service import LeaveService

router = APIRouter(prefix="/leave", tags=["leave"])


@router.post("", response_model=LeaveCreateOut, status_code=status.HTTP_201_CREATED)
async def create_leave(payload: LeaveRequestCreate, current_user: CurrentUser, db: DB, config: Config):
    return await LeaveService(db).create_request(
        current_user, payload.kind, payload.start_date, payload.end_date, payload.note, config,
    )


@router.get("/my", response_model=list[LeaveRequestOut])
async def my_leave(current_user: CurrentUser, db: DB):
    return await LeaveService(db).list_for_user(current_user.id)


@router.get("/pending", response_model=list[LeaveRequestOut])
async def pending_leave(current_user: SupervisorUser, db: DB):
    return await LeaveService(db).list_pending()


@router.get("/availability/{user_id}", response_model=AvailabilityOut)
async def availability(user_id: uuid.UUID, current_user: CurrentUser, db: DB, config: Config):
    return await LeaveService(db).availability_for(current_user, user_id, config)


@router.post("/{leave_id}/decision", response_model=LeaveRequestOut)
async def decide_leave(leave_id: uuid.UUID, payload: LeaveDecision, current_user: SupervisorUser, db: DB):
    return await LeaveService(db).decide(current_user, leave_id, payload.decision, payload.decision_note)


@router.put("/{leave_id}", response_model=LeaveRequestOut)
async def supervisor_update(leave_id: uuid.UUID, payload: LeaveSupervisorUpdate, current_user: SupervisorUser, db: DB):
    return await LeaveService(db).supervisor_update(
        current_user, leave_id, payload.kind, payload.start_date, payload.end_date, payload.note,
    )


@router.post("/{leave_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave(leave_id: uuid.UUID, current_user: CurrentUser, db: DB):
    return await LeaveService(db).cancel(current_user, leave_id)
