import uuid

from fastapi import APIRouter, status

from app.api.deps import DB, AdminUser, CurrentUser, SupervisorUser
from app.core.exceptions import AuthorizationError
from app.models.user import ROLE_ADMIN
from app.schemas.user import UserCreate, UserUpdate, UserOut
from app.services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserOut)
async def get_me(current_user: CurrentUser):
    return current_user


@router.get("", response_model=list[UserOut])
async def list_users(current_user: SupervisorUser, db: DB, include_inactive: bool = False):
    return await user_service.list_users(db, include_inactive=include_inactive)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate, current_user: AdminUser, db: DB):
    return await user_service.create_user(db, current_user, payload.model_dump())


@router.patch("/{user_id}", response_model=UserOut)
async def update_user(user_id: uuid.UUID, payload: UserUpdate, current_user: SupervisorUser, db: DB):
    data = payload.model_dump(exclude_unset=True)
    # Rollen und Urlaubsanspruch darf nur ein Admin ändern
    admin_only = {"role", "annual_vacation_days", "carry_over_vacation_days"}
    if current_user.role != ROLE_ADMIN and admin_only & data.keys():
        raise AuthorizationError("Keine Berechtigung.")
    return await user_service.update_user(db, current_user, user_id, data)
