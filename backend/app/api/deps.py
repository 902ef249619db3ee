from typing import Annotated
import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.security import decode_token
from app.models.user import User, ROLE_ADMIN, SUPERVISOR_ROLES
from app.services.config_service import load_accounting_config
from app.services.time_accounting import AccountingConfig

security = HTTPBearer()


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Nicht authentifiziert.",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
        if payload.get("type") != "access":
            raise credentials_exception
        user_id = uuid.UUID(payload["sub"])
    except (ValueError, KeyError):
        raise credentials_exception

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


async def get_current_active_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if current_user.role != ROLE_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Keine Berechtigung.",
        )
    return current_user


async def get_current_supervisor_or_admin(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Allows admin and supervisor (Vorgesetzte) roles."""
    if current_user.role not in SUPERVISOR_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Keine Berechtigung.",
        )
    return current_user


async def get_accounting_config(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AccountingConfig:
    return await load_accounting_config(db)


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(get_current_active_admin)]
SupervisorUser = Annotated[User, Depends(get_current_supervisor_or_admin)]
Config = Annotated[AccountingConfig, Depends(get_accounting_config)]
DB = Annotated[AsyncSession, Depends(get_db)]
