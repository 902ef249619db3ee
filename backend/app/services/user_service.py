import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.core.security import hash_password
from app.models.user import User
from app.services.audit_service import write_audit_log

logger = logging.getLogger(__name__)


def ensure_self_or_supervisor(actor: User, user_id: uuid.UUID) -> None:
    """Mitarbeiter und Azubis dürfen nur die eigenen Daten sehen."""
    if not actor.is_supervisor and actor.id != user_id:
        raise AuthorizationError("Keine Berechtigung.")


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("Benutzer nicht gefunden.")
    return user


async def list_users(db: AsyncSession, include_inactive: bool = False) -> list[User]:
    query = select(User).order_by(User.name)
    if not include_inactive:
        query = query.where(User.is_active == True)  # noqa: E712
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_user(db: AsyncSession, actor: User, data: dict) -> User:
    password = data.pop("password")
    user = User(**data, hashed_password=hash_password(password))
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Loginname oder RFID-Tag bereits vergeben.")

    await write_audit_log(db, actor=actor, action="USER_CREATE", target_type="User", target_id=user.id,
                          payload={"login_name": user.login_name, "role": user.role})
    await db.commit()
    await db.refresh(user)
    logger.info("Benutzer %s angelegt von %s", user.login_name, actor.login_name)
    return user


async def update_user(db: AsyncSession, actor: User, user_id: uuid.UUID, data: dict) -> User:
    user = await get_user(db, user_id)
    password = data.pop("password", None)
    for field, value in data.items():
        setattr(user, field, value)
    if password:
        user.hashed_password = hash_password(password)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Loginname oder RFID-Tag bereits vergeben.")

    await write_audit_log(db, actor=actor, action="USER_UPDATE", target_type="User", target_id=user.id,
                          payload={k: str(v) for k, v in data.items()})
    await db.commit()
    await db.refresh(user)
    return user
