"""
Audit-Trail. Ein fehlgeschlagener Audit-Eintrag darf die eigentliche
Buchung nie zurückrollen: geschrieben wird in einem SAVEPOINT, Fehler
werden nur geloggt.
"""
import logging
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AuditLog

logger = logging.getLogger(__name__)


async def write_audit_log(
    db: AsyncSession,
    *,
    actor,
    action: str,
    target_type: str | None = None,
    target_id: uuid.UUID | str | None = None,
    payload: dict | None = None,
) -> None:
    try:
        async with db.begin_nested():
            db.add(AuditLog(
                actor_user_id=actor.id if actor else None,
                actor_login_name=actor.login_name if actor else "system",
                action=action,
                target_type=target_type,
                target_id=str(target_id) if target_id is not None else None,
                payload=payload,
            ))
    except SQLAlchemyError:
        logger.warning("Audit-Eintrag %s für %s/%s fehlgeschlagen", action, target_type, target_id, exc_info=True)
