import logging
import secrets

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, Config
from app.core.config import settings
from app.schemas.time import TerminalPunchRequest, TerminalPunchOut
from app.services.time_entry_service import TimeEntryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/terminal", tags=["terminal"])


@router.post("/punch", response_model=TerminalPunchOut)
async def punch(payload: TerminalPunchRequest, db: DB, config: Config):
    """RFID-Stempelung. Authentifiziert über den Terminal-Schlüssel statt JWT."""
    if not settings.TERMINAL_API_KEY or not secrets.compare_digest(payload.terminal_key, settings.TERMINAL_API_KEY):
        logger.warning("Terminal-Anfrage mit ungültigem Schlüssel abgewiesen")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Terminal nicht autorisiert.")
    return await TimeEntryService(db).terminal_punch(payload.rfid_tag, payload.reason_text, config)
