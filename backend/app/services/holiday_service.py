import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.holiday import Holiday
from app.utils.holidays import get_public_holidays

logger = logging.getLogger(__name__)


async def load_holidays(db: AsyncSession, start: date, end: date) -> dict[date, str]:
    """Feiertage im Zeitraum (inklusive) als {datum: name}."""
    result = await db.execute(
        select(Holiday).where(Holiday.date >= start, Holiday.date <= end).order_by(Holiday.date)
    )
    return {h.date: h.name for h in result.scalars().all()}


async def import_public_holidays(db: AsyncSession, year: int, region: str) -> dict:
    """Übernimmt gesetzliche Feiertage eines Jahres; vorhandene Tage bleiben unverändert."""
    public = get_public_holidays(year, region)
    existing = await load_holidays(db, date(year, 1, 1), date(year, 12, 31))

    created = []
    for day, name in sorted(public.items()):
        if day in existing:
            continue
        db.add(Holiday(date=day, name=name))
        created.append(day)

    await db.flush()
    logger.info("Feiertage %s/%s importiert: %d neu, %d übersprungen", region, year, len(created), len(public) - len(created))
    return {"year": year, "region": region, "created": len(created), "skipped": len(public) - len(created)}
