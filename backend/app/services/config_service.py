from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.system_config import SystemConfig, SYSTEM_CONFIG_ID
from app.services.time_accounting import AccountingConfig


async def get_system_config(db: AsyncSession) -> SystemConfig | None:
    result = await db.execute(select(SystemConfig).where(SystemConfig.id == SYSTEM_CONFIG_ID))
    return result.scalar_one_or_none()


async def get_or_create_system_config(db: AsyncSession) -> SystemConfig:
    row = await get_system_config(db)
    if row is None:
        row = SystemConfig(id=SYSTEM_CONFIG_ID)
        db.add(row)
        await db.flush()
    return row


async def load_accounting_config(db: AsyncSession) -> AccountingConfig:
    """Einmal pro Anfrage laden und explizit weiterreichen. Ohne Zeile gelten die Standardwerte."""
    return AccountingConfig.from_row(await get_system_config(db))
