"""
Gesetzliche Feiertage über workalendar.
Die Region ist ein ISO-Code aus der workalendar-Registry (z.B. "DE-BW").
"""
from datetime import date

from workalendar.registry import registry


def get_public_holidays(year: int, region: str) -> dict[date, str]:
    """Gibt alle gesetzlichen Feiertage der Region für ein Jahr zurück."""
    calendar_class = registry.get(region)
    if calendar_class is None:
        raise ValueError(f"Unbekannte Feiertagsregion: {region}")
    cal = calendar_class()
    return {d: name for d, name in cal.holidays(year)}
