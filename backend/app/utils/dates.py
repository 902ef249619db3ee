"""
Datums- und Zeit-Hilfsfunktionen.
Alle Tagesgrenzen werden in UTC gerechnet.
"""
import calendar
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

WEEKDAY_CODES = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def date_range(start: date, end: date) -> Iterator[date]:
    """Alle Tage von start bis end (inklusive). Leer, wenn end < start."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)


def day_window_utc(day: date) -> tuple[datetime, datetime]:
    """[00:00:00.000, 23:59:59.999] des Tages in UTC."""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end


def as_utc(value: datetime) -> datetime:
    # SQLite liefert naive Zeitstempel zurück
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_day(value: datetime) -> date:
    return as_utc(value).date()


def parse_iso_date(value: str) -> date:
    """Parst YYYY-MM-DD; wirft ValueError bei ungültigem Format."""
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", value or ""):
        raise ValueError(f"Ungültiges Datum: {value!r}")
    return date.fromisoformat(value)


def parse_time(value: str) -> time:
    """Parst HH:MM oder HH:MM:SS; wirft ValueError bei ungültigem Format."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"Ungültige Uhrzeit: {value!r}")
    hour, minute, second = match.groups()
    return time(int(hour), int(minute), int(second or 0))


def combine_utc(day: date, value: str) -> datetime:
    return datetime.combine(day, parse_time(value), tzinfo=timezone.utc)


def parse_working_days(value: str | None) -> frozenset[int]:
    """'MON,TUE,WED' -> {0, 1, 2} (date.weekday()). Unbekannte Kürzel werden ignoriert."""
    days = set()
    for token in (value or "").split(","):
        token = token.strip().upper()
        if token in WEEKDAY_CODES:
            days.add(WEEKDAY_CODES.index(token))
    return frozenset(days)


def is_weekday(day: date) -> bool:
    return day.weekday() < 5
