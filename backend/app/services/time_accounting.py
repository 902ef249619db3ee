"""
Zeitberechnung: Stempelungen paaren, Pausenabzug, Tages- und Monatsbilanz.

Reine Funktionen ohne Datenbankzugriff. Alle Dauern in ganzen Minuten,
Stunden werden erst bei der Ausgabe auf zwei Nachkommastellen gerundet.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from app.models.time_entry import CLOCK_IN, CLOCK_OUT, SOURCE_MANUAL_CORRECTION
from app.utils.dates import date_range, month_bounds, utc_day, as_utc, is_weekday, parse_working_days


@dataclass(frozen=True)
class AccountingConfig:
    """Unveränderlicher Schnappschuss der SystemConfig für eine Anfrage."""
    default_daily_hours: float = 8.0
    working_days: frozenset[int] = frozenset({0, 1, 2, 3, 4})
    auto_break_minutes: int = 30
    auto_break_after_hours: float = 6.0
    self_correction_max_days: int = 3
    require_reason_web_clock: bool = True
    require_note_self_correction: bool = True
    require_note_supervisor_correction: bool = True
    require_note_overtime_adjustment: bool = True
    require_other_supervisor_for_break_credit_approval: bool = False

    @classmethod
    def from_row(cls, row) -> "AccountingConfig":
        if row is None:
            return cls()
        return cls(
            default_daily_hours=float(row.default_daily_hours),
            working_days=parse_working_days(row.default_weekly_working_days),
            auto_break_minutes=int(row.auto_break_minutes),
            auto_break_after_hours=float(row.auto_break_after_hours),
            self_correction_max_days=int(row.self_correction_max_days),
            require_reason_web_clock=bool(row.require_reason_web_clock),
            require_note_self_correction=bool(row.require_note_self_correction),
            require_note_supervisor_correction=bool(row.require_note_supervisor_correction),
            require_note_overtime_adjustment=bool(row.require_note_overtime_adjustment),
            require_other_supervisor_for_break_credit_approval=bool(
                row.require_other_supervisor_for_break_credit_approval
            ),
        )


@dataclass
class PairingResult:
    minutes_by_day: dict[date, int] = field(default_factory=dict)
    longest_interval: timedelta = timedelta(0)


@dataclass
class DayRecord:
    date: date
    planned_hours: float
    worked_hours: float
    is_holiday: bool
    is_weekend: bool
    is_working_day: bool
    has_manual_correction: bool
    gross_minutes: int = 0
    net_minutes: int = 0
    break_minutes_deducted: int = 0
    break_credit_minutes: int = 0
    holiday_name: str | None = None
    is_sick: bool = False
    is_vacation: bool = False
    entries: list = field(default_factory=list)

    @property
    def planned_minutes(self) -> int:
        return round(self.planned_hours * 60)


@dataclass
class MonthView:
    year: int
    month: int
    days: list[DayRecord]
    month_planned_hours: float
    month_worked_hours: float


def round_hours(value: float) -> float:
    # + 0.0 vermeidet -0.0 in der Ausgabe
    return round(value, 2) + 0.0


# ── EntryPairer ───────────────────────────────────────────────────────────────

def pair_entries(entries: Iterable) -> PairingResult:
    """
    Paart CLOCK_IN/CLOCK_OUT zu Intervallen.

    Ein neues CLOCK_IN überschreibt ein noch offenes (das ältere verfällt).
    CLOCK_OUT ohne offenes CLOCK_IN wird ignoriert, ein offenes CLOCK_IN am
    Ende ergibt nichts. Die Minuten zählen zum UTC-Tag des CLOCK_IN.
    """
    result = PairingResult()
    ordered = sorted(entries, key=lambda e: as_utc(e.occurred_at))
    open_in = None

    for entry in ordered:
        if entry.type == CLOCK_IN:
            open_in = as_utc(entry.occurred_at)
        elif entry.type == CLOCK_OUT and open_in is not None:
            interval = as_utc(entry.occurred_at) - open_in
            if interval > timedelta(0):
                day = open_in.date()
                minutes = int(interval.total_seconds() // 60)
                result.minutes_by_day[day] = result.minutes_by_day.get(day, 0) + minutes
                result.longest_interval = max(result.longest_interval, interval)
            open_in = None

    return result


# ── BreakRule ─────────────────────────────────────────────────────────────────

def apply_auto_break(gross_minutes: int, config: AccountingConfig) -> tuple[int, int]:
    """Gibt (netto, abgezogene Pause) zurück. Einmal pro Tag, nie unter 0."""
    threshold = config.auto_break_after_hours * 60
    if gross_minutes >= threshold and config.auto_break_minutes > 0:
        net = max(gross_minutes - config.auto_break_minutes, 0)
        return net, gross_minutes - net
    return gross_minutes, 0


# ── DayAccountant ─────────────────────────────────────────────────────────────

def planned_hours_for(
    day: date,
    config: AccountingConfig,
    holidays: dict[date, str],
    daily_hours: float | None = None,
) -> float:
    if day.weekday() not in config.working_days or day in holidays:
        return 0.0
    return float(daily_hours) if daily_hours is not None else config.default_daily_hours


def account_day(
    day: date,
    gross_minutes: int,
    config: AccountingConfig,
    holidays: dict[date, str],
    daily_hours: float | None = None,
    break_credit_minutes: int = 0,
    entries: list | None = None,
    is_sick: bool = False,
    is_vacation: bool = False,
) -> DayRecord:
    entries = entries or []
    is_holiday = day in holidays
    is_working_day = day.weekday() in config.working_days and not is_holiday
    planned = planned_hours_for(day, config, holidays, daily_hours)

    after_break, deducted = apply_auto_break(gross_minutes, config)
    net = max(after_break + break_credit_minutes, 0)

    return DayRecord(
        date=day,
        planned_hours=round_hours(planned),
        worked_hours=round_hours(net / 60),
        is_holiday=is_holiday,
        is_weekend=day.weekday() >= 5,
        is_working_day=is_working_day,
        has_manual_correction=any(
            getattr(e, "is_manual_correction", False) or getattr(e, "source", None) == SOURCE_MANUAL_CORRECTION
            for e in entries
        ),
        gross_minutes=gross_minutes,
        net_minutes=net,
        break_minutes_deducted=deducted,
        break_credit_minutes=break_credit_minutes,
        holiday_name=holidays.get(day),
        is_sick=is_sick,
        is_vacation=is_vacation,
        entries=list(entries),
    )


def day_overtime_minutes(record: DayRecord) -> int:
    return record.net_minutes - record.planned_minutes


# ── MonthAccountant ───────────────────────────────────────────────────────────

def group_entries_by_day(entries: Iterable) -> dict[date, list]:
    grouped: dict[date, list] = {}
    for entry in sorted(entries, key=lambda e: as_utc(e.occurred_at)):
        grouped.setdefault(utc_day(entry.occurred_at), []).append(entry)
    return grouped


def account_range(
    start: date,
    end: date,
    entries: Iterable,
    config: AccountingConfig,
    holidays: dict[date, str],
    daily_hours: float | None = None,
    break_credits: dict[date, int] | None = None,
    sick_days: set[date] | None = None,
    vacation_days: set[date] | None = None,
    tracking_enabled: bool = True,
) -> list[DayRecord]:
    """
    Eine DayRecord je Tag von start bis end.

    Die Einträge dürfen über den Zeitraum hinausreichen (z.B. Nachtschicht
    vom Vortag); gezählt wird nur, was einem Tag im Zeitraum zugeordnet ist.
    Ohne Zeiterfassung gilt Ist = Soll.
    """
    entries = list(entries)
    break_credits = break_credits or {}
    sick_days = sick_days or set()
    vacation_days = vacation_days or set()

    pairing = pair_entries(entries)
    by_day = group_entries_by_day(entries)

    records = []
    for day in date_range(start, end):
        record = account_day(
            day,
            pairing.minutes_by_day.get(day, 0),
            config,
            holidays,
            daily_hours=daily_hours,
            break_credit_minutes=break_credits.get(day, 0),
            entries=by_day.get(day, []),
            is_sick=day in sick_days,
            is_vacation=day in vacation_days,
        )
        if not tracking_enabled:
            record.net_minutes = record.planned_minutes
            record.worked_hours = record.planned_hours
        records.append(record)
    return records


def account_month(
    year: int,
    month: int,
    entries: Iterable,
    config: AccountingConfig,
    holidays: dict[date, str],
    **kwargs,
) -> MonthView:
    start, end = month_bounds(year, month)
    days = account_range(start, end, entries, config, holidays, **kwargs)
    planned = sum(d.planned_minutes for d in days)
    worked = sum(d.net_minutes for d in days)
    return MonthView(
        year=year,
        month=month,
        days=days,
        month_planned_hours=round_hours(planned / 60),
        month_worked_hours=round_hours(worked / 60),
    )


def has_long_shift(pairing: PairingResult, limit_hours: float = 12) -> bool:
    """True, wenn ein gepaartes Intervall länger als limit_hours ist."""
    return pairing.longest_interval > timedelta(hours=limit_hours)


def count_leave_days(start: date, end: date, holidays: dict[date, str]) -> int:
    """Mo–Fr ohne Feiertage, inklusive beider Grenzen."""
    return sum(1 for d in date_range(start, end) if is_weekday(d) and d not in holidays)
