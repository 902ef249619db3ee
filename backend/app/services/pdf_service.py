"""
PDF-Generierung für den monatlichen Stundenzettel.
Gibt bytes zurück – kein Dateisystem-Storage nötig.
"""
from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, HRFlowable

from app.utils.dates import as_utc

if TYPE_CHECKING:
    from app.models.user import User
    from app.services.time_accounting import MonthView


# ── Farben (druckfreundlich) ─────────────────────────────────────────────────

_NAVY   = colors.HexColor("#1E3A5F")   # Header-Hintergrund
_LIGHT  = colors.HexColor("#F0F4F8")   # Tabellen-Zebrierung
_WHITE  = colors.white
_GRAY   = colors.HexColor("#6B7280")
_WEEKEND = colors.HexColor("#E5E7EB")
_GREEN  = colors.HexColor("#16A34A")
_RED    = colors.HexColor("#DC2626")


# ── Hilfsfunktionen ───────────────────────────────────────────────────────────

MONTH_NAMES = [
    "", "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]

WEEKDAY_SHORT = ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"]


def _fmt_hours(val: float | None) -> str:
    if val is None or val == 0.0:
        return "–"
    return f"{val:.2f} h".replace(".", ",")


def _fmt_signed(val: float) -> str:
    return f"{val:+.2f} h".replace(".", ",")


def _day_note(day) -> str:
    if day.is_holiday:
        return day.holiday_name or "Feiertag"
    if day.is_sick:
        return "Krank"
    if day.is_vacation:
        return "Urlaub"
    if day.has_manual_correction:
        return "Korrigiert"
    return ""


def _punches(day) -> str:
    return " ".join(
        f"{'ein' if e.type == 'CLOCK_IN' else 'aus'} {as_utc(e.occurred_at).strftime('%H:%M')}"
        for e in day.entries
    )


# ── Haupt-Funktion ────────────────────────────────────────────────────────────

def generate_timesheet_pdf(
    view: "MonthView",
    user: "User",
    company_name: str,
    overtime_hours: float | None = None,
) -> bytes:
    """Erstellt den Stundenzettel eines Monats als PDF und gibt die Bytes zurück."""

    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=1.5 * cm,
        rightMargin=1.5 * cm,
        topMargin=1.5 * cm,
        bottomMargin=1.5 * cm,
    )

    styles = getSampleStyleSheet()
    normal = styles["Normal"]
    normal.fontName = "Helvetica"
    normal.fontSize = 9
    normal.leading = 13

    heading = ParagraphStyle(
        "heading",
        parent=normal,
        fontSize=11,
        fontName="Helvetica-Bold",
        textColor=_NAVY,
        spaceAfter=4,
    )
    small_gray = ParagraphStyle(
        "small_gray",
        parent=normal,
        fontSize=8,
        textColor=_GRAY,
    )

    month_label = f"{MONTH_NAMES[view.month]} {view.year}"
    story = []
    page_w = A4[0] - 3 * cm  # nutzbare Breite

    # ── Header ────────────────────────────────────────────────────────────────
    header_tbl = Table([[
        Paragraph("<font color='white'><b>Stundenzettel</b></font>", styles["Normal"]),
        Paragraph(f"<font color='white'>{company_name}</font>", styles["Normal"]),
    ]], colWidths=[page_w * 0.6, page_w * 0.4])
    header_tbl.setStyle(TableStyle([
        ("BACKGROUND",  (0, 0), (-1, -1), _NAVY),
        ("TEXTCOLOR",   (0, 0), (-1, -1), _WHITE),
        ("FONTSIZE",    (0, 0), (-1, -1), 11),
        ("ALIGN",       (1, 0), (1, 0),   "RIGHT"),
        ("TOPPADDING",  (0, 0), (-1, -1), 8),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 8),
        ("LEFTPADDING", (0, 0), (-1, -1), 10),
        ("RIGHTPADDING", (0, 0), (-1, -1), 10),
    ]))
    story.append(header_tbl)
    story.append(Spacer(1, 0.4 * cm))

    # ── Mitarbeiter + Monat ───────────────────────────────────────────────────
    col_w = page_w / 4
    info_tbl = Table([
        ["Mitarbeiter", user.name, "Monat", month_label],
        ["Login", user.login_name, "Soll / Ist",
         f"{_fmt_hours(view.month_planned_hours)} / {_fmt_hours(view.month_worked_hours)}"],
    ], colWidths=[col_w * 0.7, col_w * 1.3, col_w * 0.7, col_w * 1.3])
    info_tbl.setStyle(TableStyle([
        ("FONTNAME",    (0, 0), (0, -1), "Helvetica-Bold"),
        ("FONTNAME",    (2, 0), (2, -1), "Helvetica-Bold"),
        ("FONTSIZE",    (0, 0), (-1, -1), 9),
        ("TOPPADDING",  (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
        ("LEFTPADDING", (0, 0), (-1, -1), 4),
        ("ROWBACKGROUNDS", (0, 0), (-1, -1), [_WHITE, _LIGHT]),
    ]))
    story.append(info_tbl)
    story.append(Spacer(1, 0.4 * cm))

    # ── Tagestabelle ──────────────────────────────────────────────────────────
    story.append(Paragraph("Tage", heading))

    rows = [["Tag", "Buchungen", "Soll", "Ist", "Pause", "Hinweis"]]
    for day in view.days:
        rows.append([
            f"{WEEKDAY_SHORT[day.date.weekday()]} {day.date.strftime('%d.%m.')}",
            _punches(day),
            _fmt_hours(day.planned_hours),
            _fmt_hours(day.worked_hours),
            f"{day.break_minutes_deducted} min" if day.break_minutes_deducted else "",
            _day_note(day),
        ])
    rows.append(["Summe", "", _fmt_hours(view.month_planned_hours), _fmt_hours(view.month_worked_hours), "", ""])
    total_idx = len(rows) - 1

    day_tbl = Table(rows, colWidths=[
        page_w * 0.12, page_w * 0.38, page_w * 0.1, page_w * 0.1, page_w * 0.1, page_w * 0.2,
    ], repeatRows=1)
    day_style = [
        ("BACKGROUND",    (0, 0), (-1, 0), _NAVY),
        ("TEXTCOLOR",     (0, 0), (-1, 0), _WHITE),
        ("FONTNAME",      (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE",      (0, 0), (-1, -1), 8),
        ("ALIGN",         (2, 0), (4, -1), "RIGHT"),
        ("TOPPADDING",    (0, 0), (-1, -1), 2),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
        ("GRID",          (0, 0), (-1, -1), 0.25, colors.HexColor("#E5E7EB")),
        ("FONTNAME",      (0, total_idx), (-1, total_idx), "Helvetica-Bold"),
        ("LINEABOVE",     (0, total_idx), (-1, total_idx), 0.5, _NAVY),
    ]
    for idx, day in enumerate(view.days, start=1):
        if day.is_weekend or day.is_holiday:
            day_style.append(("BACKGROUND", (0, idx), (-1, idx), _WEEKEND))
    day_tbl.setStyle(TableStyle(day_style))
    story.append(day_tbl)

    # ── Zeitkonto ─────────────────────────────────────────────────────────────
    if overtime_hours is not None:
        story.append(Spacer(1, 0.3 * cm))
        color = _GREEN if overtime_hours >= 0 else _RED
        story.append(Paragraph(
            f"Zeitkonto aktuell: <b>{_fmt_signed(overtime_hours)}</b>",
            ParagraphStyle("balance", parent=normal, textColor=color),
        ))

    # ── Footer ────────────────────────────────────────────────────────────────
    story.append(Spacer(1, 0.5 * cm))
    story.append(HRFlowable(width="100%", thickness=0.5, color=_GRAY))
    story.append(Spacer(1, 0.15 * cm))
    now = datetime.now(timezone.utc).strftime("%d.%m.%Y")
    story.append(Paragraph(f"Erstellt am {now} · {company_name}", small_gray))

    doc.build(story)
    return buf.getvalue()
