"""
Tests für /api/v1/time und /api/v1/terminal – Stempeln, Korrekturen,
Monatsansicht, Zeitkonto, Pausengutschrift, Krankmeldung, RFID.
"""
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from app.core.config import settings
from app.models.audit import AuditLog
from app.models.leave import LeaveRequest, SickLeave
from app.models.time_entry import TimeEntry, OvertimeAdjustment
from app.services.overtime_service import OvertimeService
from app.services.time_accounting import AccountingConfig
from app.services.timesheet_service import TimesheetService
from tests.conftest import auth_headers, make_user


BASE = "/api/v1/time"


def _entry(user, kind, year, month, day, hour, minute=0):
    return TimeEntry(
        user_id=user.id, type=kind, source="WEB",
        occurred_at=datetime(year, month, day, hour, minute, tzinfo=timezone.utc),
    )


# ── Stempeln ──────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_clock_requires_reason(client, employee_user, employee_token):
    resp = await client.post(f"{BASE}/clock", headers=auth_headers(employee_token), json={"type": "CLOCK_IN"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Grund ist Pflicht."


@pytest.mark.asyncio
async def test_clock_in(client, db, employee_user, employee_token):
    resp = await client.post(f"{BASE}/clock", headers=auth_headers(employee_token), json={
        "type": "CLOCK_IN",
        "reason_text": "Homeoffice",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["source"] == "WEB"
    assert data["is_manual_correction"] is False

    today = await client.get(f"{BASE}/today/{employee_user.id}", headers=auth_headers(employee_token))
    assert [e["id"] for e in today.json()] == [data["id"]]

    logs = await db.execute(select(AuditLog).where(AuditLog.action == "CLOCK_EVENT"))
    assert logs.scalar_one().actor_user_id == employee_user.id


@pytest.mark.asyncio
async def test_clock_tracking_disabled(client, db, employee_user, employee_token):
    employee_user.time_tracking_enabled = False
    await db.commit()

    resp = await client.post(f"{BASE}/clock", headers=auth_headers(employee_token), json={
        "type": "CLOCK_IN",
        "reason_text": "Büro",
    })
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_clock_invalid_type(client, employee_user, employee_token):
    resp = await client.post(f"{BASE}/clock", headers=auth_headers(employee_token), json={
        "type": "PAUSE",
        "reason_text": "Büro",
    })
    assert resp.status_code == 422


# ── Korrekturen ───────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_self_correction(client, employee_user, employee_token):
    resp = await client.post(f"{BASE}/self-correction", headers=auth_headers(employee_token), json={
        "type": "CLOCK_OUT",
        "occurred_at": "2024-06-03T16:00:00Z",
        "correction_comment": "Ausstempeln vergessen",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["source"] == "MANUAL_CORRECTION"
    assert data["is_manual_correction"] is True
    assert data["created_by_id"] == str(employee_user.id)


@pytest.mark.asyncio
async def test_supervisor_correction_comment_too_short(client, employee_user, supervisor_user, supervisor_token):
    resp = await client.post(f"{BASE}/correction", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "type": "CLOCK_IN",
        "occurred_at": "2024-06-03T08:00:00Z",
        "correction_comment": "zu kurz",
    })
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_supervisor_correction(client, employee_user, supervisor_user, supervisor_token):
    resp = await client.post(f"{BASE}/correction", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "type": "CLOCK_IN",
        "occurred_at": "2024-06-03T08:00:00Z",
        "correction_comment": "Karte vergessen, telefonisch gemeldet",
    })
    assert resp.status_code == 201
    data = resp.json()
    assert data["user_id"] == str(employee_user.id)
    assert data["created_by_id"] == str(supervisor_user.id)


@pytest.mark.asyncio
async def test_supervisor_correction_forbidden_for_employee(client, employee_user, employee_token):
    resp = await client.post(f"{BASE}/correction", headers=auth_headers(employee_token), json={
        "user_id": str(employee_user.id),
        "type": "CLOCK_IN",
        "occurred_at": "2024-06-03T08:00:00Z",
        "correction_comment": "Karte vergessen, telefonisch gemeldet",
    })
    assert resp.status_code == 403


# ── Monatsansicht ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_month_view(client, db, employee_user, employee_token):
    db.add_all([
        _entry(employee_user, "CLOCK_IN", 2024, 6, 3, 8),
        _entry(employee_user, "CLOCK_OUT", 2024, 6, 3, 16),
        # Nachtschicht am Monatsletzten
        _entry(employee_user, "CLOCK_IN", 2024, 6, 30, 22),
        _entry(employee_user, "CLOCK_OUT", 2024, 7, 1, 2),
    ])
    await db.commit()

    resp = await client.get(
        f"{BASE}/month/{employee_user.id}", params={"year": 2024, "month": 6},
        headers=auth_headers(employee_token),
    )
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["days"]) == 30
    assert data["month_planned_hours"] == 160.0
    assert data["month_worked_hours"] == 11.5
    assert data["days"][2]["worked_hours"] == 7.5
    assert data["days"][2]["break_minutes_deducted"] == 30
    assert len(data["days"][2]["entries"]) == 2
    assert data["days"][29]["worked_hours"] == 4.0
    assert data["days"][29]["is_weekend"] is True


@pytest.mark.asyncio
async def test_month_view_rbac(client, employee_user, employee_token, supervisor_user, supervisor_token):
    other = await client.get(
        f"{BASE}/month/{supervisor_user.id}", params={"year": 2024, "month": 6},
        headers=auth_headers(employee_token),
    )
    assert other.status_code == 403

    as_supervisor = await client.get(
        f"{BASE}/month/{employee_user.id}", params={"year": 2024, "month": 6},
        headers=auth_headers(supervisor_token),
    )
    assert as_supervisor.status_code == 200


@pytest.mark.asyncio
async def test_month_view_invalid_month(client, employee_user, employee_token):
    resp = await client.get(
        f"{BASE}/month/{employee_user.id}", params={"year": 2024, "month": 13},
        headers=auth_headers(employee_token),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_month_report_pdf(client, employee_user, employee_token):
    resp = await client.get(
        f"{BASE}/month-report/{employee_user.id}/pdf", params={"year": 2024, "month": 6},
        headers=auth_headers(employee_token),
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content.startswith(b"%PDF")
    assert "stundenzettel_mitarbeiter_2024_06.pdf" in resp.headers["content-disposition"]


# ── Zusammenfassung & Zeitkonto ───────────────────────────────────────────────

@pytest.mark.asyncio
async def test_summary_endpoint(client, employee_user, employee_token):
    resp = await client.get(f"{BASE}/summary/{employee_user.id}", headers=auth_headers(employee_token))
    assert resp.status_code == 200
    data = resp.json()
    assert data["user_id"] == str(employee_user.id)
    assert data["manual_adjustment_hours"] == 0.0
    assert data["long_shift_alert"] is False


@pytest.mark.asyncio
async def test_summary_balance_and_adjustment(db, admin_user):
    # Soll 0 h: der Saldo besteht nur aus Ist, Startsaldo und Korrekturen
    user = await make_user(db, "employee", daily_work_hours=0, overtime_balance_hours=1.25)
    db.add_all([
        _entry(user, "CLOCK_IN", 2024, 6, 10, 6),
        _entry(user, "CLOCK_OUT", 2024, 6, 10, 19),
    ])
    await db.commit()

    config = AccountingConfig()
    today = date(2024, 6, 12)
    timesheets = TimesheetService(db)
    before = await timesheets.get_summary(user, config, today=today)
    assert before["month_worked_hours"] == 12.5
    assert before["overtime_hours"] == 13.75
    assert before["long_shift_alert"] is True

    await OvertimeService(db).add_adjustment(admin_user, user, date(2024, 6, 1), -2.5, "Auszahlung", config)
    # Korrektur im Vormonat zählt nicht für Juni
    await OvertimeService(db).add_adjustment(admin_user, user, date(2024, 5, 31), 4, "Nachtrag", config)

    after = await timesheets.get_summary(user, config, today=today)
    assert after["manual_adjustment_hours"] == -2.5
    assert after["overtime_hours"] - before["overtime_hours"] == pytest.approx(-2.5)


@pytest.mark.asyncio
async def test_summary_tracking_disabled(db):
    user = await make_user(db, "employee", time_tracking_enabled=False, overtime_balance_hours=3.456)
    db.add_all([
        _entry(user, "CLOCK_IN", 2024, 6, 10, 6),
        _entry(user, "CLOCK_OUT", 2024, 6, 10, 19),
    ])
    await db.commit()

    summary = await TimesheetService(db).get_summary(user, AccountingConfig(), today=date(2024, 6, 12))
    assert summary["overtime_hours"] == 3.46
    assert summary["month_worked_hours"] == summary["month_planned_hours"] == 160.0
    assert summary["long_shift_alert"] is False


@pytest.mark.asyncio
async def test_summary_credits_approved_vacation(db):
    user = await make_user(db, "employee", created_at=datetime(2024, 7, 1, tzinfo=timezone.utc))
    db.add(LeaveRequest(
        user_id=user.id, kind="VACATION", status="APPROVED",
        start_date=date(2024, 7, 1), end_date=date(2024, 7, 5),
    ))
    await db.commit()

    config = AccountingConfig()
    today = date(2024, 7, 20)
    summary = await TimesheetService(db).get_summary(user, config, today=today)
    # Juli 2024: 23 Arbeitstage, davon 5 Urlaub
    assert summary["overtime_hours"] == -(23 - 5) * 8.0

    rows = await OvertimeService(db).supervisor_overview(config, today=today)
    row = next(r for r in rows if r["user_id"] == user.id)
    assert row["total_overtime_hours"] == summary["overtime_hours"]


@pytest.mark.asyncio
async def test_balance_reset_restarts_accounting(db, admin_user):
    user = await make_user(
        db, "employee", daily_work_hours=0, created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    db.add_all([
        _entry(user, "CLOCK_IN", 2024, 5, 20, 6),
        _entry(user, "CLOCK_OUT", 2024, 5, 20, 14),
        _entry(user, "CLOCK_IN", 2024, 7, 2, 6),
        _entry(user, "CLOCK_OUT", 2024, 7, 2, 10),
        _entry(user, "CLOCK_IN", 2024, 7, 15, 6),
        _entry(user, "CLOCK_OUT", 2024, 7, 15, 10),
    ])
    await db.commit()
    config = AccountingConfig()
    service = OvertimeService(db)
    await service.add_adjustment(admin_user, user, date(2024, 6, 10), 2, "Übertrag", config)
    # Der neue Startsaldo enthält alles bis zum 09.07.
    await service.set_stored_balance(admin_user, user, 20, "Abgleich", today=date(2024, 7, 10))
    assert user.overtime_balance_set_on == date(2024, 7, 10)

    today = date(2024, 7, 20)
    rows = await service.supervisor_overview(config, today=today)
    row = next(r for r in rows if r["user_id"] == user.id)
    assert row["overtime_before_current_month"] == 20.0
    assert row["current_month_overtime"] == 4.0

    summary = await TimesheetService(db).get_summary(user, config, today=today)
    assert summary["overtime_hours"] == 24.0


@pytest.mark.asyncio
async def test_overtime_adjustment_endpoint(client, db, admin_user, admin_token, employee_user):
    resp = await client.post(f"{BASE}/overtime-adjustment", headers=auth_headers(admin_token), json={
        "user_id": str(employee_user.id),
        "date": "2024-06-03",
        "hours": 1.5,
        "reason": "Betriebsausflug",
    })
    assert resp.status_code == 201
    assert resp.json()["hours"] == 1.5

    listed = await client.get(f"{BASE}/overtime-adjustment/{employee_user.id}", headers=auth_headers(admin_token))
    assert len(listed.json()) == 1


@pytest.mark.asyncio
async def test_overtime_adjustment_validation(client, admin_user, admin_token, employee_user):
    for payload in (
        {"hours": 0, "reason": "Nichts"},
        {"hours": 501, "reason": "Zu viel"},
        {"hours": 2},
    ):
        resp = await client.post(f"{BASE}/overtime-adjustment", headers=auth_headers(admin_token), json={
            "user_id": str(employee_user.id), "date": "2024-06-03", **payload,
        })
        assert resp.status_code == 400, payload


@pytest.mark.asyncio
async def test_overtime_adjustment_admin_only(client, supervisor_user, supervisor_token, employee_user):
    resp = await client.post(f"{BASE}/overtime-adjustment", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id), "date": "2024-06-03", "hours": 1, "reason": "Test",
    })
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_set_overtime_account(client, db, admin_user, admin_token, employee_user):
    resp = await client.patch(f"{BASE}/overtime-account/{employee_user.id}", headers=auth_headers(admin_token), json={
        "overtime_balance_hours": 12.5,
        "reason": "Übernahme aus Altsystem",
    })
    assert resp.status_code == 200
    assert resp.json()["stored_balance_hours"] == 12.5

    adjustments = await db.execute(select(OvertimeAdjustment))
    assert adjustments.scalars().all() == []
    logs = await db.execute(select(AuditLog).where(AuditLog.action == "OVERTIME_BALANCE_SET"))
    assert logs.scalar_one().payload["new"] == 12.5


# ── Vorgesetzten-Übersicht ────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_supervisor_overview(db, admin_user):
    user = await make_user(
        db, "employee", name="Anna Nacht", daily_work_hours=0,
        created_at=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )
    db.add_all([
        _entry(user, "CLOCK_IN", 2024, 7, 15, 6),
        _entry(user, "CLOCK_OUT", 2024, 7, 15, 14),
        # vor Anlage des Benutzers: wird nicht gezählt
        _entry(user, "CLOCK_IN", 2024, 5, 20, 6),
        _entry(user, "CLOCK_OUT", 2024, 5, 20, 14),
    ])
    await db.commit()
    config = AccountingConfig()
    await OvertimeService(db).add_adjustment(admin_user, user, date(2024, 6, 10), 2, "Übertrag", config)

    rows = await OvertimeService(db).supervisor_overview(config, today=date(2024, 7, 20))
    row = next(r for r in rows if r["user_id"] == user.id)
    assert row["overtime_before_current_month"] == 2.0
    assert row["current_month_overtime"] == 7.5
    assert row["total_overtime_hours"] == 9.5


@pytest.mark.asyncio
async def test_supervisor_overview_absence_credit(db):
    user = await make_user(db, "employee", created_at=datetime(2024, 7, 1, tzinfo=timezone.utc))
    # Juli 2024: 23 Arbeitstage Mo–Fr; Urlaub 1.–5.7., krank 8.7.
    db.add(LeaveRequest(
        user_id=user.id, kind="VACATION", status="APPROVED",
        start_date=date(2024, 7, 1), end_date=date(2024, 7, 5),
    ))
    db.add(SickLeave(user_id=user.id, start_date=date(2024, 7, 8), end_date=date(2024, 7, 8)))
    await db.commit()

    rows = await OvertimeService(db).supervisor_overview(AccountingConfig(), today=date(2024, 7, 20))
    row = next(r for r in rows if r["user_id"] == user.id)
    assert row["overtime_before_current_month"] == 0.0
    assert row["current_month_overtime"] == -(23 - 6) * 8.0


@pytest.mark.asyncio
async def test_supervisor_overview_endpoint_rbac(client, employee_user, employee_token, supervisor_user, supervisor_token):
    forbidden = await client.get(f"{BASE}/supervisor-overview", headers=auth_headers(employee_token))
    assert forbidden.status_code == 403

    resp = await client.get(f"{BASE}/supervisor-overview", headers=auth_headers(supervisor_token))
    assert resp.status_code == 200
    assert {r["login_name"] for r in resp.json()} == {"mitarbeiter", "chefin"}


# ── Pausengutschrift ──────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_break_credit(client, db, employee_user, employee_token, supervisor_user, supervisor_token):
    db.add_all([
        _entry(employee_user, "CLOCK_IN", 2024, 6, 3, 8),
        _entry(employee_user, "CLOCK_OUT", 2024, 6, 3, 16),
    ])
    await db.commit()

    resp = await client.post(f"{BASE}/break-credit", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "date": "2024-06-03",
        "minutes": 30,
        "reason": "Pause durchgearbeitet",
    })
    assert resp.status_code == 201

    month = await client.get(
        f"{BASE}/month/{employee_user.id}", params={"year": 2024, "month": 6},
        headers=auth_headers(employee_token),
    )
    assert month.json()["days"][2]["worked_hours"] == 8.0
    assert month.json()["days"][2]["break_credit_minutes"] == 30


@pytest.mark.asyncio
async def test_break_credit_validation(client, employee_user, supervisor_user, supervisor_token):
    for minutes, reason in ((0, "Begründung"), (181, "Begründung"), (30, "kurz")):
        resp = await client.post(f"{BASE}/break-credit", headers=auth_headers(supervisor_token), json={
            "user_id": str(employee_user.id),
            "date": "2024-06-03",
            "minutes": minutes,
            "reason": reason,
        })
        assert resp.status_code == 400, (minutes, reason)


# ── Krankmeldung ──────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_sick_leave_delete_day_splits_range(client, db, employee_user, supervisor_user, supervisor_token):
    created = await client.post(f"{BASE}/sick-leave", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "start_date": "2024-06-03",
        "end_date": "2024-06-07",
    })
    assert created.status_code == 201

    resp = await client.post(f"{BASE}/sick-leave/delete-day", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "date": "2024-06-05",
    })
    assert resp.status_code == 200
    assert resp.json()["affected_rows"] == 1

    result = await db.execute(
        select(SickLeave).where(SickLeave.user_id == employee_user.id).order_by(SickLeave.start_date)
    )
    ranges = [(s.start_date, s.end_date) for s in result.scalars().all()]
    assert ranges == [
        (date(2024, 6, 3), date(2024, 6, 4)),
        (date(2024, 6, 6), date(2024, 6, 7)),
    ]


@pytest.mark.asyncio
async def test_sick_leave_delete_single_day(client, db, employee_user, supervisor_user, supervisor_token):
    await client.post(f"{BASE}/sick-leave", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "start_date": "2024-06-03",
        "end_date": "2024-06-03",
    })
    resp = await client.post(f"{BASE}/sick-leave/delete-day", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "date": "2024-06-03",
    })
    assert resp.status_code == 200

    result = await db.execute(select(SickLeave).where(SickLeave.user_id == employee_user.id))
    assert result.scalars().all() == []


@pytest.mark.asyncio
async def test_sick_leave_delete_day_not_found(client, employee_user, supervisor_user, supervisor_token):
    resp = await client.post(f"{BASE}/sick-leave/delete-day", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "date": "2024-06-03",
    })
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_sick_leave_end_before_start(client, employee_user, supervisor_user, supervisor_token):
    resp = await client.post(f"{BASE}/sick-leave", headers=auth_headers(supervisor_token), json={
        "user_id": str(employee_user.id),
        "start_date": "2024-06-07",
        "end_date": "2024-06-03",
    })
    assert resp.status_code == 400


# ── RFID-Terminal ─────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_terminal_punch_toggles(client, db, monkeypatch):
    monkeypatch.setattr(settings, "TERMINAL_API_KEY", "terminal-geheim")
    user = await make_user(db, "employee", login_name="rfid", rfid_tag="04A1B2C3")

    first = await client.post("/api/v1/terminal/punch", json={
        "terminal_key": "terminal-geheim", "rfid_tag": "04A1B2C3",
    })
    assert first.status_code == 200
    assert first.json()["type"] == "CLOCK_IN"
    assert first.json()["user_id"] == str(user.id)

    second = await client.post("/api/v1/terminal/punch", json={
        "terminal_key": "terminal-geheim", "rfid_tag": "04A1B2C3",
    })
    assert second.status_code == 200
    assert second.json()["type"] == "CLOCK_OUT"

    result = await db.execute(select(TimeEntry).where(TimeEntry.user_id == user.id))
    assert {e.source for e in result.scalars().all()} == {"RFID"}


@pytest.mark.asyncio
async def test_terminal_unknown_tag(client, db, monkeypatch):
    monkeypatch.setattr(settings, "TERMINAL_API_KEY", "terminal-geheim")

    resp = await client.post("/api/v1/terminal/punch", json={
        "terminal_key": "terminal-geheim", "rfid_tag": "FFFFFFFF",
    })
    assert resp.status_code == 404

    logs = await db.execute(select(AuditLog).where(AuditLog.action == "RFID_UNASSIGNED_SCAN"))
    log = logs.scalar_one()
    assert log.actor_login_name == "system"
    assert log.payload == {"rfid_tag": "FFFFFFFF"}


@pytest.mark.asyncio
async def test_terminal_wrong_key(client, monkeypatch):
    monkeypatch.setattr(settings, "TERMINAL_API_KEY", "terminal-geheim")
    resp = await client.post("/api/v1/terminal/punch", json={"terminal_key": "falsch", "rfid_tag": "04A1B2C3"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_terminal_disabled_without_key(client, monkeypatch):
    monkeypatch.setattr(settings, "TERMINAL_API_KEY", "")
    resp = await client.post("/api/v1/terminal/punch", json={"terminal_key": "", "rfid_tag": "04A1B2C3"})
    assert resp.status_code == 401
