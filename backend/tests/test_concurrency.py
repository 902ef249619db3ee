"""
Gleichzeitige Buchungen für denselben Benutzer: genau eine gewinnt.

Jede Buchung läuft in einer eigenen Session auf einer SQLite-Datei, wie
zwei parallele HTTP-Requests.
"""
import asyncio
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.core.database import Base
from app.core.exceptions import ConflictError
from app.models.leave import LeaveRequest
from app.models.time_entry import TimeEntry, BreakCreditRequest
from app.models.user import User
from app.services.break_credit_service import BreakCreditService
from app.services.leave_service import LeaveService
from app.services.time_accounting import AccountingConfig
from tests.conftest import make_user


@pytest_asyncio.fixture
async def sessions(tmp_path):
    eng = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'stempel.db'}",
        connect_args={"timeout": 30},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(eng, class_=AsyncSession, expire_on_commit=False)

    await eng.dispose()


async def _run_twice(booking):
    results = await asyncio.gather(booking(), booking(), return_exceptions=True)
    successes = [r for r in results if not isinstance(r, BaseException)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    return successes, conflicts


@pytest.mark.asyncio
async def test_parallel_leave_requests(sessions):
    async with sessions() as setup:
        user = await make_user(setup, "employee")
    config = AccountingConfig()

    async def book():
        async with sessions() as session:
            own = await session.get(User, user.id)
            return await LeaveService(session).create_request(
                own, "VACATION", date(2030, 3, 4), date(2030, 3, 8), None, config,
            )

    successes, conflicts = await _run_twice(book)
    assert len(successes) == 1
    assert len(conflicts) == 1

    async with sessions() as check:
        rows = (await check.execute(select(LeaveRequest))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_parallel_break_credit_requests(sessions):
    async with sessions() as setup:
        user = await make_user(setup, "employee")
        setup.add_all([
            TimeEntry(user_id=user.id, type="CLOCK_IN", source="WEB",
                      occurred_at=datetime(2024, 6, 3, 8, tzinfo=timezone.utc)),
            TimeEntry(user_id=user.id, type="CLOCK_OUT", source="WEB",
                      occurred_at=datetime(2024, 6, 3, 16, tzinfo=timezone.utc)),
        ])
        await setup.commit()
    config = AccountingConfig()

    async def book():
        async with sessions() as session:
            own = await session.get(User, user.id)
            return await BreakCreditService(session).create_request(
                own, date(2024, 6, 3), 30, "Pause durchgearbeitet", config,
            )

    successes, conflicts = await _run_twice(book)
    assert len(successes) == 1
    assert len(conflicts) == 1

    async with sessions() as check:
        rows = (await check.execute(select(BreakCreditRequest))).scalars().all()
    assert len(rows) == 1
