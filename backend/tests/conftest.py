"""
Shared pytest fixtures for Stempel backend tests.

Uses SQLite in-memory with StaticPool so all sessions share one connection,
meaning data written in one session is visible to others (important for HTTP client tests).
"""
import uuid
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

import app.models  # noqa – registers all SQLAlchemy models with Base.metadata
from app.core.database import Base, get_db
from app.core.security import hash_password, create_access_token
from app.main import app
from app.models.user import User
from app.services.time_accounting import AccountingConfig

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ── Shared engine (function-scoped: fresh DB per test) ───────────────────────

@pytest_asyncio.fixture
async def engine():
    """Creates a fresh in-memory SQLite engine per test with a shared connection pool."""
    eng = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,          # single shared connection → all sessions see same data
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield eng

    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncSession:
    """Async DB session for direct data inspection inside tests."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


# ── HTTP client fixture ───────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(engine) -> AsyncClient:
    """
    FastAPI test client with get_db overridden to use the test engine.
    Each request gets its own session (proper handling) but shares the same
    underlying connection via StaticPool.
    """
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()


# ── User fixtures ─────────────────────────────────────────────────────────────

async def make_user(db, role: str = "employee", **fields) -> User:
    """Legt einen Benutzer an; fields überschreiben die Standardwerte."""
    data = dict(
        id=uuid.uuid4(),
        login_name=f"{role}-{uuid.uuid4().hex[:8]}",
        name=f"Test {role.title()}",
        hashed_password=hash_password("testpass123"),
        role=role,
        is_active=True,
        annual_vacation_days=30,
        carry_over_vacation_days=0,
        overtime_balance_hours=0,
        time_tracking_enabled=True,
        created_at=datetime.now(timezone.utc),
    )
    data.update(fields)
    u = User(**data)
    db.add(u)
    await db.commit()
    await db.refresh(u)
    return u


@pytest_asyncio.fixture
async def admin_user(db) -> User:
    return await make_user(db, "admin", login_name="admin")


@pytest_asyncio.fixture
async def supervisor_user(db) -> User:
    return await make_user(db, "supervisor", login_name="chefin")


@pytest_asyncio.fixture
async def employee_user(db) -> User:
    return await make_user(db, "employee", login_name="mitarbeiter")


@pytest_asyncio.fixture
def admin_token(admin_user) -> str:
    return create_access_token(admin_user.id, "admin")


@pytest_asyncio.fixture
def supervisor_token(supervisor_user) -> str:
    return create_access_token(supervisor_user.id, "supervisor")


@pytest_asyncio.fixture
def employee_token(employee_user) -> str:
    return create_access_token(employee_user.id, "employee")


@pytest.fixture
def config() -> AccountingConfig:
    return AccountingConfig()


# ── Helper ────────────────────────────────────────────────────────────────────

def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
