"""Pytest configuration.

Points the settings at an in-memory SQLite database before the app is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from app.core.db import Base, get_db
from app.core.security import hash_password, create_access_token
from app.models.auth import User
from app.models.domain import Member, DuesAllocation
from app.models.settings import SystemSettings
from app.core.permissions import ROLE_PERMISSIONS_KEY
from main import app


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _create_user(db: AsyncSession, phone: str, role: str, full_name: str) -> User:
    user = User(
        phone=phone,
        full_name=full_name,
        hashed_password=hash_password("secret123"),
        role=role,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest_asyncio.fixture
async def admin_user(db):
    return await _create_user(db, "+233200000001", "admin", "Ama Admin")


@pytest_asyncio.fixture
async def treasurer_user(db):
    return await _create_user(db, "+233200000002", "Union Treasurer", "Kofi Treasurer")


@pytest_asyncio.fixture
async def member_user(db):
    return await _create_user(db, "+233200000003", "member", "Esi Member")


@pytest_asyncio.fixture
async def treasurer_permissions(db):
    """Treasurer may collect payments, add dues and withdraw; everyone may add contributions."""
    row = SystemSettings(
        key=ROLE_PERMISSIONS_KEY,
        value={
            "all": {"addContribution": 1},
            "Union Treasurer": {"collectPayments": 1, "addDues": 1, "makeWithdrawal": 1},
        },
    )
    db.add(row)
    await db.commit()
    return row


@pytest_asyncio.fixture
async def allocation_2024(db):
    allocation = DuesAllocation(year=2024, regular_amount=10, executive_amount=20)
    db.add(allocation)
    await db.commit()
    await db.refresh(allocation)
    return allocation


@pytest_asyncio.fixture
async def members(db):
    regular = Member(full_name="Yaw Regular", is_executive=False)
    executive = Member(full_name="Akua Executive", is_executive=True)
    db.add_all([regular, executive])
    await db.commit()
    await db.refresh(regular)
    await db.refresh(executive)
    return regular, executive


@pytest.fixture
def headers():
    return auth_headers
