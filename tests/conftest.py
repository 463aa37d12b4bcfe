import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models import CareTask, Plant, User, UserNotificationPreferences

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")


def _make_engine():
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared in-memory database per test
        return create_async_engine(
            TEST_DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(TEST_DATABASE_URL, poolclass=NullPool)


@pytest_asyncio.fixture
async def engine():
    engine = _make_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def client(db: AsyncSession):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(db: AsyncSession):
    counter = 0

    async def _make_user(email: str | None = None, tz: str = "UTC") -> User:
        nonlocal counter
        counter += 1
        user = User(
            external_id=f"idp_user_{counter}",
            email=email or f"grower{counter}@example.com",
            timezone=tz,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


@pytest_asyncio.fixture
async def user(make_user) -> User:
    return await make_user("owner@example.com")


@pytest_asyncio.fixture
async def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.external_id)}"}


@pytest_asyncio.fixture
async def make_plant(db: AsyncSession):
    async def _make_plant(owner: User, name: str = "Monstera") -> Plant:
        plant = Plant(user_id=owner.id, name=name)
        db.add(plant)
        await db.commit()
        await db.refresh(plant)
        return plant

    return _make_plant


@pytest_asyncio.fixture
async def make_task(db: AsyncSession):
    async def _make_task(
        plant: Plant,
        next_due_date: datetime | None,
        title: str = "Water",
        task_type: str = "water",
        frequency: int | None = 7,
        unit: str | None = "days",
    ) -> CareTask:
        task = CareTask(
            plant_id=plant.id,
            user_id=plant.user_id,
            type=task_type,
            title=title,
            is_recurring=frequency is not None,
            recurrence_frequency=frequency,
            recurrence_unit=unit,
            next_due_date=next_due_date,
        )
        db.add(task)
        await db.commit()
        await db.refresh(task)
        return task

    return _make_task


@pytest_asyncio.fixture
async def make_prefs(db: AsyncSession):
    async def _make_prefs(owner: User, **fields) -> UserNotificationPreferences:
        prefs = UserNotificationPreferences(user_id=owner.id, **fields)
        db.add(prefs)
        await db.commit()
        await db.refresh(prefs)
        return prefs

    return _make_prefs


@pytest.fixture
def noon() -> datetime:
    """Midday UTC today, outside the default 21-9 quiet hours."""
    return datetime.now(timezone.utc).replace(hour=12, minute=0, second=0, microsecond=0)
