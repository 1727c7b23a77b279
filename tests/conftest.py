import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database.base import Base
from app.enums import CaregiverRole, InviteStatus, ScheduleType
from app.models import Child, ChildCaregiver, User
from app.schemas.schedule_schemas import ScheduleConfig


@pytest.fixture
def two_nap_schedule() -> ScheduleConfig:
    return ScheduleConfig(
        type=ScheduleType.TWO_NAP,
        wake_window_1_min=120,
        wake_window_1_max=150,
        wake_window_2_min=150,
        wake_window_2_max=180,
        wake_window_3_min=210,
        wake_window_3_max=240,
        nap1_max_duration=90,
        nap2_max_duration=90,
        bedtime_earliest="18:30",
        bedtime_latest="19:30",
        wake_time_earliest="06:30",
        wake_time_latest="07:30",
    )


@pytest.fixture
def one_nap_schedule() -> ScheduleConfig:
    return ScheduleConfig(
        type=ScheduleType.ONE_NAP,
        wake_window_1_min=300,
        wake_window_1_max=330,
        wake_window_2_min=240,
        wake_window_2_max=300,
        nap1_max_duration=150,
        bedtime_earliest="18:00",
        bedtime_latest="19:30",
        wake_time_earliest="06:30",
        wake_time_latest="07:30",
    )


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        yield session

    await engine.dispose()


async def _user(db, clerk_id: str) -> User:
    user = User(clerk_id=clerk_id, email=f"{clerk_id}@example.com", timezone="UTC")
    db.add(user)
    await db.commit()
    return user


async def _link(db, child: Child, user: User, role: CaregiverRole, status: InviteStatus = InviteStatus.ACCEPTED):
    db.add(ChildCaregiver(child_id=child.id, user_id=user.id, role=role.value, status=status.value, is_active=True))
    await db.commit()


@pytest_asyncio.fixture
async def user(db) -> User:
    return await _user(db, "user_parent")


@pytest_asyncio.fixture
async def child(db, user) -> Child:
    child = Child(name="Ada")
    db.add(child)
    await db.commit()
    await _link(db, child, user, CaregiverRole.ADMIN)
    return child


@pytest_asyncio.fixture
async def viewer(db, child) -> User:
    viewer = await _user(db, "user_viewer")
    await _link(db, child, viewer, CaregiverRole.VIEWER)
    return viewer


@pytest_asyncio.fixture
async def stranger(db) -> User:
    return await _user(db, "user_stranger")


@pytest_asyncio.fixture
async def invited(db, child) -> User:
    invited = await _user(db, "user_invited")
    await _link(db, child, invited, CaregiverRole.CAREGIVER, InviteStatus.PENDING)
    return invited
