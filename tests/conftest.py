"""Shared test fixtures for the pet lifecycle test suite.

Provides:
    - A fresh in-memory SQLite database per test (StaticPool, create_all)
    - Factory functions for creating users and pets
    - A LifecycleCoordinator wired to the test database
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from pet_lifecycle.config import Settings
from pet_lifecycle.domain.enums import UserRole
from pet_lifecycle.domain.policies import Principal
from pet_lifecycle.infrastructure.database.engine import build_session_factory
from pet_lifecycle.infrastructure.database.orm_models import Base, EventLog, Pet, User
from pet_lifecycle.services.coordinator import LifecycleCoordinator
from pet_lifecycle.services.payment_service import SettlementProvider

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite shared by every session of a single test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        settlement_simulate=True,
        settlement_timeout_seconds=1.0,
    )


@pytest.fixture
def coordinator(
    session_factory: async_sessionmaker[AsyncSession], settings: Settings
) -> LifecycleCoordinator:
    return LifecycleCoordinator(
        session_factory,
        settings,
        SettlementProvider(simulate=True, settings=settings),
    )


# ---------------------------------------------------------------------------
# Data Factories
# ---------------------------------------------------------------------------


async def create_user(
    session_factory: async_sessionmaker[AsyncSession],
    role: UserRole = UserRole.USER,
    trust_score: int = 50,
) -> User:
    user = User(
        email=f"{uuid.uuid4().hex[:12]}@example.com",
        display_name="Test User",
        role=role.value,
        trust_score=trust_score,
    )
    async with session_factory() as session, session.begin():
        session.add(user)
    return user


async def create_pet(
    session_factory: async_sessionmaker[AsyncSession],
    owner_id: uuid.UUID | None,
    name: str = "Biscuit",
) -> Pet:
    pet = Pet(
        name=name,
        species="dog",
        breed="beagle",
        age=3,
        description=None,
        current_owner_id=owner_id,
    )
    async with session_factory() as session, session.begin():
        session.add(pet)
    return pet


async def get_user(session_factory: async_sessionmaker[AsyncSession], user_id: uuid.UUID) -> User:
    async with session_factory() as session:
        user = await session.get(User, user_id)
        assert user is not None
        return user


async def get_pet(session_factory: async_sessionmaker[AsyncSession], pet_id: uuid.UUID) -> Pet:
    async with session_factory() as session:
        pet = await session.get(Pet, pet_id)
        assert pet is not None
        return pet


async def count_events(
    session_factory: async_sessionmaker[AsyncSession],
    event_type: str | None = None,
    entity_id: uuid.UUID | None = None,
) -> int:
    stmt = select(func.count()).select_from(EventLog)
    if event_type is not None:
        stmt = stmt.where(EventLog.event_type == event_type)
    if entity_id is not None:
        stmt = stmt.where(EventLog.entity_id == entity_id)
    async with session_factory() as session:
        return (await session.execute(stmt)).scalar_one()


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def owner(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await create_user(session_factory)


@pytest_asyncio.fixture
async def adopter(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await create_user(session_factory)


@pytest_asyncio.fixture
async def admin(session_factory: async_sessionmaker[AsyncSession]) -> User:
    return await create_user(session_factory, role=UserRole.ADMIN)


@pytest_asyncio.fixture
async def pet(session_factory: async_sessionmaker[AsyncSession], owner: User) -> Pet:
    return await create_pet(session_factory, owner.id)


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, role=UserRole(user.role))
