"""Service test fixtures — async DB, seeded accounts, and a FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_db and get_settings dependencies overridden for every route
    - db_manager patched so readiness checks hit the test engine
    - Seed fixtures commit, so route requests on other sessions see the rows

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (ADR: PostgreSQL-specific features not exercised here)
    - Settings built per test with mocks on and a single allowed Alexa client;
      tests flip fields on the fixture instance when they need another mode
"""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

import ganamos.infrastructure.database as db_module
import ganamos.models  # noqa: F401
from ganamos.api.dependencies import create_session_token
from ganamos.config import Settings, get_settings
from ganamos.core.domain_types import MemberRole
from ganamos.db.base import Base
from ganamos.infrastructure.database import get_db, DatabaseSessionManager
from ganamos.main import app
from ganamos.models import Group
from ganamos.services.alexa_auth import generate_token_pair
from tests.services.seed import (
    ALEXA_CLIENT_ID, add_device, add_member, add_profile,
)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        use_mocks=True,
        alexa_client_ids=ALEXA_CLIENT_ID,
        alexa_client_secret=None,
        environment="development",
        app_url="https://ganamos.test",
        google_maps_api_key=None,
        ganamos_api_base_url="http://test/api/alexa",
    )


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session_factory, settings):
    """FastAPI test client with DB and settings dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


# ─── Seed data ───────────────────────────────────────────────────

@pytest.fixture
async def profile(test_db):
    return await add_profile(
        test_db, "Ana Owner", email="ana@example.com", balance=5000,
        pet_coins=300, username="ana",
    )


@pytest.fixture
async def group(test_db, profile):
    group = Group(name="Maple Street", group_code="MAPLE1", created_by=profile.id)
    test_db.add(group)
    await test_db.commit()
    await test_db.refresh(group)
    await add_member(test_db, group, profile, role=MemberRole.ADMIN)
    return group


@pytest.fixture
async def device(test_db, profile):
    return await add_device(test_db, profile)


@pytest.fixture
def auth_headers(profile, settings):
    token = create_session_token(profile.id, settings)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def alexa_headers(test_db, settings, profile, group):
    """Linked Alexa account for `profile` with `group` selected."""
    pair = await generate_token_pair(
        test_db, settings, profile.id, ALEXA_CLIENT_ID, group.id,
    )
    return {"Authorization": f"Bearer {pair.access_token}"}
