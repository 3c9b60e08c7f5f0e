"""
Test configuration and fixtures for Hatch.

Provides shared fixtures for unit and integration tests. Settings are read
at import time, so the environment is prepared before anything from
``hatch_api`` is imported.
"""

import os
import time
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import MagicMock, patch
from uuid import UUID, uuid4

os.environ["SUPABASE_URL"] = "https://testproject.supabase.co"
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-hatch-unit-tests-0123456789"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["ADMIN_EMAILS"] = '["admin@hatch.test"]'
os.environ["ENVIRONMENT"] = "development"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("SUPABASE_PASSWORD", None)

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from hatch_api.domain.events import EventStatus
from hatch_api.domain.tiers import Tier
from hatch_api.infrastructure.db import models  # noqa: F401  (registers tables)
from hatch_api.infrastructure.db.models import ROLE_USER, Event, UserProfile


# Wednesday; the quota week started Monday 2026-10-12 00:00 UTC
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)

ADMIN_EMAIL = "admin@hatch.test"


@pytest.fixture
def now() -> datetime:
    return NOW


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def engine():
    """In-memory SQLite with working SAVEPOINTs."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
def profile_factory(session):
    """Create a profile row directly."""

    async def _create(
        tier: Tier = Tier.FREE,
        expires_at: Optional[datetime] = None,
        role: str = ROLE_USER,
        email: Optional[str] = None,
        user_id: Optional[UUID] = None,
        **fields,
    ) -> UserProfile:
        profile = UserProfile(
            id=user_id or uuid4(),
            email=email,
            role=role,
            subscription_tier=Tier(tier).value,
            subscription_expires_at=expires_at,
            **fields,
        )
        session.add(profile)
        await session.flush()
        return profile

    return _create


@pytest.fixture
def event_factory(session):
    """Create an event row directly; published and free unless told otherwise."""

    async def _create(
        event_date: datetime,
        required_tier: Tier = Tier.FREE,
        status: EventStatus = EventStatus.PUBLISHED,
        title: str = "Community Meetup",
        **fields,
    ) -> Event:
        row = Event(
            title=title,
            event_date=event_date,
            required_tier=Tier(required_tier).value,
            status=EventStatus(status).value,
            **fields,
        )
        session.add(row)
        await session.flush()
        return row

    return _create


# =============================================================================
# Auth Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def no_jwks():
    """Keep JWT verification offline: JWKS always fails, HS256 decides."""
    client = MagicMock()
    client.get_signing_key_from_jwt.side_effect = jwt.exceptions.PyJWKClientError("offline")
    with patch("hatch_api.api.dependencies._get_jwks_client", return_value=client):
        yield client


def make_token(user_id: UUID, email: Optional[str] = None, expires_in: int = 3600) -> str:
    payload = {
        "sub": str(user_id),
        "aud": "authenticated",
        "iss": f"{os.environ['SUPABASE_URL']}/auth/v1",
        "exp": int(time.time()) + expires_in,
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture
def token_for():
    return make_token


@pytest.fixture
def mock_user_id() -> UUID:
    return UUID("aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee")


@pytest.fixture
def auth_headers(mock_user_id):
    return {"Authorization": f"Bearer {make_token(mock_user_id, 'user@hatch.test')}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(uuid4(), ADMIN_EMAIL)}"}


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(session):
    """The FastAPI application, bound to the test session."""
    from hatch_api.infrastructure.db.database import get_session
    from hatch_api.main import app

    async def _test_session():
        yield session

    app.dependency_overrides[get_session] = _test_session
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

