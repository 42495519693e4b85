"""Shared test fixtures — async DB, client, principals, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test secrets before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("SERVICE_ROLE_KEY", "test-service-key")
os.environ.setdefault("ENVIRONMENT", "test")

import hashlib
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from orgmanage.common.constants import Role
from orgmanage.config import settings
from orgmanage.database import Base, get_db
from orgmanage.main import create_app

# Import ALL model modules so every table is on Base.metadata
import orgmanage.announcements.models  # noqa: F401
import orgmanage.auth.models  # noqa: F401
import orgmanage.common.audit  # noqa: F401
import orgmanage.expenses.models  # noqa: F401
import orgmanage.goals.models  # noqa: F401
import orgmanage.it.models  # noqa: F401
import orgmanage.leave.models  # noqa: F401
import orgmanage.notifications.models  # noqa: F401
import orgmanage.profiles.models  # noqa: F401
import orgmanage.sales.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT ────────────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from orgmanage.common.rate_limit import limiter

    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app(session_factory=TestSessionFactory)
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Model factories ─────────────────────────────────────────────────

def _make_profile(
    *,
    email: str | None = None,
    full_name: str = "Test User",
    department: str | None = "Sales",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        email=email or f"user.{uuid.uuid4().hex[:8]}@example.com",
        full_name=full_name,
        department=department,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_transaction(
    user_id: uuid.UUID,
    *,
    day: date = date(2024, 1, 1),
    amount: str | Decimal = "1000.00",
    region: str = "Greater Accra",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        user_id=user_id,
        transaction_id=f"TX-{uuid.uuid4().hex[:8].upper()}",
        date=day,
        region=region,
        sale_amount=Decimal(str(amount)),
        customer_segment="SMB",
        lead_source="Direct",
        status="Closed Won",
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(user_id: uuid.UUID, expired: bool = False) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": str(user_id),
        "type": "access",
        "jti": uuid.uuid4().hex,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def make_principal(db: AsyncSession, *roles: Role, **profile_fields):
    """Insert a profile with *roles* and a live session.

    Returns ``(profile, headers)``; the rows are committed so every
    session sharing the test connection sees them.
    """
    from orgmanage.auth.models import RoleAssignment, UserSession
    from orgmanage.profiles.models import Profile

    profile = Profile(**_make_profile(**profile_fields))
    db.add(profile)
    await db.flush()
    for role in roles:
        db.add(RoleAssignment(user_id=profile.id, role=role))

    token = create_access_token(profile.id)
    db.add(
        UserSession(
            id=uuid.uuid4(),
            user_id=profile.id,
            token_hash=hashlib.sha256(token.encode()).hexdigest(),
            expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
            is_revoked=False,
            created_at=datetime.now(timezone.utc),
        )
    )
    await db.commit()
    return profile, {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def user(db):
    """A principal with no role rows (base ``user`` tier)."""
    return await make_principal(db, full_name="Ama Mensah")


@pytest.fixture
async def ceo(db):
    return await make_principal(db, Role.ceo, full_name="Kofi Boateng")


@pytest.fixture
def mock_google_oauth():
    """Patch verify_google_token to return a fake Google identity."""

    def _mock(email: str = "new.hire@example.com", name: str = "New Hire"):
        google_info = {
            "email": email,
            "name": name,
            "picture": "https://lh3.googleusercontent.com/fake",
            "google_id": f"google-{uuid.uuid4().hex[:12]}",
        }
        return patch(
            "orgmanage.auth.service.verify_google_token",
            new_callable=AsyncMock,
            return_value=google_info,
        )

    return _mock
