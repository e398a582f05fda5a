import os

import pytest

# Set test environment variables before any backend module reads settings
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["USE_MOCK_SMS"] = "false"

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from backend.app.db.base import Base
from backend.app.models import User

# SHA-1("password123") split for k-anonymity
PASSWORD = "password123"
PREFIX = "CBFDA"
SUFFIX = "C6008F9CAB4083784CBD1874F76618D2A97"
DIGEST = PREFIX + SUFFIX


def range_body(*lines: str) -> str:
    """Build a Pwned Passwords range response from SUFFIX:COUNT lines."""
    filler = [
        "0018A45C4D1DEF81644B54AB7F969B88D65:1",
        "00D4F6E8FA6EECAD2A3AA415EEC418D38EC:2",
    ]
    return "\r\n".join(filler + list(lines))


def range_transport(body: str, status_code: int = 200, calls: list | None = None):
    """httpx transport answering every request with the given range body."""

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, text=body)

    return httpx.MockTransport(handler)


@pytest.fixture
async def test_engine(tmp_path):
    """Temporary file-backed SQLite database, one per test."""
    db_path = tmp_path / "breachwatch_test.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{db_path}",
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db):
    """Factory creating committed users with notification preferences."""
    counter = {"n": 0}

    async def _make_user(
        email_enabled: bool = True,
        sms_enabled: bool = False,
        phone: str | None = None,
        frequency: str = "immediate",
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=f"user{n}",
            email=f"user{n}@example.com",
            phone=phone,
            notify_email=email_enabled,
            notify_sms=sms_enabled,
            notify_push=True,
            notify_frequency=frequency,
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user

    return _make_user


@pytest.fixture
async def user(make_user):
    return await make_user(phone="+15551234567")


@pytest.fixture
async def other_user(make_user):
    return await make_user()
