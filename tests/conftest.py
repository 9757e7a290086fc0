"""Pytest fixtures for healthauth tests."""

import os

# Cheap hashing for tests; must be set before healthauth.core.security builds its context
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DEBUG", "true")

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import healthauth.models  # noqa: F401
from healthauth.db.base import Base
from healthauth.db.session import Database
from healthauth.models.otp_code import OTPPurpose
from healthauth.models.user import User
from healthauth.services.attempts import AttemptLog
from healthauth.services.auth import AuthService
from healthauth.services.credentials import CredentialStore
from healthauth.services.lockout import LockoutPolicy
from healthauth.services.otp import OTPIssuer
from healthauth.services.password_history import PasswordHistory
from healthauth.services.password_reset import PasswordResetFlow
from healthauth.services.sessions import SessionManager

TEST_PASSWORD = "Str0ng!Pass1234"


class FakeClock:
    """Controllable clock; tests move time instead of sleeping."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingDelivery:
    """Keeps every outbound message so tests can read codes and tokens back."""

    def __init__(self):
        self.codes: list[tuple[str, str, OTPPurpose]] = []
        self.reset_links: list[tuple[str, str, bool]] = []

    async def send_otp(self, email: str, code: str, purpose: OTPPurpose) -> None:
        self.codes.append((email, code, purpose))

    async def send_password_reset(self, email: str, token: str, setup: bool = False) -> None:
        self.reset_links.append((email, token, setup))

    def last_code(self, purpose: OTPPurpose) -> str:
        return [code for _, code, p in self.codes if p == purpose][-1]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def database(test_engine) -> Database:
    return Database(async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False))


@pytest_asyncio.fixture(scope="function")
async def test_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Plain session for arranging and inspecting rows directly."""
    async with database.session_maker() as session:
        yield session


@pytest.fixture
def history(database, clock) -> PasswordHistory:
    return PasswordHistory(database, clock=clock)


@pytest.fixture
def credentials(database, history, clock) -> CredentialStore:
    return CredentialStore(database, history=history, clock=clock)


@pytest.fixture
def lockout(database, clock) -> LockoutPolicy:
    return LockoutPolicy(database, clock=clock, threshold=5, lockout_minutes=30)


@pytest.fixture
def attempts(database, clock) -> AttemptLog:
    return AttemptLog(database, clock=clock, window_minutes=60)


@pytest.fixture
def otp_issuer(database, attempts, clock) -> OTPIssuer:
    return OTPIssuer(database, attempts=attempts, clock=clock)


@pytest.fixture
def session_manager(database, clock) -> SessionManager:
    return SessionManager(database, clock=clock, ttl_hours=4, inactivity_minutes=30)


@pytest.fixture
def resets(database, history, session_manager, lockout, clock) -> PasswordResetFlow:
    return PasswordResetFlow(
        database,
        history=history,
        sessions=session_manager,
        lockout=lockout,
        clock=clock,
        token_expire_minutes=60,
        revoke_sessions=True,
    )


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def auth_service(database, delivery, clock) -> AuthService:
    return AuthService(
        database,
        delivery=delivery,
        clock=clock,
        require_login_otp=True,
        max_failed_code_attempts=5,
    )


@pytest_asyncio.fixture(scope="function")
async def test_user(credentials: CredentialStore) -> User:
    """Verified user with a password."""
    return await credentials.create_user(
        "user@example.com",
        "Test",
        "User",
        password=TEST_PASSWORD,
        is_verified=True,
    )


@pytest_asyncio.fixture(scope="function")
async def legacy_user(credentials: CredentialStore) -> User:
    """Verified user with no password; signs in by one-time code only."""
    return await credentials.create_user("legacy@example.com", "Legacy", "User", is_verified=True)
