"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database per test (async engine + session)
- Recording mail and push senders
- CredentialManager wired to the test session
- HTTPX AsyncClient with dependencies overridden
"""
import os

# Must be set before app.config is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SMTP_USERNAME"] = ""
os.environ["FCM_ACCESS_TOKEN"] = ""

from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.database import Base, get_db
from app.dependencies import get_hasher, get_mailer, get_push_sender
from app.errors import MailDeliveryError, PushDeliveryError
from app.main import app
from app.models.user import User
from app.services.account_store import AccountStore
from app.services.credentials import CredentialManager
from app.services.security import PasswordHasher

PASSWORD = "s3cret-pass"


# =============================================================================
# Fakes
# =============================================================================

class RecordingMailer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[tuple] = []

    async def send(self, recipient_email: str, subject: str, html_body: str) -> None:
        if self.fail:
            raise MailDeliveryError("smtp relay unavailable")
        self.sent.append((recipient_email, subject, html_body))


class RecordingPushSender:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[tuple] = []

    async def send(self, push_address: str, payload: dict) -> None:
        if self.fail:
            raise PushDeliveryError("UNREGISTERED")
        self.sent.append((push_address, payload))


class SequenceIssuer:
    """Token issuer returning preset values, then unique ones."""

    def __init__(self, *tokens: str):
        self.tokens = list(tokens)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.tokens:
            return self.tokens.pop(0)
        return f"generated-token-{self.calls}"


# =============================================================================
# Database Fixtures
# =============================================================================

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


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db) -> AccountStore:
    return AccountStore(db)


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def push_sender() -> RecordingPushSender:
    return RecordingPushSender()


@pytest.fixture
def manager(store, hasher, mailer) -> CredentialManager:
    return CredentialManager(store, hasher, mailer)


@pytest.fixture
def manager_with_tokens(store, hasher, mailer):
    """CredentialManager whose issuer yields the given tokens first."""

    def _build(*tokens: str, max_token_attempts: int = 3) -> CredentialManager:
        return CredentialManager(
            store,
            hasher,
            mailer,
            token_issuer=SequenceIssuer(*tokens),
            max_token_attempts=max_token_attempts,
        )

    return _build


@pytest.fixture
def make_user(store, hasher):
    """Create an account directly in the store."""

    async def _make_user(
        email: str = "ann@example.com",
        name: str = "Ann",
        password: str = PASSWORD,
        active: bool = True,
        fcm_token: Optional[str] = None,
    ) -> User:
        return await store.create(
            email=email,
            name=name,
            password_hash=hasher.hash(password),
            active=active,
            fcm_token=fcm_token,
        )

    return _make_user


# =============================================================================
# HTTP Client
# =============================================================================

@pytest_asyncio.fixture
async def client(session_factory, hasher, mailer, push_sender) -> AsyncGenerator[AsyncClient, None]:
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_hasher] = lambda: hasher
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_push_sender] = lambda: push_sender

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Log in through the API and return Authorization headers."""

    async def _login(email: str, password: str = PASSWORD, fcm_token: Optional[str] = None) -> dict:
        body = {"email": email, "password": password}
        if fcm_token:
            body["fcmToken"] = fcm_token
        response = await client.post("/api/auth/login", json=body)
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
