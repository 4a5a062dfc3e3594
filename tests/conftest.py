"""Test configuration and fixtures."""

import re
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field

import pytest
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from wynngrid_accounts.accounts import AccountLifecycleManager, SqlAccountStore
from wynngrid_accounts.config import settings
from wynngrid_accounts.errors import DeliveryError
from wynngrid_accounts.federated import FederatedIdentity, VerificationError
from wynngrid_accounts.models import Base, User

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Create test engine with static pool to share connection
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

VALID_PASSWORD = "Abc123!"


@dataclass
class SentMessage:
    """A message captured by the fake notifier."""

    to: str
    subject: str
    body: str


@dataclass
class FakeNotifier:
    """Notifier that records messages instead of sending them."""

    fail: bool = False
    sent: list[SentMessage] = field(default_factory=list)

    async def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise DeliveryError("SMTP connection refused")
        self.sent.append(SentMessage(to=to, subject=subject, body=body))

    def last_code(self, to: str) -> str:
        """Return the code from the most recent message to an address."""
        for message in reversed(self.sent):
            if message.to == to:
                match = re.search(r"(\d{6})$", message.body)
                assert match, f"No code in message body: {message.body!r}"
                return match.group(1)
        raise AssertionError(f"No message sent to {to}")


class FakeVerifier:
    """Federated verifier resolving known tokens to fixed identities."""

    def __init__(self) -> None:
        self.identities: dict[str, FederatedIdentity] = {}

    async def verify(self, token: str) -> FederatedIdentity:
        identity = self.identities.get(token)
        if identity is None:
            raise VerificationError("Invalid Google ID token")
        return identity


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the cheapest bcrypt cost factor in tests."""
    monkeypatch.setattr(settings, "bcrypt_rounds", 4)


@pytest.fixture(autouse=True)
async def setup_database() -> AsyncGenerator[None, None]:
    """Set up and tear down database for each test."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return TestSessionLocal


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session for tests."""
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> SqlAccountStore:
    """Identity store on the test session."""
    return SqlAccountStore(db_session)


@pytest.fixture
def notifier() -> FakeNotifier:
    """Notifier capturing outgoing messages."""
    return FakeNotifier()


@pytest.fixture
def verifier() -> FakeVerifier:
    """Federated verifier with no known tokens."""
    return FakeVerifier()


@pytest.fixture
def manager(
    store: SqlAccountStore, notifier: FakeNotifier, verifier: FakeVerifier
) -> AccountLifecycleManager:
    """Lifecycle manager wired to test collaborators."""
    return AccountLifecycleManager(store, notifier, verifier)


@pytest.fixture
async def pending_user(manager: AccountLifecycleManager) -> User:
    """An account that signed up but has not verified its email."""
    return await manager.signup("Ada", "Lovelace", "ada@example.com", VALID_PASSWORD)


@pytest.fixture
async def verified_user(
    manager: AccountLifecycleManager,
    notifier: FakeNotifier,
    store: SqlAccountStore,
    pending_user: User,
) -> User:
    """An account that completed email verification."""
    await manager.verify_otp(pending_user.email, notifier.last_code(pending_user.email))
    user = await store.get_by_email(pending_user.email)
    assert user is not None
    return user
