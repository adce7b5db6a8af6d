import socket
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from anonauth.core.clock import FixedClock
from anonauth.core.config import AuthorizationOptions, settings
from anonauth.models.base import Base
from anonauth.services import factory
from anonauth.services.background_tasks import BackgroundTaskRunner
from anonauth.services.client_store import InMemoryClientStore
from anonauth.services.code_store import InMemoryCodeStore
from anonauth.services.issuance_orchestrator import IssuanceOrchestrator
from anonauth.services.issuance_types import Client, DeliveryContext
from anonauth.services.user_codes import UserCodeService
from anonauth.transports.base import Transporter
from anonauth.transports.registry import TransportRegistry

# Use separate test database
TEST_DATABASE_URL = (
    f"postgresql+asyncpg://{settings.database_user}:{settings.database_password}"
    f"@{settings.database_host}:{settings.database_port}"
    f"/{settings.database_name}_test"
)

FROZEN_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)

TEST_CLIENT_ID = "kiosk-app"


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections on port 5432."""
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available."""
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine with the schema in place.

    Skips test if PostgreSQL is not available.
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


# =============================================================================
# Issuance fixtures
# =============================================================================


class RecordingTransporter(Transporter):
    """Transporter that keeps every delivered context in memory."""

    def __init__(self, channel: str) -> None:
        self._channel = channel
        self.sent: list[DeliveryContext] = []

    @property
    def channel(self) -> str:
        return self._channel

    async def send(self, context: DeliveryContext) -> None:
        self.sent.append(context)


@pytest.fixture(autouse=True)
def _reset_service_singletons() -> Iterator[None]:
    """Keep factory singletons from leaking between tests."""
    factory.reset_services()
    yield
    factory.reset_services()


@pytest.fixture
def authorization_options() -> AuthorizationOptions:
    """Options with the built-in defaults."""
    return AuthorizationOptions()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FROZEN_NOW)


@pytest.fixture
def code_store(clock: FixedClock) -> InMemoryCodeStore:
    return InMemoryCodeStore(clock=clock)


@pytest.fixture
def sms_transporter() -> RecordingTransporter:
    return RecordingTransporter("sms")


@pytest.fixture
def email_transporter() -> RecordingTransporter:
    return RecordingTransporter("email")


@pytest.fixture
def transport_registry(
    sms_transporter: RecordingTransporter,
    email_transporter: RecordingTransporter,
) -> TransportRegistry:
    registry = TransportRegistry()
    registry.register(sms_transporter)
    registry.register(email_transporter)
    return registry


@pytest.fixture
def registered_client() -> Client:
    """Registered client with no overrides."""
    return Client(
        client_id=TEST_CLIENT_ID,
        client_name="Kiosk App",
        allowed_scopes=["openid", "profile"],
        redirect_uris=["https://kiosk.example.com/done"],
    )


@pytest.fixture
def background() -> BackgroundTaskRunner:
    return BackgroundTaskRunner()


@pytest.fixture
def orchestrator(
    authorization_options: AuthorizationOptions,
    code_store: InMemoryCodeStore,
    transport_registry: TransportRegistry,
    clock: FixedClock,
    background: BackgroundTaskRunner,
) -> IssuanceOrchestrator:
    return IssuanceOrchestrator(
        options=authorization_options,
        user_code_service=UserCodeService(),
        code_store=code_store,
        transports=transport_registry,
        clock=clock,
        background=background,
    )


# =============================================================================
# API fixtures
# =============================================================================


@pytest_asyncio.fixture
async def api_client(
    orchestrator: IssuanceOrchestrator,
    registered_client: Client,
    authorization_options: AuthorizationOptions,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to in-memory issuance services.

    Rate limiting is disabled so tests can issue freely.
    """
    from anonauth.api.deps import get_authorization_options
    from anonauth.core.rate_limiting import limiter
    from anonauth.main import app

    factory._orchestrator = orchestrator
    factory._client_store = InMemoryClientStore([registered_client])
    app.dependency_overrides[get_authorization_options] = lambda: authorization_options

    original_enabled = limiter.enabled
    limiter.enabled = False
    limiter.reset()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await orchestrator.background.drain()
    limiter.enabled = original_enabled
    app.dependency_overrides.clear()
