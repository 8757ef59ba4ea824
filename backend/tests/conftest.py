"""Shared test fixtures.

Database tests run against an in-memory SQLite database (aiosqlite) with
the full schema created per test. Discord is replaced by ``FakeDiscord``
behind an ``httpx.MockTransport``.
"""

import itertools
from collections.abc import AsyncGenerator, Iterator
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from guildlink.core.logging import AppLogger
from guildlink.models.base import Base
from guildlink.providers.config import FetchPolicy
from guildlink.providers.discord.client import DiscordFetchClient
from guildlink.providers.discord.directory import DiscordDirectory
from guildlink.providers.discord.oauth import AppCredentials, DiscordOAuthService
from guildlink.rpc.context import RPCServices
from guildlink.services.account_linking import LinkingCoordinator
from guildlink.services.connection_verifier import ConnectionVerifier
from guildlink.services.verification_flow import VerificationFlowManager

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DISCORD_BASE_URL = "https://discord.test"
TEST_GUILD_ID = "100000000000000001"
TEST_CLIENT_ID = "test-client-id"
# Security: test-only secrets
TEST_CLIENT_SECRET = "test-client-secret"  # nosec B105
TEST_SHARED_SECRET = "test-shared-secret-that-is-at-least-32-chars"  # nosec B105
TEST_REDIRECT_URI = "https://link.test/oauth2/discord/"


class FakeDiscord:
    """In-memory stand-in for Discord's token, user and guild endpoints.

    Codes and refresh tokens are single-use; each token grant rotates the
    refresh token the way Discord does.
    """

    def __init__(self, guild_id: str = TEST_GUILD_ID) -> None:
        self.guild_id = guild_id
        self.usernames: dict[str, str] = {}
        self.members: set[str] = set()
        self.codes: dict[str, str] = {}
        self.refresh_tokens: dict[str, str] = {}
        self.access_tokens: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self._counter = itertools.count(1)

    def add_user(self, discord_id: str, username: str, *, in_guild: bool = True) -> str:
        """Register a user and return a fresh authorization code for them."""
        self.usernames[discord_id] = username
        if in_guild:
            self.members.add(discord_id)
        else:
            self.members.discard(discord_id)
        return self.issue_code(discord_id)

    def issue_code(self, discord_id: str) -> str:
        code = f"code-{next(self._counter)}"
        self.codes[code] = discord_id
        return code

    def leave_guild(self, discord_id: str) -> None:
        self.members.discard(discord_id)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/oauth2/token":
            return self._token(request)
        if path == "/api/oauth2/token/revoke":
            return httpx.Response(200, json={})
        if path == "/api/v10/users/@me":
            return self._profile(request)
        if path == "/api/v10/users/@me/guilds":
            return self._guilds(request)
        return httpx.Response(404, json={"code": 0, "message": "404: Not Found"})

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = dict(parse_qsl(request.content.decode()))
        if form.get("client_secret") != TEST_CLIENT_SECRET:
            return httpx.Response(401, json={"error": "invalid_client"})

        if form.get("grant_type") == "authorization_code":
            discord_id = self.codes.pop(form.get("code", ""), None)
        elif form.get("grant_type") == "refresh_token":
            discord_id = self.refresh_tokens.pop(form.get("refresh_token", ""), None)
        else:
            return httpx.Response(400, json={"error": "unsupported_grant_type"})

        if discord_id is None:
            return httpx.Response(
                400,
                json={"error": "invalid_grant", "error_description": "Invalid grant"},
            )

        n = next(self._counter)
        access_token = f"access-{n}"
        refresh_token = f"refresh-{n}"
        self.access_tokens[access_token] = discord_id
        self.refresh_tokens[refresh_token] = discord_id
        return httpx.Response(
            200,
            json={
                "access_token": access_token,
                "expires_in": 604800,
                "refresh_token": refresh_token,
                "scope": "identify guilds",
                "token_type": "Bearer",
            },
        )

    def _bearer_user(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        return self.access_tokens.get(header.removeprefix("Bearer "))

    def _profile(self, request: httpx.Request) -> httpx.Response:
        discord_id = self._bearer_user(request)
        if discord_id is None:
            return httpx.Response(401, json={"code": 0, "message": "401: Unauthorized"})
        return httpx.Response(
            200,
            json={"id": discord_id, "username": self.usernames[discord_id]},
        )

    def _guilds(self, request: httpx.Request) -> httpx.Response:
        discord_id = self._bearer_user(request)
        if discord_id is None:
            return httpx.Response(401, json={"code": 0, "message": "401: Unauthorized"})
        guilds = [{"id": "200000000000000002", "name": "Elsewhere"}]
        if discord_id in self.members:
            guilds.append({"id": self.guild_id, "name": "Home Guild"})
        return httpx.Response(200, json=guilds)


def record_transaction_state(
    fake_discord: FakeDiscord, db: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> list[bool]:
    """Record whether ``db`` is inside a transaction at each Discord call."""
    observed: list[bool] = []
    for name in ("_token", "_profile", "_guilds"):
        endpoint = getattr(fake_discord, name)

        def recording(request: httpx.Request, endpoint=endpoint) -> httpx.Response:
            observed.append(db.in_transaction())
            return endpoint(request)

        monkeypatch.setattr(fake_discord, name, recording)
    return observed


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory database with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def logger() -> AppLogger:
    return AppLogger.root().child("test")


@pytest.fixture
def fake_discord() -> FakeDiscord:
    return FakeDiscord()


@pytest_asyncio.fixture
async def discord_http(fake_discord: FakeDiscord) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Outbound HTTP client routed to FakeDiscord."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_discord.handler)) as http:
        yield http


@pytest.fixture
def discord_fetch(discord_http: httpx.AsyncClient) -> DiscordFetchClient:
    return DiscordFetchClient(
        discord_http,
        base_url=DISCORD_BASE_URL,
        policy=FetchPolicy(max_retries=1, timeout_budget_ms=2000),
    )


@pytest.fixture
def discord_oauth(discord_fetch: DiscordFetchClient) -> DiscordOAuthService:
    credentials = AppCredentials(
        client_id=TEST_CLIENT_ID,
        client_secret=SecretStr(TEST_CLIENT_SECRET),
        redirect_uri=TEST_REDIRECT_URI,
    )
    return DiscordOAuthService(
        discord_fetch, credentials, authorize_base_url=DISCORD_BASE_URL
    )


@pytest.fixture
def discord_directory(discord_fetch: DiscordFetchClient) -> DiscordDirectory:
    return DiscordDirectory(discord_fetch)


@pytest.fixture
def flow_manager() -> VerificationFlowManager:
    return VerificationFlowManager()


@pytest.fixture
def rpc_services(
    discord_oauth: DiscordOAuthService,
    discord_directory: DiscordDirectory,
    flow_manager: VerificationFlowManager,
) -> RPCServices:
    """Services wired against FakeDiscord."""
    return RPCServices(
        flows=flow_manager,
        oauth=discord_oauth,
        linker=LinkingCoordinator(
            oauth=discord_oauth,
            directory=discord_directory,
            flows=flow_manager,
            guild_id=TEST_GUILD_ID,
        ),
        verifier=ConnectionVerifier(
            oauth=discord_oauth,
            directory=discord_directory,
            guild_id=TEST_GUILD_ID,
        ),
        shared_secret=SecretStr(TEST_SHARED_SECRET),
    )


@pytest_asyncio.fixture
async def client(
    db_engine: AsyncEngine,
    rpc_services: RPCServices,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for the ASGI app.

    Sets up:
    - Test database connection via dependency override
    - RPC services wired against FakeDiscord (lifespan does not run)

    Yields:
        AsyncClient for API requests.
    """
    from guildlink.core.database import get_db
    from guildlink.main import app
    from guildlink.rpc.dispatcher import RPCDispatcher
    from guildlink.rpc.registry import build_default_method_table

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            yield session
            await session.commit()

    app.dependency_overrides[get_db] = override_get_db
    app.state.rpc_services = rpc_services
    app.state.rpc_dispatcher = RPCDispatcher(build_default_method_table())

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable for other tests to avoid
    flaky failures from rate limit triggers.

    Yields:
        None (autouse fixture).
    """
    from guildlink.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled
