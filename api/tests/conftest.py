"""Pytest configuration and fixtures."""

import asyncio
import os
from collections.abc import AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set test environment before importing app
os.environ["JWT_SECRET"] = "test-jwt-secret"

from app.auth import create_access_token
from app.auth.rate_limit import limiter
from app.db.base import Base
from app.db.session import get_db
from app.email.disposable import DisposableDomainCache, get_disposable_cache
from app.main import app
from app.webhooks.dispatcher import WebhookDispatcher
from app.webhooks.registry import EndpointRegistry
from app.webhooks.service import WebhookService, get_webhook_service

DISPOSABLE_DOMAINS = ["mailinator.com", "tempmail.dev", "yopmail.com"]


class WebhookReceiver:
    """Stand-in for subscriber servers, served through httpx.MockTransport."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._rules: dict[str, Callable] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def respond(self, url: str, status_code: int = 200, text: str = "ok") -> None:
        self._rules[url] = lambda request: httpx.Response(status_code, text=text)

    def fail(self, url: str, message: str = "Connection refused") -> None:
        def handler(request):
            raise httpx.ConnectError(message, request=request)

        self._rules[url] = handler

    def hang(self, url: str, seconds: float = 5.0) -> None:
        async def handler(request):
            await asyncio.sleep(seconds)
            return httpx.Response(200)

        self._rules[url] = handler

    def requests_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        rule = self._rules.get(str(request.url))
        if rule is None:
            return httpx.Response(200, text="ok")
        response = rule(request)
        if asyncio.iscoroutine(response):
            response = await response
        return response


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create test database engine.

    File-backed so concurrent deliveries can each open their own connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def receiver():
    return WebhookReceiver()


@pytest.fixture
def dispatcher(session_factory, receiver):
    return WebhookDispatcher(session_factory, transport=receiver.transport)


@pytest.fixture
def webhook_service(session_factory, dispatcher):
    return WebhookService(session_factory, dispatcher)


@pytest.fixture
def create_endpoint(session_factory):
    """Register an endpoint through the registry."""

    async def _create(url: str, events: list[str], is_active: bool = True, description=None):
        async with session_factory() as session:
            return await EndpointRegistry(session).create(
                url=url, events=events, description=description, is_active=is_active
            )

    return _create


@pytest.fixture
def disposable_cache():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=DISPOSABLE_DOMAINS))
    return DisposableDomainCache(url="https://lists.example.com/domains.json", transport=transport)


@pytest_asyncio.fixture
async def client(
    session_factory, webhook_service, disposable_cache
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with mocked dependencies."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_webhook_service] = lambda: webhook_service
    app.dependency_overrides[get_disposable_cache] = lambda: disposable_cache

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
    limiter.reset()


@pytest.fixture
def admin_headers():
    token = create_access_token("admin-1", email="admin@example.com", role="admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_headers():
    """Build auth headers for an arbitrary role and scope set."""

    def _make(role: str, scopes: list[str] | None = None):
        token = create_access_token(f"{role}-1", role=role, scopes=scopes)
        return {"Authorization": f"Bearer {token}"}

    return _make
