"""Pytest fixtures for backend tests."""

import os

# Settings are built at import time; provide a valid signing secret first
TEST_SECRET = "test-signing-secret-0123456789abcdef-0123456789"
os.environ["JWT_SECRET_KEY"] = TEST_SECRET
os.environ.setdefault("ENVIRONMENT", "test")

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from community_connect.core.config import Settings
from community_connect.core.csrf import CSRF_COOKIE_NAME, CSRF_HEADER_NAME
from community_connect.db.base import Base
from community_connect.db.session import get_db
from community_connect.main import create_app
from community_connect.models.user import User
from community_connect.services.credentials import CredentialStore
from community_connect.services.password_policy import PasswordHasher
from community_connect.services.session import SESSION_COOKIE_NAME, SessionIssuer

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "Str0ng!Passw0rd"


def build_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "JWT_SECRET_KEY": TEST_SECRET,
        "BCRYPT_ROUNDS": 4,
        "RATE_LIMIT_BACKEND": "memory",
        # Generous limits; rate limit tests tighten them explicitly
        "LOGIN_RATE_LIMIT": 1000,
        "REGISTER_RATE_LIMIT": 1000,
        "SMTP_HOST": None,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return build_settings()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    return build_settings


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """In-memory SQLite database, shared by every connection of one test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with async_session() as session:
        yield session


@pytest.fixture
def store(test_session: AsyncSession) -> CredentialStore:
    return CredentialStore(test_session)


@pytest.fixture
def password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def session_issuer(settings: Settings) -> SessionIssuer:
    return SessionIssuer(settings)


@pytest.fixture
def make_user(
    test_session: AsyncSession, password_hasher: PasswordHasher
) -> Callable[..., Awaitable[User]]:
    """Factory for users stored directly in the test database."""

    async def _make_user(
        email: str = "member@example.com",
        password: str = TEST_PASSWORD,
        verified: bool = True,
        **fields,
    ) -> User:
        user = User(
            email=email,
            password_hash=password_hasher.hash(password),
            first_name=fields.pop("first_name", "Test"),
            last_name=fields.pop("last_name", "Member"),
            is_email_verified=verified,
            **fields,
        )
        test_session.add(user)
        await test_session.commit()
        await test_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def app(settings: Settings, test_session: AsyncSession) -> FastAPI:
    application = create_app(settings)

    # Override get_db with our test session
    async def override():
        yield test_session

    application.dependency_overrides[get_db] = override
    return application


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an unauthenticated test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def authenticate(session_issuer: SessionIssuer) -> Callable[[AsyncClient, User], str]:
    """
    Put session and CSRF cookies for ``user`` into the client's jar.

    Returns the CSRF token to echo in the header.
    """

    def _authenticate(ac: AsyncClient, user: User) -> str:
        csrf_token = session_issuer.new_csrf_token()
        ac.cookies.set(SESSION_COOKIE_NAME, session_issuer.issue(user.id, user.email))
        ac.cookies.set(CSRF_COOKIE_NAME, csrf_token)
        return csrf_token

    return _authenticate


@pytest.fixture
def csrf_headers() -> Callable[[str], dict[str, str]]:
    def _headers(token: str) -> dict[str, str]:
        return {CSRF_HEADER_NAME: token}

    return _headers


async def solve_captcha(ac: AsyncClient) -> int:
    """Fetch a challenge and read its answer from the cookie jar."""
    response = await ac.get("/api/captcha")
    assert response.status_code == 200
    return int(ac.cookies["captcha-answer"])


@pytest.fixture
def captcha() -> Callable[[AsyncClient], Awaitable[int]]:
    return solve_captcha


@pytest.fixture
def make_client(make_settings, test_session: AsyncSession):
    """Client for an app built with overridden settings, sharing the test database."""

    @asynccontextmanager
    async def _make_client(**overrides) -> AsyncGenerator[AsyncClient, None]:
        application = create_app(make_settings(**overrides))

        async def override():
            yield test_session

        application.dependency_overrides[get_db] = override
        async with AsyncClient(
            transport=ASGITransport(app=application),
            base_url="http://test",
        ) as ac:
            yield ac

    return _make_client
