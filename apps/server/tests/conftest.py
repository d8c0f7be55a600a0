"""Shared pytest fixtures for server tests."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator

import httpx
import pytest
from cryptography.fernet import Fernet
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def _ensure_test_environment() -> None:
    """Guarantee a usable database URL and Fernet key before the app loads."""

    os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

    current = os.environ.get("ENCRYPTION_KEY")
    if current:
        try:
            Fernet(current.encode() if isinstance(current, str) else current)
            return
        except ValueError:
            pass

    os.environ["ENCRYPTION_KEY"] = Fernet.generate_key().decode()


_ensure_test_environment()

import main
from forum_sso.api.routes.entry import limiter
from forum_sso.core.security import create_access_token
from forum_sso.db.base import Base
from forum_sso.db.session import get_db
from forum_sso.integrations.oauth.factory import OAuth2ClientFactory
from forum_sso.models.user import User
from forum_sso.schemas.provider import ProviderConfigUpdate
from forum_sso.services.providers import save_provider_config


TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    future=True,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    bind=test_engine,
    autocommit=False,
    autoflush=False,
    future=True,
)

Base.metadata.create_all(bind=test_engine)


class SyncASGITestClient:
    """Synchronous wrapper around httpx.AsyncClient for ASGI apps."""

    def __init__(self, app) -> None:
        transport = httpx.ASGITransport(app=app)
        self._client = httpx.AsyncClient(
            transport=transport,
            base_url="http://testserver",
            follow_redirects=False,
        )

    def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        return asyncio.run(self._client.request(method, url, **kwargs))

    def get(self, url: str, **kwargs) -> httpx.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs) -> httpx.Response:
        return self.request("POST", url, **kwargs)

    def __enter__(self) -> "SyncASGITestClient":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        asyncio.run(self._client.aclose())


@pytest.fixture(autouse=True)
def verify_connection_tracker(monkeypatch: pytest.MonkeyPatch) -> Generator[dict[str, int], None, None]:
    """Track how many times the startup connection verifier is called."""

    tracker = {"calls": 0, "migrations": 0}

    def fake_verify_connection() -> None:
        tracker["calls"] += 1

    def fake_run_migrations() -> None:
        tracker["migrations"] += 1

    monkeypatch.setattr(main, "verify_connection", fake_verify_connection)
    monkeypatch.setattr(main, "run_migrations", fake_run_migrations)
    yield tracker


@pytest.fixture(autouse=True)
def reset_rate_limits() -> Generator[None, None, None]:
    """Start every test with empty rate-limit counters."""

    limiter.reset()
    yield


@pytest.fixture(autouse=True)
def reset_provider_overrides() -> Generator[None, None, None]:
    """Forget per-provider overrides registered by a test."""

    saved = dict(OAuth2ClientFactory._overrides)
    yield
    OAuth2ClientFactory._overrides.clear()
    OAuth2ClientFactory._overrides.update(saved)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    """Provide a clean database session for each test."""

    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    session: Session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def override_get_db(db_session: Session) -> Generator[None, None, None]:
    """Override the FastAPI dependency to use the test session."""

    def _get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            pass

    main.app.dependency_overrides[get_db] = _get_db
    yield
    main.app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def client() -> Generator[SyncASGITestClient, None, None]:
    """Synchronous test client backed by httpx's ASGI transport."""

    with SyncASGITestClient(main.app) as test_client:
        yield test_client


@pytest.fixture()
def other_client() -> Generator[SyncASGITestClient, None, None]:
    """A second browser with its own cookie jar."""

    with SyncASGITestClient(main.app) as test_client:
        yield test_client


@pytest.fixture()
def provider_settings() -> ProviderConfigUpdate:
    """Connection settings of the ``acme`` test provider."""

    return ProviderConfigUpdate(
        client_id="acme-client",
        client_secret="acme-secret",
        authorize_url="https://idp.example.com/oauth/authorize",
        token_url="https://idp.example.com/oauth/token",
        profile_url="https://idp.example.com/api/profile",
        name="Acme ID",
        scope="profile email",
    )


@pytest.fixture()
def acme_provider(db_session: Session, provider_settings: ProviderConfigUpdate):
    """Store and return a fully configured ``acme`` provider."""

    return save_provider_config(db_session, "acme", provider_settings)


@pytest.fixture()
def forum_user(db_session: Session) -> User:
    """Persist a forum member without any provider links."""

    user = User(name="ann", email="ann@example.com")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture()
def auth_headers(forum_user: User) -> dict[str, str]:
    """Bearer headers for ``forum_user``."""

    token = create_access_token(subject=str(forum_user.id))
    return {"Authorization": f"Bearer {token}"}
