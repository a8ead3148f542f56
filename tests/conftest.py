"""Shared pytest fixtures and configuration."""

import asyncio
import os
from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Keep the module-level engine in database.database away from the working tree
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "text")

from api.auth import hash_password
from api.main import create_app
from config import Config
from database.crud import CRUDUser
from database.database import build_engine, build_sessionmaker, init_db
from models import Role

ADMIN_EMAIL = "admin@portal.test"
ADMIN_PASSWORD = "admin-secret"


def _sqlite_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'portal-test.db'}"


@pytest.fixture(autouse=True)
def keep_log_capture(monkeypatch):
    """App startup must not replace the root handlers pytest captures logs with."""
    monkeypatch.setattr("api.main.setup_logging", Mock())


@pytest.fixture
def test_config(tmp_path) -> Config:
    """Config with fake media host credentials and no automatic sweeps."""
    return Config(
        database_url=_sqlite_url(tmp_path),
        api_base_url="http://api.portal.test",
        cloud_name="demo",
        cloud_api_key="key123",
        cloud_api_secret="secret",
        upload_preset="mauritius",
        media_upload_url="http://media.portal.test",
        expiration_mode="off",
        log_format="text",
    )


@pytest_asyncio.fixture
async def engine(test_config):
    """File-backed SQLite engine with the schema created."""
    engine = build_engine(test_config.database_url)
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_sessionmaker(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def agent(db):
    return await CRUDUser.create(db, email="agent@portal.test", password_hash="x", role=Role.AGENT.value)


def build_client(config: Config):
    app = create_app(config, build_engine(config.database_url))
    media = Mock()
    media.destroy = AsyncMock(return_value=True)
    app.state.media = media
    return TestClient(app)


@pytest.fixture
def make_client():
    return build_client


@pytest.fixture
def client(test_config):
    """TestClient over a fresh app; the media host is mocked out."""
    with build_client(test_config) as test_client:
        yield test_client


@pytest.fixture
def register(client):
    """Register a user and return (token, user) from the response."""

    def _register(email: str, role: str = Role.AGENT.value, password: str = "password123"):
        resp = client.post(
            "/api/auth/register",
            json={"email": email, "password": password, "first_name": "Test", "last_name": "User", "role": role},
        )
        assert resp.status_code == 200, resp.text
        body = resp.json()
        return body["token"], body["user"]

    return _register


@pytest.fixture
def admin_token(client, test_config):
    """Seed an admin directly in the database and log in through the API."""

    async def _seed():
        seed_engine = build_engine(test_config.database_url)
        async with build_sessionmaker(seed_engine)() as db:
            await CRUDUser.create(
                db,
                email=ADMIN_EMAIL,
                password_hash=hash_password(ADMIN_PASSWORD, iterations=1000),
                role=Role.ADMIN.value,
            )
        await seed_engine.dispose()

    asyncio.run(_seed())
    resp = client.post("/api/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]
