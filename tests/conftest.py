# Set environment variables to indicate we're running tests
import os

os.environ["TESTING"] = "True"
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_queueup.db"
os.environ["LOG_FILE"] = "logs/test.log"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from queueup.auth.util import create_actor_token
from queueup.config import logger
from queueup.db.redis import MockRedis, redis_client
from queueup.main import app
from queueup.player.models import Player  # noqa: F401
from queueup.queue.roles import ROLE_ORDER
from queueup.tenant.models import TenantConfig  # noqa: F401

TENANT = "guild-1"

# Same file as the application's async engine, opened synchronously for setup
SYNC_DATABASE_URL = "sqlite:///./test_queueup.db"

engine = create_engine(
    SYNC_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Create test database and tables
@pytest.fixture(scope="function")
def test_db():
    SQLModel.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        SQLModel.metadata.drop_all(bind=engine)


@pytest.fixture
def client(test_db):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_token():
    def _make(actor_id: str, tenant_id: str = TENANT, is_admin: bool = False, name: str = None):
        return create_actor_token(tenant_id, actor_id, name=name, is_admin=is_admin)

    return _make


@pytest.fixture
def auth_header(make_token):
    def _header(actor_id: str, tenant_id: str = TENANT, is_admin: bool = False):
        return {"Authorization": f"Bearer {make_token(actor_id, tenant_id, is_admin)}"}

    return _header


@pytest.fixture
def full_buckets():
    """Two players per role: top1, top2, jungle1, ..."""
    return {role: [f"{role.value.lower()}1", f"{role.value.lower()}2"] for role in ROLE_ORDER}


# Fresh in-memory Redis for every test (autouse to ensure it's always applied)
@pytest.fixture(autouse=True)
def mock_redis():
    redis_client.redis = MockRedis()
    redis_client._connected = True
    yield redis_client.redis
    redis_client.redis = None
    redis_client._connected = False


# Disable logging during tests
@pytest.fixture(autouse=True)
def disable_logging():
    logger.disabled = True
    yield
    logger.disabled = False
