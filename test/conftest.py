import os

# Database settings must exist BEFORE any homesocial imports; nothing connects
# unless HOMESOCIAL_TEST_DATABASE_URL is set for the integration tests.
os.environ["HOMESOCIAL_DB_USER"] = "homesocial"
os.environ["HOMESOCIAL_DB_PASSWORD"] = "homesocial"
os.environ["HOMESOCIAL_DATABASE_NAME"] = "homesocial_test"
os.environ["HOMESOCIAL_DB_HOST"] = "localhost"
os.environ["HOMESOCIAL_DB_PORT"] = "5432"
os.environ["RATE_LIMIT_STORAGE_URI"] = "memory://"
os.environ.pop("K_SERVICE", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from fakes import TOKENS, FakeAuthClient, FakeStorage, InMemoryStore
from homesocial.dependencies import get_auth_client, get_broker, get_storage, get_store
from homesocial.main import app
from homesocial.services.feed_service import invalidate_feed_cache
from homesocial.services.thread_broker import ThreadBroker


@pytest.fixture(autouse=True)
def disable_rate_limit():
    app.state.limiter.enabled = False
    yield


@pytest.fixture(autouse=True)
def clear_feed_cache():
    invalidate_feed_cache()
    yield
    invalidate_feed_cache()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def broker():
    return ThreadBroker()


@pytest.fixture
def auth_client():
    return FakeAuthClient(TOKENS)


@pytest.fixture
def overrides(store, storage, broker, auth_client):
    """Point every route dependency at the in-memory fakes."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_broker] = lambda: broker
    app.dependency_overrides[get_auth_client] = lambda: auth_client
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(overrides):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
