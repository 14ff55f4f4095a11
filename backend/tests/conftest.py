import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
TESTS_ROOT = Path(__file__).resolve().parent
for path in (BACKEND_ROOT, TESTS_ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from memory_store import (  # noqa: E402
    MemoryChatRepository,
    MemoryOverlapRepository,
    MemoryProfileRepository,
    MemoryStore,
)
from overlap.api import chat as chat_api  # noqa: E402
from overlap.api import overlap as overlap_api  # noqa: E402
from overlap.api import profile as profile_api  # noqa: E402
from overlap.domain.chat.service import ChatService  # noqa: E402
from overlap.domain.overlap.service import OverlapService  # noqa: E402
from overlap.domain.profiles.service import ProfileService  # noqa: E402
from overlap.infra import postgres  # noqa: E402
from overlap.main import app  # noqa: E402
from overlap.settings import settings  # noqa: E402

TEST_SALT = "test-salt"
TEST_JWT_SECRET = "test-jwt-secret-for-overlap-suite-0123456789"


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
    from overlap.infra.redis import redis_client, set_redis_client

    original = redis_client._client
    client = FakeRedis(decode_responses=True)
    set_redis_client(client)
    try:
        yield client
    finally:
        set_redis_client(original)
        await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
    async def _noop():
        return None

    monkeypatch.setattr(postgres, "init_pool", _noop)
    monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings(monkeypatch):
    """Ensure a consistent test environment.

    Most API tests authenticate via X-User-Id headers, which are only accepted
    in dev mode.
    """
    monkeypatch.setattr(settings, "environment", "dev")
    monkeypatch.setattr(settings, "hash_salt", TEST_SALT)
    monkeypatch.setattr(settings, "auth_jwt_secret", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "auth_jwt_issuer", None)
    monkeypatch.setattr(settings, "tier_toggle_enabled", True)
    monkeypatch.setattr(settings, "declare_rate_per_minute", 20)
    monkeypatch.setattr(settings, "chat_rate_per_minute", 30)
    yield


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def profile_service(store):
    return ProfileService(repository=MemoryProfileRepository(store))


@pytest.fixture
def overlap_service(store, profile_service):
    return OverlapService(repository=MemoryOverlapRepository(store), profiles=profile_service)


@pytest.fixture
def chat_service(store):
    return ChatService(repository=MemoryChatRepository(store))


@pytest.fixture
def memory_services(monkeypatch, overlap_service, profile_service, chat_service):
    monkeypatch.setattr(overlap_api, "_service", overlap_service)
    monkeypatch.setattr(profile_api, "_service", profile_service)
    monkeypatch.setattr(chat_api, "_service", chat_service)
    return overlap_service, profile_service, chat_service


@pytest_asyncio.fixture
async def api_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client