import pytest

from overlap.domain.common.errors import ConfigurationFailure
from overlap.infra import postgres
from overlap.settings import settings


class ReadyConnection:
    def __init__(self, version="0001", error=None) -> None:
        self.version = version
        self.error = error
        self.statements = []

    async def execute(self, query: str, *params):
        self.statements.append(query)
        if self.error is not None:
            raise self.error
        return "SELECT 1"

    async def fetchval(self, query: str, *params):
        self.statements.append(query)
        return self.version


class ReadyPool:
    def __init__(self, conn: ReadyConnection) -> None:
        self._conn = conn

    def acquire(self):
        conn = self._conn

        class _Ctx:
            async def __aenter__(self_inner):
                return conn

            async def __aexit__(self_inner, exc_type, exc, tb):
                return False

        return _Ctx()


@pytest.fixture
def ready_pool(monkeypatch):
    def install(conn: ReadyConnection):
        async def fake_get_pool():
            return ReadyPool(conn)

        monkeypatch.setattr(postgres, "get_pool", fake_get_pool)
        return conn

    return install


@pytest.mark.asyncio
async def test_liveness(api_client):
    response = await api_client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_startup_reports_missing_salt(api_client, monkeypatch):
    assert (await api_client.get("/health/startup")).status_code == 200
    monkeypatch.setattr(settings, "hash_salt", "")
    response = await api_client.get("/health/startup")
    assert response.status_code == 503
    assert response.json()["error"] == "hash_salt_missing"


@pytest.mark.asyncio
async def test_metrics_require_admin_token(api_client, monkeypatch):
    monkeypatch.setattr(settings, "obs_metrics_public", False)
    monkeypatch.setattr(settings, "obs_admin_token", "ops-secret")
    denied = await api_client.get("/metrics")
    assert denied.status_code == 403
    allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-secret"})
    assert allowed.status_code == 200
    assert "overlap_http_requests_total" in allowed.text


@pytest.mark.asyncio
async def test_lifespan_refuses_to_start_without_salt(monkeypatch):
    from overlap.main import app, lifespan

    monkeypatch.setattr(settings, "hash_salt", None)
    with pytest.raises(ConfigurationFailure):
        async with lifespan(app):
            pass


@pytest.mark.asyncio
async def test_readiness_ok_when_every_dependency_answers(api_client, ready_pool, monkeypatch):
    monkeypatch.setattr(settings, "health_min_migration", "0001")
    conn = ready_pool(ReadyConnection(version="0001"))
    response = await api_client.get("/health/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["checks"]["redis"]["ok"] is True
    assert body["checks"]["postgres"]["ok"] is True
    assert body["checks"]["migrations"] == {"ok": True, "version": "0001", "required": "0001"}
    assert "SELECT 1" in conn.statements


@pytest.mark.asyncio
async def test_readiness_degraded_when_schema_is_behind(api_client, ready_pool, monkeypatch):
    monkeypatch.setattr(settings, "health_min_migration", "0002")
    ready_pool(ReadyConnection(version="0001"))
    response = await api_client.get("/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["postgres"]["ok"] is True
    assert body["checks"]["migrations"]["ok"] is False


@pytest.mark.asyncio
async def test_readiness_degraded_when_postgres_query_fails(api_client, ready_pool):
    ready_pool(ReadyConnection(error=OSError("connection reset")))
    response = await api_client.get("/health/ready")
    assert response.status_code == 503
    assert response.json()["checks"]["postgres"] == {"ok": False, "error": "OSError"}


@pytest.mark.asyncio
async def test_readiness_degraded_when_pool_is_unavailable(api_client, monkeypatch):
    async def broken_get_pool():
        raise OSError("connection refused")

    monkeypatch.setattr(postgres, "get_pool", broken_get_pool)
    response = await api_client.get("/health/ready")
    assert response.status_code == 503
    checks = response.json()["checks"]
    assert checks["postgres"] == {"ok": False, "error": "OSError"}
    assert checks["migrations"] == {"ok": False, "error": "pool_unavailable"}
