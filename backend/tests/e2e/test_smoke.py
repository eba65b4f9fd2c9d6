import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from collartrack.core.config import Settings
from collartrack.main import create_app


@pytest.mark.asyncio
async def test_root_describes_usage(client: AsyncClient):
    r = await client.get("/")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert "/collar" in body["msg"]


@pytest.mark.asyncio
async def test_health_endpoint(client: AsyncClient):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "database": "up"}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client: AsyncClient):
    r = await client.get("/does/not/exist")
    assert r.status_code == 404
    assert r.json()["ok"] is False


@pytest.mark.asyncio
async def test_cors_preflight_allows_any_origin_by_default(client: AsyncClient):
    r = await client.options(
        "/ingest",
        headers={"Origin": "https://dashboard.example", "Access-Control-Request-Method": "GET"},
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] in ("*", "https://dashboard.example")
    assert "GET" in r.headers["access-control-allow-methods"]


@pytest.mark.asyncio
async def test_cors_allow_list_only_echoes_listed_origins(database):
    settings = Settings(database_url=database.url, cors_origin="https://vet.example,https://owner.example")
    app = create_app(settings=settings, database=database)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        allowed = await ac.get("/", headers={"Origin": "https://owner.example"})
        denied = await ac.get("/", headers={"Origin": "https://elsewhere.example"})

    assert allowed.headers["access-control-allow-origin"] == "https://owner.example"
    assert "access-control-allow-origin" not in denied.headers


def test_lifespan_creates_schema_and_releases_pool(tmp_path):
    settings = Settings(database_url=f"sqlite:///{tmp_path / 'life.db'}")
    app = create_app(settings=settings)

    with TestClient(app) as tc:
        database = app.state.database
        assert database is not None
        assert {"input_readings", "output_metrics"} <= set(inspect(database.engine).get_table_names())
        assert tc.get("/health").status_code == 200

    assert app.state.database is None


def test_startup_fails_when_store_is_unreachable(tmp_path):
    missing = tmp_path / "no" / "such" / "dir" / "collars.db"
    app = create_app(settings=Settings(database_url=f"sqlite:///{missing}"))

    with pytest.raises(OperationalError):
        with TestClient(app):
            pass


@pytest.mark.asyncio
async def test_health_reports_store_failure(client: AsyncClient, store_outage):
    r = await client.get("/health")
    assert r.status_code == 500
    assert r.json() == {"ok": False, "error": store_outage}
