"""Tests for health and client configuration endpoints."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from app.api import health_router
from app.db.session import get_session


@pytest.mark.asyncio
async def test_health_and_ready(client):
    """Test liveness and readiness against a working database."""
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    response = await client.get("/readyz")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_ready_when_database_down():
    """Test that readiness reports 503 when the database fails."""

    class BrokenSession:
        async def execute(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("unable to open database"))

    async def broken_session():
        yield BrokenSession()

    app = FastAPI()
    app.include_router(health_router)
    app.dependency_overrides[get_session] = broken_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/readyz")

    assert response.status_code == 503
    assert response.json() == {"ok": False}


@pytest.mark.asyncio
async def test_client_config(client, test_settings):
    """Test that the client config exposes the uploads flag."""
    response = await client.get("/api/config")
    assert response.json() == {"uploadsEnabled": True}

    test_settings.uploads_enabled = False
    response = await client.get("/api/config")
    assert response.json() == {"uploadsEnabled": False}
