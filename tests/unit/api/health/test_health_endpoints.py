import pytest
from fastapi import status
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_liveness(public_client: AsyncClient):
    response = await public_client.get("/health/liveness")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"status": "alive", "service": "promptflow-credits"}


@pytest.mark.asyncio
async def test_health_reports_each_collaborator(public_client: AsyncClient):
    response = await public_client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert set(body["services"]) == {"database", "payments", "email"}
    assert body["services"]["database"]["status"] == "healthy"
    assert body["services"]["database"]["details"] == {"test_query_result": 1}
    assert body["status"] in {"healthy", "degraded"}


@pytest.mark.asyncio
async def test_security_headers_are_set(public_client: AsyncClient):
    response = await public_client.get("/health/liveness")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
