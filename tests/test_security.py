"""
Tests for security headers, request ids and CORS.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient):
    """Test that all required security headers are present in responses."""
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("X-XSS-Protection") == "1; mode=block"
    assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"
    assert "Content-Security-Policy" in response.headers
    assert "Permissions-Policy" in response.headers


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["/", "/health", "/metrics", "/api/work-items"])
async def test_security_headers_on_all_endpoints(client: AsyncClient, endpoint):
    response = await client.get(endpoint)

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_hsts_header_not_in_test_env(client: AsyncClient):
    """HSTS is only sent in production."""
    response = await client.get("/health")

    assert response.headers.get("Strict-Transport-Security") is None


@pytest.mark.asyncio
async def test_security_headers_on_error_responses(client: AsyncClient):
    response = await client.get("/nonexistent")

    assert response.status_code == 404
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"


@pytest.mark.asyncio
async def test_security_headers_on_rejected_auth(client: AsyncClient):
    response = await client.post("/api/work-items", json={"title": "No token here"})

    assert response.status_code == 401
    assert response.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_request_id_generated_and_echoed(client: AsyncClient):
    generated = await client.get("/")
    echoed = await client.get("/", headers={"X-Request-ID": "trace-123"})

    assert generated.headers.get("X-Request-ID")
    assert echoed.headers["X-Request-ID"] == "trace-123"


@pytest.mark.asyncio
async def test_cors_allows_configured_origin(client: AsyncClient):
    response = await client.options(
        "/api/work-items",
        headers={
            "Origin": "http://localhost:4200",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization, Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:4200"


@pytest.mark.asyncio
async def test_cors_rejects_unknown_origin(client: AsyncClient):
    response = await client.get("/api/work-items", headers={"Origin": "http://evil.example.com"})

    assert "access-control-allow-origin" not in response.headers


@pytest.mark.asyncio
async def test_root_and_health(client: AsyncClient):
    root = await client.get("/")
    health = await client.get("/health")

    assert root.json() == {"app": "Work Items API", "env": "test"}
    assert health.json()["database"] == "connected"
    assert health.json()["cache"] == "disabled"
