"""
Tests for Prometheus metrics endpoint.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_metrics_endpoint_exists(client: AsyncClient):
    """Test that /metrics endpoint is accessible."""
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")


@pytest.mark.asyncio
async def test_metrics_content_format(client: AsyncClient):
    """Test that metrics endpoint returns Prometheus format."""
    response = await client.get("/metrics")
    content = response.text

    assert "# HELP" in content or "# TYPE" in content
    assert "http_request" in content


@pytest.mark.asyncio
async def test_metrics_track_api_requests(client: AsyncClient):
    """Requests to the work items endpoints are recorded under their route template."""
    await client.get("/api/work-items")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "/api/work-items" in response.text


@pytest.mark.asyncio
async def test_metrics_not_in_openapi_schema(client: AsyncClient):
    response = await client.get("/openapi.json")

    assert "/metrics" not in response.json()["paths"]
    assert "/api/work-items/{item_id}" in response.json()["paths"]
